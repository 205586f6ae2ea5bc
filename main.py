#!/usr/bin/env python3
"""
Main entry point for Origin Proxy when running from a checkout.
This file allows running the proxy directly from the project root.
"""

import sys
from pathlib import Path

# Add the src directory to Python path
src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))


def main():
    """Run the Origin Proxy server."""
    from origin_proxy.main import main as run_proxy

    print("Starting Origin Proxy locally...")
    print("Access at: http://localhost:8000")
    print("Health check: http://localhost:8000/_proxy/health")

    run_proxy()


if __name__ == "__main__":
    main()
