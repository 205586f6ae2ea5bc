"""
Origin Proxy.

Reverse HTTP proxy that forwards every request to one fixed upstream origin.
"""

__version__ = "0.1.0"
