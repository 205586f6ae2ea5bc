"""
Proxy error kinds.

Every failure of a proxied call is raised as a ``ProxyError`` subclass and
converted to a fixed outbound status at the orchestrator boundary. The
``cause`` of an error is kept for logging only and is never sent to the
caller.
"""

from typing import Any, Dict, Optional


class ProxyError(Exception):
    """Base exception for proxied call failures."""

    status_code: int = 500
    reason: str = "Internal Server Error"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "proxy_error"
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary form for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "cause": repr(self.cause) if self.cause is not None else None
        }


class UnsupportedMethod(ProxyError):
    """Raised when the inbound method is not one the proxy forwards."""

    status_code = 405
    reason = "Method Not Allowed"

    def __init__(self, method: str):
        super().__init__(f"Method not supported: {method}", "unsupported_method")
        self.method = method


class PayloadTooLarge(ProxyError):
    """Raised when the inbound body exceeds the configured ceiling."""

    status_code = 413
    reason = "Payload Too Large"

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Request body of {size} bytes exceeds the {limit} byte limit",
            "payload_too_large"
        )
        self.size = size
        self.limit = limit


class BodyReadFailure(ProxyError):
    """Raised when the inbound body could not be read completely."""

    status_code = 500
    reason = "Internal Server Error"

    def __init__(self, message: str = "Failed to read request body", cause: Optional[BaseException] = None):
        super().__init__(message, "body_read_failure", cause)


class UpstreamTimeout(ProxyError):
    """Raised when the upstream call exceeds its deadline."""

    status_code = 504
    reason = "Gateway Timeout"

    def __init__(self, timeout: float, cause: Optional[BaseException] = None):
        super().__init__(f"Upstream did not respond within {timeout}s", "upstream_timeout", cause)
        self.timeout = timeout


class UpstreamUnreachable(ProxyError):
    """Raised on transport-level failures reaching the upstream."""

    status_code = 502
    reason = "Bad Gateway"

    def __init__(self, message: str = "Upstream unreachable", cause: Optional[BaseException] = None):
        super().__init__(message, "upstream_unreachable", cause)
