"""
Proxy Data Models

Immutable pydantic models for the values that flow through one proxied call:
the inbound request snapshot, the upstream-directed request, the upstream's
response and the response handed back to the HTTP server.
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

HeaderList = Tuple[Tuple[str, str], ...]

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class HttpMethod(str, Enum):
    """Methods forwarded to the upstream."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class Direction(str, Enum):
    """Side of the proxy boundary a header is crossing."""
    REQUEST = "request"
    RESPONSE = "response"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class InboundRequest(_Frozen):
    """Snapshot of a request as received by the HTTP server."""
    method: str
    path: Tuple[str, ...] = ()
    query: Optional[str] = None
    headers: HeaderList = ()
    body: Optional[bytes] = None


class OutboundUpstreamRequest(_Frozen):
    """Request to send to the upstream origin."""
    url: str
    method: HttpMethod
    headers: HeaderList = ()
    body: Optional[bytes] = None


class UpstreamResponse(_Frozen):
    """Response received from the upstream origin."""
    status_code: int
    headers: HeaderList = ()
    body: bytes = b""


class OutboundResponse(_Frozen):
    """Response to hand back to the caller."""
    status_code: int = Field(ge=100, le=599)
    content_type: str = DEFAULT_CONTENT_TYPE
    headers: HeaderList = ()
    body: bytes = b""


__all__ = [
    "HeaderList",
    "DEFAULT_CONTENT_TYPE",
    "HttpMethod",
    "Direction",
    "InboundRequest",
    "OutboundUpstreamRequest",
    "UpstreamResponse",
    "OutboundResponse",
]
