"""
Models package for Origin Proxy

Contains the value types exchanged between the proxy components.
"""

from .proxy import (
    DEFAULT_CONTENT_TYPE,
    Direction,
    HeaderList,
    HttpMethod,
    InboundRequest,
    OutboundResponse,
    OutboundUpstreamRequest,
    UpstreamResponse,
)

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "Direction",
    "HeaderList",
    "HttpMethod",
    "InboundRequest",
    "OutboundResponse",
    "OutboundUpstreamRequest",
    "UpstreamResponse",
]
