"""
Request and response translation between the caller and the upstream origin.
"""
from typing import Optional, Tuple
from urllib.parse import quote

from origin_proxy.core.exceptions import PayloadTooLarge, UnsupportedMethod
from origin_proxy.core.headers import HeaderPolicy
from origin_proxy.core.logging import get_logger
from origin_proxy.models.proxy import (
    DEFAULT_CONTENT_TYPE,
    Direction,
    HttpMethod,
    InboundRequest,
    OutboundResponse,
    OutboundUpstreamRequest,
    UpstreamResponse,
)

logger = get_logger(__name__)

BAD_GATEWAY = 502

# Sub-delims plus ":" and "@" are legal inside a path segment (RFC 3986 pchar)
_SEGMENT_SAFE = "!$&'()*+,;=:@"

# Longest JSON body echoed into debug logs
_JSON_PREVIEW_LIMIT = 2048


class RequestTranslator:
    """Builds the upstream-directed request for an inbound request."""

    def __init__(self, base_url: str, policy: HeaderPolicy, max_body_size: int = 5 * 1024 * 1024):
        self.base_url = base_url.rstrip("/")
        self.policy = policy
        self.max_body_size = max_body_size

    def build_url(self, path: Tuple[str, ...], query: Optional[str] = None) -> str:
        """
        Join the base URL, the path segments and the raw query.

        Segments arrive decoded, so each is percent-escaped again; a decoded
        `?`, `#` or `%` stays part of its segment. The query is appended
        verbatim, so escapes the caller sent reach the upstream untouched.
        """
        segments = "/".join(quote(segment, safe=_SEGMENT_SAFE) for segment in path)
        url = f"{self.base_url}/{segments}"
        if query:
            url = f"{url}?{query}"
        return url

    def translate(self, inbound: InboundRequest) -> OutboundUpstreamRequest:
        """
        Translate ``inbound`` into an upstream request.

        Raises:
            UnsupportedMethod: If the method is not GET, POST, PUT or DELETE
            PayloadTooLarge: If the body is larger than ``max_body_size``
        """
        try:
            method = HttpMethod(inbound.method.upper())
        except ValueError:
            raise UnsupportedMethod(inbound.method) from None

        body = inbound.body or None
        if body is not None and len(body) > self.max_body_size:
            raise PayloadTooLarge(len(body), self.max_body_size)

        headers = self.policy.filter(Direction.REQUEST, inbound.headers)
        logger.debug(
            "Forwarding request headers",
            forwarded=[name for name, _ in headers],
            dropped=len(inbound.headers) - len(headers)
        )

        return OutboundUpstreamRequest(
            url=self.build_url(inbound.path, inbound.query),
            method=method,
            headers=headers,
            body=body
        )


class ResponseTranslator:
    """Builds the caller-directed response from the upstream's response."""

    def __init__(self, policy: HeaderPolicy):
        self.policy = policy

    def translate(self, upstream: UpstreamResponse) -> OutboundResponse:
        status_code = upstream.status_code
        if not 100 <= status_code <= 599:
            logger.warning("Malformed upstream status, answering 502", upstream_status=status_code)
            status_code = BAD_GATEWAY

        headers = self.policy.filter(Direction.RESPONSE, upstream.headers)

        content_type = DEFAULT_CONTENT_TYPE
        for name, value in headers:
            if name.lower() == "content-type":
                content_type = value
                break

        logger.debug(
            "Translated upstream response",
            status_code=status_code,
            content_type=content_type,
            body_size=len(upstream.body),
            forwarded_headers=len(headers)
        )
        if "application/json" in content_type.lower():
            logger.debug(
                "JSON response",
                body=upstream.body[:_JSON_PREVIEW_LIMIT].decode("utf-8", errors="replace")
            )

        return OutboundResponse(
            status_code=status_code,
            content_type=content_type,
            headers=headers,
            body=upstream.body
        )
