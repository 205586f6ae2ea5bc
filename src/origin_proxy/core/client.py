"""
Origin Proxy Upstream Client
Pooled HTTP client that sends exactly one request to the upstream per call,
bounded by an overall deadline.
"""
import asyncio
from dataclasses import dataclass
from typing import Optional

import httpx

from origin_proxy.core.exceptions import PayloadTooLarge, UpstreamTimeout, UpstreamUnreachable
from origin_proxy.core.logging import get_logger
from origin_proxy.models.proxy import OutboundUpstreamRequest, UpstreamResponse

logger = get_logger(__name__)

# Defaults httpx would otherwise add to every upstream request. Content
# negotiation belongs to the original caller, so they are removed.
_CLIENT_DEFAULT_HEADERS = ("Accept", "Accept-Encoding", "User-Agent")


@dataclass(frozen=True)
class UpstreamClientConfig:
    """Connection pool and deadline settings for the upstream client."""
    timeout: float = 30.0
    max_body_size: int = 5 * 1024 * 1024
    max_idle_connections: int = 10
    idle_timeout: float = 15.0
    max_connections: int = 100
    http2: bool = False
    user_agent: Optional[str] = None


class UpstreamClient:
    """
    Shared client for the fixed upstream origin.

    Created once before the server starts accepting requests and closed at
    shutdown; concurrent calls share its connection pool and nothing else.
    """

    def __init__(
        self,
        config: Optional[UpstreamClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config or UpstreamClientConfig()
        self._transport = transport
        self.http_client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    @property
    def started(self) -> bool:
        return self.http_client is not None

    async def start(self) -> None:
        """Create the pooled HTTP client."""
        if self.http_client is not None:
            return

        self.http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            limits=httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=self.config.max_idle_connections,
                keepalive_expiry=self.config.idle_timeout
            ),
            http2=self.config.http2,
            # One call upstream per inbound request; 3xx goes back to the caller
            follow_redirects=False,
            transport=self._transport
        )
        for name in _CLIENT_DEFAULT_HEADERS:
            self.http_client.headers.pop(name, None)
        if self.config.user_agent:
            self.http_client.headers["User-Agent"] = self.config.user_agent

        logger.info(
            "Upstream client started",
            timeout=self.config.timeout,
            max_idle_connections=self.config.max_idle_connections,
            idle_timeout=self.config.idle_timeout,
            http2=self.config.http2
        )

    async def aclose(self) -> None:
        """Close the pool and every connection in it."""
        if self.http_client is not None:
            await self.http_client.aclose()
            self.http_client = None
            logger.info("Upstream client closed")

    async def dispatch(
        self,
        request: OutboundUpstreamRequest,
        timeout: Optional[float] = None
    ) -> UpstreamResponse:
        """
        Send ``request`` upstream and read the complete response.

        Args:
            request: Translated upstream request
            timeout: Deadline override in seconds

        Returns:
            The upstream response with its raw body

        Raises:
            PayloadTooLarge: If the body exceeds the configured ceiling
            UpstreamTimeout: If the deadline expires before the response is read
            UpstreamUnreachable: On any transport-level failure
        """
        if self.http_client is None:
            raise RuntimeError("Upstream client not started. Use async context manager.")

        if request.body is not None and len(request.body) > self.config.max_body_size:
            raise PayloadTooLarge(len(request.body), self.config.max_body_size)

        deadline = timeout or self.config.timeout

        logger.info(
            "Proxying request",
            method=request.method.value,
            url=request.url,
            headers_count=len(request.headers),
            body_size=len(request.body) if request.body else 0,
            timeout=deadline
        )

        try:
            # Covers pool acquisition, request write, headers and body
            return await asyncio.wait_for(self._send(request, deadline), timeout=deadline)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(deadline, cause=e) from e
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(deadline, cause=e) from e
        except (httpx.TransportError, httpx.InvalidURL) as e:
            raise UpstreamUnreachable(f"Transport failure reaching upstream: {type(e).__name__}", cause=e) from e

    async def _send(self, request: OutboundUpstreamRequest, deadline: float) -> UpstreamResponse:
        upstream_request = self.http_client.build_request(
            method=request.method.value,
            url=request.url,
            # Header bytes travel as latin-1 in both directions
            headers=[(name.encode("latin-1"), value.encode("latin-1")) for name, value in request.headers],
            content=request.body,
            timeout=httpx.Timeout(deadline)
        )

        response = await self.http_client.send(upstream_request, stream=True)
        try:
            # Raw bytes: content-encoded bodies stay encoded, matching their headers
            body = b"".join([chunk async for chunk in response.aiter_raw()])
        finally:
            # On cancellation this discards a half-read connection instead of pooling it
            await response.aclose()

        logger.debug(
            "Upstream responded",
            status_code=response.status_code,
            response_size=len(body),
            http_version=response.http_version
        )

        return UpstreamResponse(
            status_code=response.status_code,
            headers=tuple(
                (name.decode("latin-1"), value.decode("latin-1"))
                for name, value in response.headers.raw
            ),
            body=body
        )
