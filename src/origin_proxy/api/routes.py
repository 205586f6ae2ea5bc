"""
Origin Proxy API Routes
Catch-all route that hands every inbound request to the proxy orchestrator
"""
from typing import Optional

from fastapi import APIRouter, Request, Response
from starlette.requests import ClientDisconnect

from origin_proxy.core.exceptions import BodyReadFailure, ProxyError
from origin_proxy.core.logging import get_logger
from origin_proxy.core.orchestrator import ProxyOrchestrator
from origin_proxy.models.proxy import InboundRequest, OutboundResponse

logger = get_logger(__name__)

# Create API router
router = APIRouter()

# Methods beyond the forwarded set are routed too, so they get the 405 mapping
PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def get_orchestrator(request: Request) -> ProxyOrchestrator:
    """Orchestrator created by the application lifespan"""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise RuntimeError("Proxy orchestrator not initialized")
    return orchestrator


async def read_body(request: Request, limit: int) -> Optional[bytes]:
    """
    Read the request body, stopping once it is known to exceed ``limit``.

    At most one chunk past the limit is buffered; the size check itself is
    left to the request translator.
    """
    body = bytearray()
    try:
        async for chunk in request.stream():
            body.extend(chunk)
            if len(body) > limit:
                break
    except ClientDisconnect as e:
        raise BodyReadFailure("Client disconnected while sending the request body", cause=e) from e
    return bytes(body) if body else None


async def snapshot_request(request: Request, path: str, body_limit: int) -> InboundRequest:
    """Capture the Starlette request as an immutable InboundRequest"""
    query = request.scope.get("query_string", b"").decode("latin-1")
    return InboundRequest(
        method=request.method,
        path=tuple(path.split("/")) if path else (),
        query=query or None,
        headers=tuple(
            (name.decode("latin-1"), value.decode("latin-1"))
            for name, value in request.headers.raw
        ),
        body=await read_body(request, body_limit)
    )


def to_response(outbound: OutboundResponse) -> Response:
    """Serialize an OutboundResponse, keeping repeated headers"""
    response = Response(content=outbound.body, status_code=outbound.status_code)
    response.headers["content-type"] = outbound.content_type
    for name, value in outbound.headers:
        if name.lower() == "content-type":
            continue
        response.headers.append(name, value)
    return response


@router.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy(path: str, request: Request) -> Response:
    """Forward any request to the upstream origin"""
    orchestrator = get_orchestrator(request)
    body_limit = orchestrator.request_translator.max_body_size

    try:
        inbound = await snapshot_request(request, path, body_limit)
    except ProxyError as e:
        return to_response(orchestrator.error_response(e))

    outbound = await orchestrator.handle(inbound)
    return to_response(outbound)
