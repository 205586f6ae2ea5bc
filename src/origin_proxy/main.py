"""Main entry point for the Origin Proxy application."""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from origin_proxy import __version__
from origin_proxy.api.routes import router
from origin_proxy.core.client import UpstreamClient
from origin_proxy.core.config import Settings, get_settings
from origin_proxy.core.logging import get_logger, setup_logging
from origin_proxy.core.orchestrator import ProxyOrchestrator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan management
    The upstream client exists from before the first request until shutdown
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info("Starting Origin Proxy...")

    async with UpstreamClient(settings.client_config(), transport=app.state.upstream_transport) as client:
        app.state.upstream_client = client
        app.state.orchestrator = ProxyOrchestrator.from_settings(settings, client)

        logger.info(
            "Proxy configuration",
            host=settings.HOST,
            port=settings.PORT,
            debug=settings.DEBUG,
            log_level=settings.LOG_LEVEL,
            upstream=settings.UPSTREAM_BASE_URL,
            timeout=settings.UPSTREAM_TIMEOUT,
            max_body_size=settings.MAX_BODY_SIZE
        )

        yield

        # Shutdown
        logger.info("Shutting down Origin Proxy...")
        app.state.orchestrator = None
        app.state.upstream_client = None


async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler for unhandled errors"""
    logger.error(
        "Unhandled exception",
        url=str(request.url),
        method=request.method,
        error=str(exc),
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error occurred"
        }
    )


def create_app(
    settings: Optional[Settings] = None,
    upstream_transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the environment-loaded ones
        upstream_transport: Transport for the upstream client (tests inject a mock)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Origin Proxy",
        description="Reverse proxy forwarding every request to a single upstream origin",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.upstream_transport = upstream_transport
    app.state.orchestrator = None

    app.add_exception_handler(Exception, general_exception_handler)

    # Registered before the catch-all so it is answered locally
    async def health_check():
        """Health check endpoint with basic proxy information"""
        return {
            "status": "healthy",
            "service": "origin-proxy",
            "version": __version__,
            "upstream": settings.UPSTREAM_BASE_URL
        }

    app.add_api_route(settings.HEALTH_PATH, health_check, methods=["GET"], tags=["health"])

    app.include_router(router)

    return app


# Create app instance for uvicorn to find
app = create_app()


def main() -> None:
    """Main entry point for the application."""
    settings = get_settings()
    setup_logging(settings)

    logger.info("Starting Origin Proxy...")

    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
        server_header=False,  # Don't reveal server info
        date_header=True,
    )


if __name__ == "__main__":
    main()
