"""Logging configuration for Origin Proxy."""

import logging
import sys
from typing import Optional, Union

import structlog

from origin_proxy.core.config import Settings, settings as default_settings

# Processors shared by structlog loggers and records from stdlib loggers
# (httpx, uvicorn), so both render the same way.
_SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Setup structured logging for the application."""
    settings = settings or default_settings
    level = getattr(logging, settings.LOG_LEVEL.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _get_renderer(settings.LOG_FORMAT),
        ],
    ))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Per-request httpx lines duplicate the proxy's own request logs
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def _get_renderer(log_format: str) -> Union[structlog.processors.JSONRenderer, structlog.dev.ConsoleRenderer]:
    """Get the appropriate log renderer based on configuration."""
    if log_format.lower() == "json":
        return structlog.processors.JSONRenderer()
    else:
        return structlog.dev.ConsoleRenderer(colors=True)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
