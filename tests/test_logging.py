"""Test logging configuration."""

import logging

import structlog

from origin_proxy.core.config import Settings
from origin_proxy.core.logging import _get_renderer, get_logger, setup_logging


class TestLogging:
    """Test structlog setup."""

    def test_renderer_follows_log_format(self):
        assert isinstance(_get_renderer("json"), structlog.processors.JSONRenderer)
        assert isinstance(_get_renderer("text"), structlog.dev.ConsoleRenderer)

    def test_setup_logging(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        saved_httpx_level = logging.getLogger("httpx").level
        try:
            setup_logging(Settings(LOG_LEVEL="DEBUG", LOG_FORMAT="json"))

            assert structlog.is_configured()
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
            assert logging.getLogger("httpx").level == logging.WARNING
            assert get_logger("origin_proxy.test") is not None
        finally:
            structlog.reset_defaults()
            root.handlers = saved_handlers
            root.setLevel(saved_level)
            logging.getLogger("httpx").setLevel(saved_httpx_level)
