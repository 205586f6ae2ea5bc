"""Proxy core: header policy, translators, upstream client and orchestration."""

from .client import UpstreamClient, UpstreamClientConfig
from .exceptions import (
    BodyReadFailure,
    PayloadTooLarge,
    ProxyError,
    UnsupportedMethod,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from .headers import FRAMING_HEADERS, HeaderPolicy
from .orchestrator import ProxyOrchestrator, ProxyState
from .translator import RequestTranslator, ResponseTranslator

__all__ = [
    "UpstreamClient",
    "UpstreamClientConfig",
    "BodyReadFailure",
    "PayloadTooLarge",
    "ProxyError",
    "UnsupportedMethod",
    "UpstreamTimeout",
    "UpstreamUnreachable",
    "FRAMING_HEADERS",
    "HeaderPolicy",
    "ProxyOrchestrator",
    "ProxyState",
    "RequestTranslator",
    "ResponseTranslator",
]
