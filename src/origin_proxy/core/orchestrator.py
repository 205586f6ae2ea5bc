"""
Proxy orchestration.

One inbound call passes through the components in a single pass:

    RECEIVED -> TRANSLATING_REQUEST -> DISPATCHING -> TRANSLATING_RESPONSE -> RESPONDED

Any failure moves the call to ERRORED, where it is converted to a fixed
status and a short diagnostic body. Nothing raised by a component escapes
``handle``.
"""
import json
from enum import Enum
from typing import Optional

from origin_proxy.core.client import UpstreamClient
from origin_proxy.core.config import Settings
from origin_proxy.core.exceptions import ProxyError, UnsupportedMethod
from origin_proxy.core.logging import get_logger
from origin_proxy.core.translator import RequestTranslator, ResponseTranslator
from origin_proxy.models.proxy import HttpMethod, InboundRequest, OutboundResponse

logger = get_logger(__name__)

ALLOWED_METHODS = ", ".join(method.value for method in HttpMethod)


class ProxyState(str, Enum):
    """Stages of a proxied call."""
    RECEIVED = "received"
    TRANSLATING_REQUEST = "translating_request"
    DISPATCHING = "dispatching"
    TRANSLATING_RESPONSE = "translating_response"
    RESPONDED = "responded"
    ERRORED = "errored"


class ProxyOrchestrator:
    """Runs one inbound request through translate, dispatch and translate."""

    def __init__(
        self,
        client: UpstreamClient,
        request_translator: RequestTranslator,
        response_translator: ResponseTranslator,
        timeout: Optional[float] = None
    ):
        self.client = client
        self.request_translator = request_translator
        self.response_translator = response_translator
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, client: UpstreamClient) -> "ProxyOrchestrator":
        """Wire the translators and client from application settings"""
        policy = settings.header_policy()
        return cls(
            client=client,
            request_translator=RequestTranslator(
                settings.UPSTREAM_BASE_URL,
                policy,
                max_body_size=settings.MAX_BODY_SIZE
            ),
            response_translator=ResponseTranslator(policy),
            timeout=settings.UPSTREAM_TIMEOUT
        )

    async def handle(self, inbound: InboundRequest) -> OutboundResponse:
        """Proxy ``inbound`` to the upstream and return the caller's response."""
        state = ProxyState.RECEIVED
        try:
            state = ProxyState.TRANSLATING_REQUEST
            outbound = self.request_translator.translate(inbound)

            state = ProxyState.DISPATCHING
            upstream = await self.client.dispatch(outbound, self.timeout)

            state = ProxyState.TRANSLATING_RESPONSE
            response = self.response_translator.translate(upstream)
        except ProxyError as e:
            return self.error_response(e, state)
        except Exception as e:
            return self.error_response(ProxyError("Unexpected proxy failure", cause=e), state)

        state = ProxyState.RESPONDED
        logger.info(
            "Request proxied",
            method=outbound.method.value,
            url=outbound.url,
            status_code=response.status_code,
            state=state.value
        )
        return response

    def error_response(self, error: ProxyError, state: ProxyState = ProxyState.RECEIVED) -> OutboundResponse:
        """
        Map ``error`` to the response sent to the caller.

        The body names only the status; the cause goes to the logs.
        """
        details = error.to_dict()
        if error.status_code >= 500:
            logger.error(
                "Proxied call failed",
                failed_state=state.value,
                state=ProxyState.ERRORED.value,
                exc_info=error.cause,
                **details
            )
        else:
            logger.warning(
                "Proxied call rejected",
                failed_state=state.value,
                state=ProxyState.ERRORED.value,
                **details
            )

        headers = ()
        if isinstance(error, UnsupportedMethod):
            headers = (("Allow", ALLOWED_METHODS),)

        return OutboundResponse(
            status_code=error.status_code,
            content_type="application/json",
            headers=headers,
            body=json.dumps({"detail": error.reason}).encode("utf-8")
        )
