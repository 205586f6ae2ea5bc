"""Shared test helpers for Origin Proxy tests."""

import asyncio
from typing import Callable, List, Optional

import httpx

UPSTREAM = "https://upstream.test/"


class MockUpstream:
    """
    In-process upstream built on httpx.MockTransport.

    Records every request it receives and answers with a configurable
    response, an exception or a delay. ``responder`` computes the body
    from the request.
    """

    def __init__(
        self,
        status_code: int = 200,
        body: bytes = b"",
        headers: Optional[list] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        responder: Optional[Callable[[httpx.Request], bytes]] = None
    ):
        self.status_code = status_code
        self.body = body
        self.headers = headers or []
        self.delay = delay
        self.error = error
        self.responder = responder
        self.requests: List[httpx.Request] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        body = self.responder(request) if self.responder is not None else self.body
        # Unread stream, as a network transport returns it
        return httpx.Response(self.status_code, headers=self.headers, stream=httpx.ByteStream(body))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "upstream received no request"
        return self.requests[-1]

