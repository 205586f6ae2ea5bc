"""Tests for proxy orchestration and error mapping."""

import asyncio
import json

import httpx
import pytest

from conftest import UPSTREAM, MockUpstream
from origin_proxy.core.client import UpstreamClient
from origin_proxy.core.config import Settings
from origin_proxy.core.exceptions import BodyReadFailure, ProxyError
from origin_proxy.core import orchestrator as orchestrator_module
from origin_proxy.core.orchestrator import ALLOWED_METHODS, ProxyOrchestrator, ProxyState
from origin_proxy.models.proxy import InboundRequest


def _settings(**overrides):
    values = {"UPSTREAM_BASE_URL": UPSTREAM, "UPSTREAM_TIMEOUT": 5.0}
    values.update(overrides)
    return Settings(**values)


def _detail(response):
    return json.loads(response.body)["detail"]


class _RecordingLogger:
    """Stands in for the module logger and keeps every call."""

    def __init__(self):
        self.calls = []

    def __getattr__(self, level):
        def record(event, **fields):
            self.calls.append((level, event, fields))
        return record


class TestProxyOrchestrator:
    """Test the full translate, dispatch, translate pass."""

    @pytest.mark.asyncio
    async def test_end_to_end_json_get(self):
        upstream = MockUpstream(
            status_code=200,
            headers=[("Content-Type", "application/json")],
            body=b'{"name":"a"}'
        )
        inbound = InboundRequest(
            method="GET",
            path=("users", "1"),
            query="fields=name",
            headers=(("Host", "proxy.local"), ("Accept", "application/json"))
        )

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(), client)
            response = await orchestrator.handle(inbound)

        sent = upstream.last_request
        assert sent.method == "GET"
        assert str(sent.url) == "https://upstream.test/users/1?fields=name"
        assert sent.headers["accept"] == "application/json"
        assert sent.headers["host"] == "upstream.test"

        assert response.status_code == 200
        assert response.content_type == "application/json"
        assert response.body == b'{"name":"a"}'

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE"])
    async def test_method_preserved_with_empty_body(self, method):
        upstream = MockUpstream(status_code=204)

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(), client)
            response = await orchestrator.handle(InboundRequest(method=method, path=("thing",)))

        assert upstream.last_request.method == method
        assert upstream.last_request.content == b""
        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_header_round_trip(self):
        upstream = MockUpstream(headers=[("X-Upstream", "u-1"), ("Connection", "close")])
        inbound = InboundRequest(
            method="GET",
            path=("h",),
            headers=(
                ("X-Caller", "c-1"),
                ("Authorization", "Bearer abc"),
                ("HOST", "proxy.local"),
                ("Transfer-Encoding", "chunked"),
            )
        )

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(), client)
            response = await orchestrator.handle(inbound)

        sent = upstream.last_request
        assert sent.headers["x-caller"] == "c-1"
        assert sent.headers["authorization"] == "Bearer abc"
        assert "transfer-encoding" not in sent.headers
        assert ("X-Upstream", "u-1") in response.headers
        assert all(name.lower() != "connection" for name, _ in response.headers)

    @pytest.mark.asyncio
    async def test_body_forwarded(self):
        upstream = MockUpstream(status_code=201)
        inbound = InboundRequest(method="POST", path=("items",), body=b'{"id": 7}')

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(), client)
            response = await orchestrator.handle(inbound)

        assert upstream.last_request.content == b'{"id": 7}'
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_payload_too_large_makes_no_call(self):
        upstream = MockUpstream()
        inbound = InboundRequest(method="POST", path=("upload",), body=b"x" * 9)

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(MAX_BODY_SIZE=8), client)
            response = await orchestrator.handle(inbound)

        assert response.status_code == 413
        assert _detail(response) == "Payload Too Large"
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_body_at_ceiling_forwarded(self):
        upstream = MockUpstream()
        inbound = InboundRequest(method="POST", path=("upload",), body=b"x" * 8)

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(MAX_BODY_SIZE=8), client)
            response = await orchestrator.handle(inbound)

        assert response.status_code == 200
        assert upstream.last_request.content == b"x" * 8

    @pytest.mark.asyncio
    async def test_unsupported_method(self):
        upstream = MockUpstream()

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(), client)
            response = await orchestrator.handle(InboundRequest(method="PATCH", path=("x",)))

        assert response.status_code == 405
        assert ("Allow", ALLOWED_METHODS) in response.headers
        assert ALLOWED_METHODS == "GET, POST, PUT, DELETE"
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_timeout_maps_to_gateway_timeout(self):
        upstream = MockUpstream(delay=1.0, body=b"late upstream body")

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(UPSTREAM_TIMEOUT=0.05), client)
            response = await orchestrator.handle(InboundRequest(method="GET", path=("slow",)))

        assert response.status_code == 504
        assert response.content_type == "application/json"
        assert b"late upstream body" not in response.body
        assert _detail(response) == "Gateway Timeout"

    @pytest.mark.asyncio
    async def test_unreachable_does_not_leak_cause(self):
        upstream = MockUpstream(error=httpx.ConnectError("getaddrinfo failed for db-internal-7.corp"))

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(), client)
            response = await orchestrator.handle(InboundRequest(method="GET", path=("x",)))

        assert response.status_code == 502
        assert _detail(response) == "Bad Gateway"
        assert b"db-internal-7" not in response.body

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [0, 999])
    async def test_malformed_upstream_status(self, status_code):
        upstream = MockUpstream(status_code=status_code, body=b"odd")

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(), client)
            response = await orchestrator.handle(InboundRequest(method="GET", path=("x",)))

        assert response.status_code == 502
        assert response.body == b"odd"

    @pytest.mark.asyncio
    async def test_unexpected_failure_becomes_internal_error(self):
        class BrokenClient:
            async def dispatch(self, request, timeout=None):
                raise KeyError("secret-internal-detail")

        orchestrator = ProxyOrchestrator.from_settings(_settings(), BrokenClient())
        response = await orchestrator.handle(InboundRequest(method="GET", path=("x",)))

        assert response.status_code == 500
        assert b"secret-internal-detail" not in response.body

    @pytest.mark.asyncio
    async def test_unexpected_failure_logged_once(self, monkeypatch):
        class BrokenClient:
            async def dispatch(self, request, timeout=None):
                raise KeyError("boom")

        recorder = _RecordingLogger()
        monkeypatch.setattr(orchestrator_module, "logger", recorder)

        orchestrator = ProxyOrchestrator.from_settings(_settings(), BrokenClient())
        await orchestrator.handle(InboundRequest(method="GET", path=("x",)))

        errors = [call for call in recorder.calls if call[0] == "error"]
        assert len(errors) == 1
        level, event, fields = errors[0]
        assert fields["failed_state"] == ProxyState.DISPATCHING.value
        assert isinstance(fields["exc_info"], KeyError)

    @pytest.mark.asyncio
    async def test_dot_segments_resolved_on_the_wire(self):
        upstream = MockUpstream()

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(), client)
            await orchestrator.handle(InboundRequest(method="GET", path=("a", "..", "b")))

        assert upstream.last_request.url.path == "/b"
        assert str(upstream.last_request.url) == "https://upstream.test/b"

    @pytest.mark.asyncio
    async def test_concurrent_calls_are_independent(self):
        upstream = MockUpstream(responder=lambda request: request.url.path.encode())

        async with UpstreamClient(transport=upstream.transport) as client:
            orchestrator = ProxyOrchestrator.from_settings(_settings(), client)
            responses = await asyncio.gather(*[
                orchestrator.handle(InboundRequest(method="GET", path=("item", str(i))))
                for i in range(20)
            ])

        assert [r.body for r in responses] == [f"/item/{i}".encode() for i in range(20)]
        assert len(upstream.requests) == 20


class TestErrorResponse:
    """Test mapping of error kinds to outbound responses."""

    def _orchestrator(self):
        return ProxyOrchestrator.from_settings(_settings(), UpstreamClient())

    def test_body_read_failure(self):
        error = BodyReadFailure(cause=ConnectionResetError("client went away"))

        response = self._orchestrator().error_response(error, ProxyState.RECEIVED)

        assert response.status_code == 500
        assert _detail(response) == "Internal Server Error"
        assert b"client went away" not in response.body

    def test_generic_proxy_error(self):
        response = self._orchestrator().error_response(ProxyError("boom"))

        assert response.status_code == 500
        assert response.headers == ()

    def test_error_to_dict(self):
        error = BodyReadFailure(cause=ValueError("x"))

        assert error.to_dict() == {
            "error_type": "BodyReadFailure",
            "error_code": "body_read_failure",
            "message": "Failed to read request body",
            "status_code": 500,
            "cause": "ValueError('x')"
        }
