"""
Tests for remote dispatch and the HTTP transport.
"""

from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from urpc.client import URPCClient
from urpc.config import ClientConfig, RemoteConfig
from urpc.errors import (
    AdapterNotFoundError,
    InvalidArgumentError,
    RemoteBadResponseError,
    RemoteError,
    RemoteTimeoutError,
    RemoteUnavailableError,
)
from urpc.remote import HttpTransport, RemoteRequest
from urpc.types import CallArgs, CallContext, FindManyArgs, Operation

from conftest import RecordingTransport, SlowTransport, make_client


async def start_server(handler) -> test_utils.TestServer:
    app = web.Application()
    app.router.add_post("/{entity}/{operation}", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server


def base_url(server: test_utils.TestServer) -> str:
    return str(server.make_url("")).rstrip("/")


async def echo_handler(request: web.Request) -> web.Response:
    body = await request.json()
    return web.json_response({
        "data": {
            "entity": request.match_info["entity"],
            "operation": request.match_info["operation"],
            "source": request.query.get("source"),
            "authorization": request.headers.get("Authorization"),
            "body": body,
        }
    })


class TestRemoteRequest:
    """Test wire payload construction."""

    def test_payload_excludes_include_callbacks(self):
        async def tags(rows):
            return rows

        request = RemoteRequest(
            entity="user",
            operation=Operation.FIND_MANY,
            args=FindManyArgs(where={"id": 1}, limit=2, include={"tags": tags}),
        )

        assert request.to_payload() == {"args": {"where": {"id": 1}, "limit": 2}}

    def test_payload_carries_call_context(self):
        request = RemoteRequest(
            entity="user",
            operation=Operation.CALL,
            args=CallArgs(params={"action": "export"}),
            context=CallContext(stream=True, extras={"locale": "fr"}),
        )

        assert request.to_payload() == {
            "args": {"action": "export"},
            "context": {"stream": True, "locale": "fr"},
        }


class TestHttpTransport:
    """Test the aiohttp transport against a local server."""

    @pytest.mark.asyncio
    async def test_round_trip(self):
        server = await start_server(echo_handler)
        transport = HttpTransport(base_url(server) + "/", headers={"Authorization": "Bearer t0ken"})
        try:
            data = await transport.send(
                RemoteRequest("user", Operation.FIND_MANY, FindManyArgs(where={"id": 1}), source="sql")
            )
        finally:
            await transport.close()
            await server.close()

        assert data == {
            "entity": "user",
            "operation": "find_many",
            "source": "sql",
            "authorization": "Bearer t0ken",
            "body": {"args": {"where": {"id": 1}}},
        }

    @pytest.mark.asyncio
    async def test_error_envelope(self):
        async def handler(request):
            return web.json_response({"error": {"message": "quota exceeded", "code": "QUOTA"}})

        server = await start_server(handler)
        transport = HttpTransport(base_url(server))
        try:
            with pytest.raises(RemoteError) as exc_info:
                await transport.send(RemoteRequest("user", Operation.FIND_MANY, FindManyArgs()))
        finally:
            await transport.close()
            await server.close()

        assert exc_info.value.remote_code == "QUOTA"
        assert exc_info.value.message == "quota exceeded"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_type",
        [
            (400, InvalidArgumentError),
            (404, AdapterNotFoundError),
            (503, RemoteUnavailableError),
            (500, RemoteError),
        ],
    )
    async def test_status_mapping(self, status, error_type):
        async def handler(request):
            return web.json_response({"error": {"message": "nope"}}, status=status)

        server = await start_server(handler)
        transport = HttpTransport(base_url(server))
        try:
            with pytest.raises(error_type):
                await transport.send(RemoteRequest("user", Operation.FIND_MANY, FindManyArgs()))
        finally:
            await transport.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        async def handler(request):
            return web.Response(text="<html>oops</html>", content_type="text/html")

        server = await start_server(handler)
        transport = HttpTransport(base_url(server))
        try:
            with pytest.raises(RemoteBadResponseError):
                await transport.send(RemoteRequest("user", Operation.FIND_MANY, FindManyArgs()))
        finally:
            await transport.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_missing_data_field(self):
        async def handler(request):
            return web.json_response({"result": []})

        server = await start_server(handler)
        transport = HttpTransport(base_url(server))
        try:
            with pytest.raises(RemoteBadResponseError, match="no 'data' field"):
                await transport.send(RemoteRequest("user", Operation.FIND_MANY, FindManyArgs()))
        finally:
            await transport.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_unreachable_endpoint(self):
        server = await start_server(echo_handler)
        url = base_url(server)
        await server.close()

        transport = HttpTransport(url)
        try:
            with pytest.raises(RemoteUnavailableError):
                await transport.send(RemoteRequest("user", Operation.FIND_MANY, FindManyArgs()))
        finally:
            await transport.close()


class TestRemoteDispatch:
    """Test the client's remote fallback."""

    @pytest.mark.asyncio
    async def test_falls_back_to_remote(self):
        transport = RecordingTransport(result=[{"id": 1}, {"id": 2}])
        client = make_client(transport=transport)

        rows = await client.repo("invoice", source="erp").find_many(limit=2)

        assert rows == [{"id": 1}, {"id": 2}]
        request = transport.requests[0]
        assert (request.entity, request.operation, request.source) == ("invoice", Operation.FIND_MANY, "erp")

    @pytest.mark.asyncio
    async def test_local_adapter_preferred(self):
        transport = RecordingTransport(result=[])
        client = make_client(transport=transport)

        await client.repo("user").create(data={"id": 1})

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_includes_resolved_locally_on_remote_rows(self):
        transport = RecordingTransport(result=[{"id": 1}, {"id": 2}])
        client = make_client(transport=transport)

        async def labels(rows):
            return [f"#{r['id']}" for r in rows]

        rows = await client.repo("invoice").find_many(include={"label": labels})

        assert [r["label"] for r in rows] == ["#1", "#2"]
        assert "include" not in transport.requests[0].to_payload()["args"]

    @pytest.mark.asyncio
    async def test_timeout_raises_and_cancels(self):
        transport = SlowTransport(delay=1.0)
        client = make_client(transport=transport, remote=RemoteConfig(timeout=0.05))

        with pytest.raises(RemoteTimeoutError) as exc_info:
            await client.repo("invoice").find_many()

        await asyncio.sleep(0)
        assert transport.cancelled is True
        assert transport.completed is False
        assert exc_info.value.timeout == 0.05
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_http_transport_from_config(self):
        server = await start_server(echo_handler)
        client = URPCClient(ClientConfig(remote=RemoteConfig(base_url=base_url(server), headers={"X-App": "demo"})))
        try:
            result = await client.repo("order").call({"action": "export"})
        finally:
            await client.close()
            await server.close()

        assert result["operation"] == "call"
        assert result["body"] == {"args": {"action": "export"}}

    @pytest.mark.asyncio
    async def test_missing_where_never_sent(self):
        transport = RecordingTransport(result=True)
        client = make_client(transport=transport)

        with pytest.raises(InvalidArgumentError, match="requires a where filter"):
            await client.repo("invoice").delete(where=None)

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_missing_where_rejected_before_http(self):
        hits = []

        async def handler(request):
            hits.append(request.match_info["operation"])
            return web.json_response({"data": True})

        server = await start_server(handler)
        client = URPCClient(ClientConfig(remote=RemoteConfig(base_url=base_url(server))))
        try:
            with pytest.raises(InvalidArgumentError) as exc_info:
                await client.repo("order").update(where=None, data={"status": "paid"})
            with pytest.raises(InvalidArgumentError):
                await client.repo("order").find_one(where=None)
        finally:
            await client.close()
            await server.close()

        assert exc_info.value.argument == "where"
        assert hits == []
