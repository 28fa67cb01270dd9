"""Integration tests for the Streamable HTTP transport (/mcp).

Request/response flows go through Starlette's TestClient. The push channel
is an endless stream, so those tests call the transport's GET handler
directly and pull frames from its body iterator while POSTs run on the same
event loop through httpx.ASGITransport.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from starlette.testclient import TestClient

from wp_mcp_gateway.app import create_app
from wp_mcp_gateway.config import GatewaySettings
from wp_mcp_gateway.protocol import JsonRpcErrorCode
from wp_mcp_gateway.transport import SESSION_HEADER

INITIALIZE = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {"protocolVersion": "2025-03-26", "clientInfo": {"name": "test", "version": "1"}},
}


def tool_call(request_id: int, name: str, arguments: dict[str, Any], **meta: Any) -> dict:
    params: dict[str, Any] = {"name": name, "arguments": arguments}
    if meta:
        params["_meta"] = meta
    return {"jsonrpc": "2.0", "id": request_id, "method": "tools/call", "params": params}


def push_request(session_id: str | None) -> MagicMock:
    request = MagicMock()
    request.is_disconnected = AsyncMock(return_value=False)
    request.headers = {} if session_id is None else {SESSION_HEADER: session_id}
    return request


async def collect(frames: AsyncIterator[Any]) -> list[Any]:
    return [frame async for frame in frames]


@pytest.fixture
def app(settings: GatewaySettings, backend: Any):
    return create_app(settings, backend)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


# =============================================================================
# Request / response
# =============================================================================


class TestSessionLifecycle:
    """Tests for bootstrap, reuse and teardown of sessions."""

    def test_bootstrap_issues_session_id(self, client: TestClient, app) -> None:
        response = client.post("/mcp", json=INITIALIZE)

        assert response.status_code == 200
        session_id = response.headers[SESSION_HEADER]
        assert session_id in app.state.streamable_store
        body = response.json()
        assert body["id"] == 1
        assert body["result"]["protocolVersion"] == "2025-03-26"

    def test_call_on_existing_session(self, client: TestClient, app) -> None:
        session_id = client.post("/mcp", json=INITIALIZE).headers[SESSION_HEADER]

        response = client.post(
            "/mcp", json=tool_call(2, "listPosts", {}), headers={SESSION_HEADER: session_id}
        )

        assert response.status_code == 200
        assert response.headers[SESSION_HEADER] == session_id
        result = response.json()["result"]
        assert result["isError"] is False
        posts = json.loads(result["content"][0]["text"])
        assert [post["title"] for post in posts] == ["Hello", "Second"]
        assert app.state.streamable_store.count == 1

    def test_each_bootstrap_is_a_new_session(self, client: TestClient, app) -> None:
        first = client.post("/mcp", json=INITIALIZE).headers[SESSION_HEADER]
        second = client.post("/mcp", json=INITIALIZE).headers[SESSION_HEADER]

        assert first != second
        assert app.state.streamable_store.count == 2

    def test_notification_is_accepted(self, client: TestClient) -> None:
        session_id = client.post("/mcp", json=INITIALIZE).headers[SESSION_HEADER]

        response = client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "method": "notifications/initialized"},
            headers={SESSION_HEADER: session_id},
        )

        assert response.status_code == 202
        assert response.content == b""

    def test_delete_then_unknown(self, client: TestClient, app) -> None:
        session_id = client.post("/mcp", json=INITIALIZE).headers[SESSION_HEADER]

        deleted = client.delete("/mcp", headers={SESSION_HEADER: session_id})
        after = client.post("/mcp", json=INITIALIZE, headers={SESSION_HEADER: session_id})
        again = client.delete("/mcp", headers={SESSION_HEADER: session_id})

        assert deleted.status_code == 200
        assert after.status_code == 404
        assert after.json()["error"]["code"] == JsonRpcErrorCode.SESSION_NOT_FOUND
        assert again.status_code == 404
        assert app.state.streamable_store.count == 0

    def test_unknown_session_never_created(self, client: TestClient, app) -> None:
        response = client.post("/mcp", json=INITIALIZE, headers={SESSION_HEADER: "made-up"})

        assert response.status_code == 404
        assert "made-up" not in app.state.streamable_store
        assert app.state.streamable_store.count == 0

    @pytest.mark.asyncio
    async def test_delete_while_call_in_flight(self, app, backend: Any) -> None:
        backend.delay_for = lambda operation, args: 0.3 if operation == "get_post" else 0
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        ) as http:
            session_id = (await http.post("/mcp", json=INITIALIZE)).headers[SESSION_HEADER]
            headers = {SESSION_HEADER: session_id}

            pending = asyncio.create_task(
                http.post("/mcp", json=tool_call(2, "getPost", {"id": 1}), headers=headers)
            )
            await asyncio.sleep(0.05)
            assert ("get_post", (1,)) in backend.calls

            deleted = await http.delete("/mcp", headers=headers)
            response = await asyncio.wait_for(pending, 2.0)
            after = await http.post(
                "/mcp", json=tool_call(3, "getPost", {"id": 1}), headers=headers
            )

        assert deleted.status_code == 200
        assert response.status_code == 200
        body = response.json()
        assert body["id"] == 2
        assert body["result"]["isError"] is False
        assert after.status_code == 404
        assert app.state.streamable_store.count == 0


class TestRejections:
    """Tests for transport-level error responses."""

    def test_malformed_body(self, client: TestClient, app) -> None:
        response = client.post(
            "/mcp", content=b"{broken", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == JsonRpcErrorCode.PARSE_ERROR
        assert app.state.streamable_store.count == 0

    def test_not_json_rpc(self, client: TestClient) -> None:
        response = client.post("/mcp", json={"hello": "world"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == JsonRpcErrorCode.INVALID_REQUEST

    def test_delete_requires_header(self, client: TestClient) -> None:
        response = client.delete("/mcp")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == JsonRpcErrorCode.BAD_REQUEST

    def test_unknown_method_is_jsonrpc_error(self, client: TestClient) -> None:
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 3, "method": "nope"})

        assert response.status_code == 200
        assert response.json()["error"]["code"] == JsonRpcErrorCode.METHOD_NOT_FOUND


# =============================================================================
# Push channel
# =============================================================================


class TestPushChannel:
    """Tests for the GET push channel."""

    @pytest.mark.asyncio
    async def test_requires_header(self, app) -> None:
        response = await app.state.streamable_transport.handle_get(push_request(None))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_session(self, app) -> None:
        response = await app.state.streamable_transport.handle_get(push_request("missing"))

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_progress_pushed_and_stream_ends_on_delete(self, app) -> None:
        transport = app.state.streamable_transport
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        ) as http:
            bootstrap = await http.post("/mcp", json=INITIALIZE)
            session_id = bootstrap.headers[SESSION_HEADER]

            stream = await transport.handle_get(push_request(session_id))
            assert stream.status_code == 200
            assert stream.media_type == "text/event-stream"
            assert stream.headers[SESSION_HEADER] == session_id
            frames = stream.body_iterator

            response = await http.post(
                "/mcp",
                json=tool_call(2, "getTag", {"id": 5}, progressToken="tok-1"),
                headers={SESSION_HEADER: session_id},
            )
            assert response.json()["id"] == 2

            frame = await asyncio.wait_for(anext(frames), 1.0)
            assert frame.startswith("data: ")
            notification = json.loads(frame[len("data: ") :])
            assert notification["method"] == "notifications/progress"
            assert notification["params"]["progressToken"] == "tok-1"

            second = await transport.handle_get(push_request(session_id))
            assert second.status_code == 409

            rest = asyncio.create_task(collect(frames))
            deleted = await http.delete("/mcp", headers={SESSION_HEADER: session_id})
            assert deleted.status_code == 200
            assert await asyncio.wait_for(rest, 1.0) == []

    @pytest.mark.asyncio
    async def test_reconnect_after_stream_closes(self, app) -> None:
        transport = app.state.streamable_transport
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        ) as http:
            session_id = (await http.post("/mcp", json=INITIALIZE)).headers[SESSION_HEADER]

            first = await transport.handle_get(push_request(session_id))
            frames = first.body_iterator
            pending = asyncio.create_task(collect(frames))
            await asyncio.sleep(0.01)
            pending.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending
            await frames.aclose()

            second = await transport.handle_get(push_request(session_id))
            assert second.status_code == 200
            assert session_id in app.state.streamable_store
