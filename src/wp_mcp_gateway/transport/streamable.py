"""Streamable HTTP transport (``/mcp``).

One endpoint, three methods:
- POST: submit a JSON-RPC message; without ``Mcp-Session-Id`` this
  bootstraps a new session and returns its id in the response header
- GET: open the session's SSE push channel for server notifications
- DELETE: tear the session down

Session ids are only ever issued by the server. Unknown ids are rejected
with 404 and never create a session.
"""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from ..protocol import JsonRpcErrorCode, JsonRpcProtocolError, McpProtocolHandler, decode_message
from ..session import PushChannel, Session, SessionStore
from .base import SSE_HEADERS, SSE_MEDIA_TYPE, jsonrpc_error_response, stream_outbox

logger = logging.getLogger(__name__)

SESSION_HEADER = "mcp-session-id"


def _session_not_found() -> JSONResponse:
    return jsonrpc_error_response(404, JsonRpcErrorCode.SESSION_NOT_FOUND, "Session not found")


def _missing_session_header() -> JSONResponse:
    return jsonrpc_error_response(
        400, JsonRpcErrorCode.BAD_REQUEST, "Bad Request: Mcp-Session-Id header is required"
    )


class StreamableHttpTransport:
    """Session-aware adapter for the Streamable HTTP protocol.

    Example:
        transport = StreamableHttpTransport(store, handler)
        routes = transport.routes()
    """

    def __init__(
        self,
        store: SessionStore[PushChannel],
        handler: McpProtocolHandler,
        heartbeat_interval: float = 30.0,
        path: str = "/mcp",
    ) -> None:
        self._store = store
        self._handler = handler
        self._heartbeat_interval = heartbeat_interval
        self.path = path

    @property
    def store(self) -> SessionStore[PushChannel]:
        return self._store

    def routes(self) -> list[Route]:
        return [Route(self.path, self.endpoint, methods=["GET", "POST", "DELETE"])]

    async def endpoint(self, request: Request) -> Response:
        match request.method:
            case "POST":
                return await self.handle_post(request)
            case "GET":
                return await self.handle_get(request)
            case _:
                return await self.handle_delete(request)

    def _lookup(self, session_id: str) -> Session[PushChannel] | None:
        session = self._store.get(session_id)
        if session is None or session.closed:
            return None
        return session

    # =========================================================================
    # Handlers
    # =========================================================================

    async def handle_post(self, request: Request) -> Response:
        """Handle a client message, bootstrapping a session if needed."""
        session_id = request.headers.get(SESSION_HEADER)
        session: Session[PushChannel] | None = None
        if session_id is not None:
            session = self._lookup(session_id)
            if session is None:
                logger.warning(f"POST for unknown session: {session_id}")
                return _session_not_found()

        body = await request.body()
        try:
            message = decode_message(body)
        except JsonRpcProtocolError as e:
            logger.warning(f"Rejected malformed message: {e.message}")
            return jsonrpc_error_response(400, e.code, e.message)

        if session is None:
            session = self._store.create(PushChannel())

        response = await self._handler.handle(message, notify=session.handle.put)
        headers = {SESSION_HEADER: session.id}
        if response is None:
            return Response(status_code=202, headers=headers)
        return JSONResponse(response.to_wire(), headers=headers)

    async def handle_get(self, request: Request) -> Response:
        """Open the push channel of an existing session."""
        session_id = request.headers.get(SESSION_HEADER)
        if session_id is None:
            return _missing_session_header()
        session = self._lookup(session_id)
        if session is None:
            return _session_not_found()

        channel = session.handle
        if not channel.attach():
            return jsonrpc_error_response(
                409,
                JsonRpcErrorCode.BAD_REQUEST,
                "Conflict: a push channel is already open for this session",
            )
        logger.info(f"[{self._store.transport_kind.value}] Push channel opened: {session_id}")

        async def generate():
            try:
                async for chunk in stream_outbox(request, channel, self._heartbeat_interval):
                    yield chunk
            finally:
                channel.detach()
                logger.info(
                    f"[{self._store.transport_kind.value}] Push channel closed: {session_id}"
                )

        return StreamingResponse(
            generate(),
            media_type=SSE_MEDIA_TYPE,
            headers={**SSE_HEADERS, SESSION_HEADER: session_id},
        )

    async def handle_delete(self, request: Request) -> Response:
        """Tear down a session."""
        session_id = request.headers.get(SESSION_HEADER)
        if session_id is None:
            return _missing_session_header()
        if not self._store.remove(session_id):
            return _session_not_found()
        return Response(status_code=200)
