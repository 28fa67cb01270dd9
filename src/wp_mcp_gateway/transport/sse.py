"""Legacy HTTP+SSE transport (``/sse`` + ``/messages``).

The client opens an event stream and learns its session id from the first
``endpoint`` event. Calls are POSTed to ``/messages?sessionId=<id>`` and
acknowledged immediately; the JSON-RPC response arrives later as a
``message`` event on the stream, in the order the calls were accepted.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response, StreamingResponse
from starlette.routing import Route

from ..protocol import (
    JsonRpcErrorCode,
    JsonRpcProtocolError,
    JsonRpcResponse,
    McpProtocolHandler,
    decode_message,
)
from ..session import Outbox, SessionStore, Slot
from .base import SSE_HEADERS, SSE_MEDIA_TYPE, format_sse, jsonrpc_error_response, stream_outbox

logger = logging.getLogger(__name__)


class LegacySseTransport:
    """Session-aware adapter for the HTTP+SSE protocol.

    Each session's handle is an Outbox drained by its stream; calls reserve
    a slot on acceptance so completion order never reorders delivery.
    """

    def __init__(
        self,
        store: SessionStore[Outbox],
        handler: McpProtocolHandler,
        heartbeat_interval: float = 30.0,
        stream_path: str = "/sse",
        messages_path: str = "/messages",
    ) -> None:
        self._store = store
        self._handler = handler
        self._heartbeat_interval = heartbeat_interval
        self.stream_path = stream_path
        self.messages_path = messages_path
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def store(self) -> SessionStore[Outbox]:
        return self._store

    def routes(self) -> list[Route]:
        return [
            Route(self.stream_path, self.handle_stream, methods=["GET"]),
            Route(self.messages_path, self.handle_message, methods=["POST"]),
        ]

    async def aclose(self) -> None:
        """Cancel in-flight dispatches (used on shutdown)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # =========================================================================
    # Handlers
    # =========================================================================

    async def handle_stream(self, request: Request) -> StreamingResponse:
        """Open an event stream and register its session."""
        outbox = Outbox()
        session = self._store.create(outbox)
        endpoint = f"{self.messages_path}?sessionId={session.id}"

        async def generate():
            try:
                yield format_sse(endpoint, event="endpoint")
                async for chunk in stream_outbox(
                    request, outbox, self._heartbeat_interval, event="message"
                ):
                    yield chunk
            finally:
                self._store.remove(session.id)

        return StreamingResponse(generate(), media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS)

    async def handle_message(self, request: Request) -> Response:
        """Accept a call for an open stream."""
        session_id = request.query_params.get("sessionId")
        if not session_id:
            return jsonrpc_error_response(
                400, JsonRpcErrorCode.BAD_REQUEST, "Missing sessionId parameter"
            )

        session = self._store.get(session_id)
        if session is None or session.closed:
            logger.warning(f"Message for unknown session: {session_id}")
            return jsonrpc_error_response(
                404, JsonRpcErrorCode.SESSION_NOT_FOUND, "Session not found"
            )

        body = await request.body()
        try:
            message = decode_message(body)
        except JsonRpcProtocolError as e:
            logger.warning(f"Rejected malformed message for {session_id}: {e.message}")
            return jsonrpc_error_response(400, e.code, e.message)

        slot = session.handle.reserve()
        if slot is None:
            # Stream closed between lookup and reservation.
            return jsonrpc_error_response(
                404, JsonRpcErrorCode.SESSION_NOT_FOUND, "Session not found"
            )

        task = asyncio.create_task(self._dispatch(slot, message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return PlainTextResponse("Accepted", status_code=202)

    async def _dispatch(self, slot: Slot, message: dict[str, Any]) -> None:
        """Handle a message and fill its reserved slot.

        Notifications emitted during the call precede the response.
        """
        outgoing: list[dict[str, Any]] = []
        response: JsonRpcResponse | None = None
        try:
            response = await self._handler.handle(message, notify=outgoing.append)
        finally:
            if response is not None:
                outgoing.append(response.to_wire())
            # Always resolve, so later slots are not held back.
            slot.resolve(outgoing)
