"""Shared helpers for the HTTP transports.

- SSE framing (``event:``/``data:`` lines, ``: ping`` heartbeats)
- Draining a session outbox onto an SSE stream
- JSON-RPC error responses for transport-level rejections
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from ..session import Outbox

logger = logging.getLogger(__name__)

SSE_MEDIA_TYPE = "text/event-stream"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}
HEARTBEAT = ": ping\n\n"


def format_sse(data: Any, event: str | None = None) -> str:
    """Frame one SSE event. Strings are sent as-is, anything else as JSON."""
    payload = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
    lines = [f"event: {event}"] if event else []
    lines.extend(f"data: {line}" for line in payload.split("\n"))
    return "\n".join(lines) + "\n\n"


async def stream_outbox(
    request: Request,
    outbox: Outbox,
    heartbeat_interval: float = 30.0,
    event: str | None = None,
) -> AsyncIterator[str]:
    """Yield SSE frames for every message in ``outbox`` until it closes.

    This is the single writer for the stream. When the outbox stays idle for
    ``heartbeat_interval`` seconds a heartbeat comment is sent and the client
    connection is checked.

    Args:
        request: The incoming request (for disconnect detection)
        outbox: The session outbox to drain
        heartbeat_interval: Seconds of inactivity between heartbeats
        event: SSE event name for each message (None = unnamed)
    """
    get_task: asyncio.Task[Any] | None = None
    try:
        while True:
            if get_task is None:
                get_task = asyncio.create_task(outbox.get())

            done, _ = await asyncio.wait({get_task}, timeout=heartbeat_interval)
            if not done:
                # Pending get stays alive so no message is lost.
                if await request.is_disconnected():
                    logger.debug("SSE client disconnected")
                    break
                yield HEARTBEAT
                continue

            message = get_task.result()
            get_task = None
            if message is None:
                break  # Outbox closed and drained
            yield format_sse(message, event)
    finally:
        if get_task is not None:
            get_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await get_task


def jsonrpc_error_response(
    status_code: int,
    code: int,
    message: str,
    request_id: str | int | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """JSON-RPC error body for requests rejected before dispatch."""
    return JSONResponse(
        content={
            "jsonrpc": "2.0",
            "id": request_id,
            "error": {"code": code, "message": message},
        },
        status_code=status_code,
        headers=headers,
    )
