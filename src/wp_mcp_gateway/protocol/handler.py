"""MCP protocol handler.

Maps MCP JSON-RPC methods onto the command dispatcher. Transport adapters
own sessions and delivery; this handler only turns one decoded message into
at most one response (plus optional notifications).

Handled methods:
- initialize: Negotiate protocol version and advertise capabilities
- ping: Liveness check
- tools/list: Advertise registered commands with their input schemas
- tools/call: Validate and execute a command via the Dispatcher

Handled notifications:
- notifications/initialized
- notifications/cancelled
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .. import __version__
from ..commands.dispatcher import Dispatcher
from .types import (
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    JsonRpcErrorCode,
    JsonRpcProtocolError,
    JsonRpcResponse,
    MessageKind,
    classify,
    create_error_response,
    create_notification,
    decode_message,
)

logger = logging.getLogger(__name__)

SERVER_NAME = "wordpress-mcp-server"

# Receives server-initiated messages (already in wire form) for the session
NotifyCallback = Callable[[dict[str, Any]], None]


class McpProtocolHandler:
    """Handles MCP methods for every transport.

    Stateless apart from its collaborators; one instance serves all sessions.

    Usage:
        handler = McpProtocolHandler(dispatcher)
        response = await handler.handle(message, notify=outbox.put)
        if response is not None:
            send(response.to_wire())
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        server_name: str = SERVER_NAME,
        server_version: str = __version__,
    ) -> None:
        self._dispatcher = dispatcher
        self._server_info = {"name": server_name, "version": server_version}

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    async def handle_raw(
        self, data: str | bytes, notify: NotifyCallback | None = None
    ) -> JsonRpcResponse | None:
        """Decode and handle one serialized message.

        Malformed input is answered with an error response (id null).
        """
        try:
            message = decode_message(data)
        except JsonRpcProtocolError as e:
            logger.warning(f"Rejected malformed message: {e.message}")
            return create_error_response(None, e.code, e.message, e.data)
        return await self.handle(message, notify)

    async def handle(
        self, message: dict[str, Any], notify: NotifyCallback | None = None
    ) -> JsonRpcResponse | None:
        """Handle one decoded message.

        Args:
            message: A JSON-RPC message object
            notify: Callback for notifications addressed to the same session

        Returns:
            The response for requests, None for notifications and responses
        """
        try:
            kind = classify(message)
        except JsonRpcProtocolError as e:
            request_id = message.get("id") if isinstance(message, dict) else None
            if isinstance(request_id, bool) or not isinstance(request_id, str | int):
                request_id = None
            return create_error_response(request_id, e.code, e.message, e.data)

        method = message.get("method")
        params = message.get("params") or {}

        match kind:
            case MessageKind.RESPONSE:
                # No server-to-client requests are issued, so there is nothing to match.
                logger.debug(f"Ignoring client response for id {message.get('id')}")
                return None
            case MessageKind.NOTIFICATION:
                self._handle_notification(method, params)
                return None

        request_id = message["id"]
        try:
            result = await self._handle_request(method, params, notify)
            return JsonRpcResponse(id=request_id, result=result)
        except JsonRpcProtocolError as e:
            logger.warning(f"{method} failed: {e.message}")
            return create_error_response(request_id, e.code, e.message, e.data)
        except Exception as e:
            logger.exception(f"Error handling request {method}: {e}")
            return create_error_response(
                request_id, JsonRpcErrorCode.INTERNAL_ERROR, "Internal error"
            )

    # =========================================================================
    # Routing
    # =========================================================================

    async def _handle_request(
        self, method: str, params: dict[str, Any], notify: NotifyCallback | None
    ) -> Any:
        """Route incoming requests to method handlers."""
        match method:
            case "initialize":
                return self._handle_initialize(params)
            case "ping":
                return {}
            case "tools/list":
                return {"tools": [d.to_tool() for d in self._dispatcher.registry.list_commands()]}
            case "tools/call":
                return await self._handle_tools_call(params, notify)
            case _:
                raise JsonRpcProtocolError(
                    code=JsonRpcErrorCode.METHOD_NOT_FOUND,
                    message=f"Method not found: {method}",
                )

    def _handle_notification(self, method: str, params: dict[str, Any]) -> None:
        """Route incoming notifications."""
        match method:
            case "notifications/initialized":
                logger.info("Client initialized")
            case "notifications/cancelled":
                # Calls run to completion; the late response is discarded by the client.
                logger.info(f"Client cancelled request {params.get('requestId')}")
            case _:
                logger.warning(f"Unknown notification: {method}")

    # =========================================================================
    # Method Handlers
    # =========================================================================

    def _handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle initialize request."""
        requested = params.get("protocolVersion")
        version = (
            requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        )
        client = params.get("clientInfo") or {}
        logger.info(
            f"MCP initialized: client={client.get('name', 'unknown')} "
            f"requested={requested} negotiated={version}"
        )
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": self._server_info,
        }

    async def _handle_tools_call(
        self, params: dict[str, Any], notify: NotifyCallback | None
    ) -> dict[str, Any]:
        """Handle tools/call request."""
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise JsonRpcProtocolError(
                code=JsonRpcErrorCode.INVALID_PARAMS,
                message="tools/call requires a tool 'name'",
            )
        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            raise JsonRpcProtocolError(
                code=JsonRpcErrorCode.INVALID_PARAMS,
                message="tools/call 'arguments' must be an object",
            )

        envelope = await self._dispatcher.invoke(name, arguments)

        meta = params.get("_meta")
        progress_token = meta.get("progressToken") if isinstance(meta, dict) else None
        if progress_token is not None and notify is not None:
            notify(
                create_notification(
                    "notifications/progress",
                    {"progressToken": progress_token, "progress": 1, "total": 1},
                ).to_wire()
            )

        return envelope.to_wire()
