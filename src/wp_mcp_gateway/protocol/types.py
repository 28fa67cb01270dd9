"""JSON-RPC 2.0 message types used by the MCP wire protocols.

Field names follow the JSON-RPC/MCP wire format.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel

from ..errors import GatewayError

# Protocol versions this server can speak, oldest first
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[-1]


# =============================================================================
# JSON-RPC 2.0 Base Types
# =============================================================================


class JsonRpcNotification(BaseModel):
    """JSON-RPC 2.0 notification (no response expected)."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: dict[str, Any] | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any | None = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: str | int | None
    result: Any | None = None
    error: JsonRpcError | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the wire: ``id`` always, exactly one of result/error."""
        wire: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            wire["error"] = self.error.model_dump(exclude_none=True)
        else:
            wire["result"] = self.result if self.result is not None else {}
        return wire


class JsonRpcErrorCode:
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Transport-level codes
    BAD_REQUEST = -32000
    SESSION_NOT_FOUND = -32001


class JsonRpcProtocolError(GatewayError):
    """Exception for JSON-RPC protocol errors."""

    def __init__(
        self,
        code: int,
        message: str,
        data: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class MessageKind(str, Enum):
    """Shape of an inbound JSON-RPC message."""

    REQUEST = "request"
    NOTIFICATION = "notification"
    RESPONSE = "response"


# =============================================================================
# Helper functions
# =============================================================================


def decode_message(data: str | bytes) -> dict[str, Any]:
    """Parse and shape-check one JSON-RPC message.

    Raises:
        JsonRpcProtocolError: PARSE_ERROR for invalid JSON, INVALID_REQUEST
            for anything that is not a JSON-RPC 2.0 object
    """
    try:
        message = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise JsonRpcProtocolError(JsonRpcErrorCode.PARSE_ERROR, f"Parse error: {e}") from e

    classify(message)
    return message


def classify(message: Any) -> MessageKind:
    """Determine whether ``message`` is a request, notification or response.

    Raises:
        JsonRpcProtocolError: INVALID_REQUEST if the message is malformed
    """
    if isinstance(message, list):
        raise JsonRpcProtocolError(
            JsonRpcErrorCode.INVALID_REQUEST, "Batch requests are not supported"
        )
    if not isinstance(message, dict):
        raise JsonRpcProtocolError(
            JsonRpcErrorCode.INVALID_REQUEST, "Message must be a JSON object"
        )
    if message.get("jsonrpc") != "2.0":
        raise JsonRpcProtocolError(JsonRpcErrorCode.INVALID_REQUEST, "Expected jsonrpc '2.0'")

    request_id = message.get("id")
    if request_id is not None and (
        isinstance(request_id, bool) or not isinstance(request_id, str | int)
    ):
        raise JsonRpcProtocolError(
            JsonRpcErrorCode.INVALID_REQUEST, "'id' must be a string or an integer"
        )

    # Response from the client (has result or error, no method)
    if "method" not in message:
        if "result" in message or "error" in message:
            return MessageKind.RESPONSE
        raise JsonRpcProtocolError(JsonRpcErrorCode.INVALID_REQUEST, "Missing 'method' field")

    if not isinstance(message["method"], str):
        raise JsonRpcProtocolError(JsonRpcErrorCode.INVALID_REQUEST, "'method' must be a string")
    params = message.get("params")
    if params is not None and not isinstance(params, dict):
        raise JsonRpcProtocolError(JsonRpcErrorCode.INVALID_REQUEST, "'params' must be an object")

    return MessageKind.NOTIFICATION if request_id is None else MessageKind.REQUEST


def create_error_response(
    request_id: str | int | None,
    code: int,
    message: str,
    data: Any | None = None,
) -> JsonRpcResponse:
    """Create a JSON-RPC error response."""
    return JsonRpcResponse(
        id=request_id,
        error=JsonRpcError(code=code, message=message, data=data),
    )


def create_notification(method: str, params: dict[str, Any] | None = None) -> JsonRpcNotification:
    """Create a JSON-RPC notification."""
    return JsonRpcNotification(method=method, params=params)
