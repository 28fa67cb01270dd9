"""MCP protocol layer (JSON-RPC 2.0)."""

from .handler import McpProtocolHandler, NotifyCallback
from .types import (
    JsonRpcError,
    JsonRpcErrorCode,
    JsonRpcNotification,
    JsonRpcProtocolError,
    JsonRpcResponse,
    MessageKind,
    classify,
    create_error_response,
    create_notification,
    decode_message,
)

__all__ = [
    "JsonRpcError",
    "JsonRpcErrorCode",
    "JsonRpcNotification",
    "JsonRpcProtocolError",
    "JsonRpcResponse",
    "McpProtocolHandler",
    "MessageKind",
    "NotifyCallback",
    "classify",
    "create_error_response",
    "create_notification",
    "decode_message",
]
