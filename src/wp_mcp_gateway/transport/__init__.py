"""Transport adapters.

- StreamableHttpTransport: ``/mcp`` (request/response plus push channel)
- LegacySseTransport: ``/sse`` + ``/messages`` (event stream plus decoupled replies)
- StdioTransport: newline-delimited JSON on stdin/stdout
"""

from .base import SSE_HEADERS, format_sse, stream_outbox
from .sse import LegacySseTransport
from .stdio import StdioTransport
from .streamable import SESSION_HEADER, StreamableHttpTransport

__all__ = [
    "SESSION_HEADER",
    "SSE_HEADERS",
    "LegacySseTransport",
    "StdioTransport",
    "StreamableHttpTransport",
    "format_sse",
    "stream_outbox",
]
