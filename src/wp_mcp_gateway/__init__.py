"""WordPress MCP gateway.

Exposes WordPress REST operations as MCP tools over Streamable HTTP, legacy
HTTP+SSE and stdio.
"""

__version__ = "1.0.0"
