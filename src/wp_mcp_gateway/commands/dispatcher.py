"""Command dispatcher.

Single entry point that turns (name, raw arguments) into a CallEnvelope:
lookup -> validation -> bounded execution -> envelope. Every recoverable
failure is converted here; nothing but the envelope crosses this boundary.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..errors import BackendError, ParameterError
from .registry import CommandRegistry

logger = logging.getLogger(__name__)

# Fields whose values are long free text; only their length is logged.
REDACTED_FIELDS = frozenset({"content", "excerpt", "description", "metadesc"})
MAX_LOGGED_STRING = 120


def to_json_text(data: Any) -> str:
    """Serialize a result value the way it is shown to clients."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def redact_params(params: Any) -> Any:
    """Return a copy of ``params`` that is safe and compact to log."""
    if not isinstance(params, dict):
        return params
    redacted: dict[str, Any] = {}
    for key, value in params.items():
        if isinstance(value, str) and key in REDACTED_FIELDS:
            redacted[key] = f"<{len(value)} chars>"
        elif isinstance(value, str) and len(value) > MAX_LOGGED_STRING:
            redacted[key] = value[: MAX_LOGGED_STRING - 3] + "..."
        else:
            redacted[key] = value
    return redacted


class TextContent(BaseModel):
    """A text content block."""

    type: Literal["text"] = "text"
    text: str


class CallEnvelope(BaseModel):
    """Uniform outcome of a dispatched command (MCP CallToolResult).

    Success and failure share the same shape; only ``is_error`` differs.
    """

    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContent]
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def success(cls, result: Any) -> CallEnvelope:
        return cls(content=[TextContent(text=to_json_text(result))])

    @classmethod
    def failure(cls, message: str) -> CallEnvelope:
        return cls(content=[TextContent(text=to_json_text({"error": message}))], is_error=True)

    @property
    def text(self) -> str:
        return self.content[0].text if self.content else ""

    def to_wire(self) -> dict[str, Any]:
        """Serialize with protocol field names."""
        return self.model_dump(by_alias=True)


class Dispatcher:
    """Validates and executes commands from a registry.

    Stateless; safe for concurrent use.

    Usage:
        dispatcher = Dispatcher(registry, timeout=30.0)
        envelope = await dispatcher.invoke("getPost", {"id": 7})
        if envelope.is_error:
            ...
    """

    def __init__(self, registry: CommandRegistry, timeout: float | None = 30.0) -> None:
        """Initialize dispatcher.

        Args:
            registry: Registry of available commands
            timeout: Seconds a handler may run before the call fails (None = no bound)
        """
        self._registry = registry
        self._timeout = timeout

    @property
    def registry(self) -> CommandRegistry:
        return self._registry

    async def invoke(self, name: str, raw_params: Any) -> CallEnvelope:
        """Run a command and wrap the outcome.

        Args:
            name: Command name
            raw_params: Unvalidated arguments from the client

        Returns:
            Success or failure envelope; never raises for command failures
        """
        logged = redact_params(raw_params)

        descriptor = self._registry.get(name)
        if descriptor is None:
            logger.warning(f"Rejected unknown tool {name!r} params={logged}")
            return CallEnvelope.failure(f"Unknown tool: {name}")

        try:
            params = descriptor.validate(raw_params)
        except ParameterError as e:
            logger.warning(f"Rejected {name}: invalid parameters ({e}) params={logged}")
            return CallEnvelope.failure(f"Invalid parameters: {e}")

        try:
            if self._timeout:
                result = await asyncio.wait_for(descriptor.handler(params), timeout=self._timeout)
            else:
                result = await descriptor.handler(params)
        except TimeoutError:
            logger.error(f"{name} timed out after {self._timeout}s params={logged}")
            return CallEnvelope.failure(f"Tool '{name}' timed out after {self._timeout}s")
        except BackendError as e:
            logger.error(f"{name} failed: {e.message} [{e.kind.value}] params={logged}")
            return CallEnvelope.failure(e.message)
        except Exception:
            logger.exception(f"{name} raised an unexpected error params={logged}")
            return CallEnvelope.failure(f"Internal error while executing '{name}'")

        logger.info(f"{name} succeeded params={logged}")
        return CallEnvelope.success(result)
