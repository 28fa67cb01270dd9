"""Command registry and declarative parameter schemas.

Architecture:
- ParamSpec: one declarative constraint (type, required, enum, bounds, default)
- CommandDescriptor: a named tool (description, params, async handler)
- CommandRegistry: name -> descriptor mapping, populated once at startup

The same ParamSpec declarations drive runtime validation and the JSON Schema
advertised to clients in ``tools/list``.

Usage:
    registry = CommandRegistry()
    registry.register(CommandDescriptor(
        name="getPost",
        description="Fetch a single post by ID.",
        params=(ParamSpec("id", ParamType.INTEGER, required=True, minimum=1),),
        handler=get_post,
    ))
    params = registry.get("getPost").validate({"id": 7})
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import ParameterError

logger = logging.getLogger(__name__)


class ParamType(str, Enum):
    """Primitive parameter types (JSON Schema names)."""

    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"


def _json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _coerce(value: Any, param_type: ParamType, label: str) -> Any:
    """Check ``value`` against a primitive type, returning the normalized value."""
    match param_type:
        case ParamType.INTEGER:
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            if isinstance(value, float) and value.is_integer():
                return int(value)
        case ParamType.NUMBER:
            if isinstance(value, int | float) and not isinstance(value, bool):
                return value
        case ParamType.STRING:
            if isinstance(value, str):
                return value
        case ParamType.BOOLEAN:
            if isinstance(value, bool):
                return value
        case ParamType.ARRAY:
            if isinstance(value, list):
                return value
    raise ParameterError(label, f"expected {param_type.value}, got {_json_type_name(value)}")


@dataclass(frozen=True)
class ParamSpec:
    """Declarative constraints for one parameter.

    Attributes:
        name: Parameter name as sent by the client
        type: Primitive type
        description: Human-readable description advertised to clients
        required: Whether the parameter must be present
        default: Value applied when an optional parameter is absent
        enum: Allowed values, if restricted
        minimum: Inclusive lower bound for numeric values
        maximum: Inclusive upper bound for numeric values
        items: Element type when ``type`` is ARRAY
    """

    name: str
    type: ParamType
    description: str = ""
    required: bool = False
    default: Any = None
    enum: tuple[Any, ...] | None = None
    minimum: float | None = None
    maximum: float | None = None
    items: ParamType | None = None

    def __post_init__(self) -> None:
        if self.type is ParamType.ARRAY and self.items is None:
            raise ValueError(f"Array parameter '{self.name}' needs an item type")
        if self.required and self.default is not None:
            raise ValueError(f"Required parameter '{self.name}' cannot have a default")

    def check(self, value: Any) -> Any:
        """Validate a present value and return its normalized form.

        Raises:
            ParameterError: On the first violated constraint
        """
        value = _coerce(value, self.type, self.name)
        if self.type is ParamType.ARRAY:
            assert self.items is not None
            return [
                self._check_scalar(_coerce(item, self.items, f"{self.name}[{index}]"))
                for index, item in enumerate(value)
            ]
        return self._check_scalar(value)

    def _check_scalar(self, value: Any) -> Any:
        if self.enum is not None and value not in self.enum:
            allowed = ", ".join(str(option) for option in self.enum)
            raise ParameterError(self.name, f"must be one of: {allowed}")
        if self.minimum is not None and value < self.minimum:
            raise ParameterError(self.name, f"must be >= {self._fmt(self.minimum)}")
        if self.maximum is not None and value > self.maximum:
            raise ParameterError(self.name, f"must be <= {self._fmt(self.maximum)}")
        return value

    @staticmethod
    def _fmt(bound: float) -> str:
        return str(int(bound)) if float(bound).is_integer() else str(bound)

    def to_json_schema(self) -> dict[str, Any]:
        """Render this parameter as a JSON Schema property."""
        schema: dict[str, Any] = {"type": self.type.value}
        if self.description:
            schema["description"] = self.description
        if self.items is not None:
            schema["items"] = {"type": self.items.value}
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.default is not None:
            schema["default"] = self.default
        return schema


# The actual signature is: Callable[[dict[str, Any]], Awaitable[Any]]
CommandHandler = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class CommandDescriptor:
    """A named, schema-validated remote operation."""

    name: str
    description: str
    params: tuple[ParamSpec, ...]
    handler: CommandHandler

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Command name cannot be empty")
        if not callable(self.handler):
            raise ValueError(f"Handler for '{self.name}' must be callable")
        names = [spec.name for spec in self.params]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate parameter names in '{self.name}'")

    def validate(self, raw: Mapping[str, Any] | None) -> dict[str, Any]:
        """Validate raw arguments and apply documented defaults.

        Null values count as absent. Unknown keys are dropped.

        Returns:
            The validated parameters

        Raises:
            ParameterError: On the first violation found, in declaration order
        """
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise ParameterError(None, f"arguments must be an object, got {_json_type_name(raw)}")

        validated: dict[str, Any] = {}
        for spec in self.params:
            value = raw.get(spec.name)
            if value is None:
                if spec.required:
                    raise ParameterError(spec.name, "is required")
                if spec.default is not None:
                    validated[spec.name] = spec.default
                continue
            validated[spec.name] = spec.check(value)

        unknown = set(raw) - {spec.name for spec in self.params}
        if unknown:
            logger.debug(f"Ignoring unknown arguments for {self.name}: {sorted(unknown)}")
        return validated

    def input_schema(self) -> dict[str, Any]:
        """JSON Schema for the command's arguments object."""
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {spec.name: spec.to_json_schema() for spec in self.params},
        }
        required = [spec.name for spec in self.params if spec.required]
        if required:
            schema["required"] = required
        return schema

    def to_tool(self) -> dict[str, Any]:
        """MCP tool definition as returned by ``tools/list``."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


class CommandRegistry:
    """Mapping from command name to descriptor.

    Populated once at startup and treated as read-only afterwards, so lookups
    need no locking.
    """

    def __init__(self, descriptors: Iterable[CommandDescriptor] = ()) -> None:
        self._commands: dict[str, CommandDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: CommandDescriptor) -> None:
        """Register a command.

        Raises:
            ValueError: If a command with the same name is already registered
        """
        if descriptor.name in self._commands:
            raise ValueError(f"Command '{descriptor.name}' already registered")
        self._commands[descriptor.name] = descriptor
        logger.debug(f"Registered command: {descriptor.name}")

    def get(self, name: str) -> CommandDescriptor | None:
        return self._commands.get(name)

    def list_commands(self) -> list[CommandDescriptor]:
        return list(self._commands.values())

    def list_names(self) -> list[str]:
        return list(self._commands)

    @property
    def count(self) -> int:
        return len(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)
