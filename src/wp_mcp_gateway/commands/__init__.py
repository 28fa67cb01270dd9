"""Command registry, dispatcher and the WordPress tool set."""

from .dispatcher import CallEnvelope, Dispatcher, TextContent
from .registry import CommandDescriptor, CommandHandler, CommandRegistry, ParamSpec, ParamType
from .wordpress import build_registry

__all__ = [
    "CallEnvelope",
    "CommandDescriptor",
    "CommandHandler",
    "CommandRegistry",
    "Dispatcher",
    "ParamSpec",
    "ParamType",
    "TextContent",
    "build_registry",
]
