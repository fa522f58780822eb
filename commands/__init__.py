# Commands module - Command model, registry store, parameter resolution
# This module does NOT spawn processes

from .model import (
    Command, CommandParameter, EnvironmentVariable, ParameterType,
    CreateCommandRequest, UpdateCommandRequest, validate
)
from .registry import CommandRegistry
from .resolver import resolve_args, resolve_command, required_prompts, tokenize
from .usage import UsageTracker

__all__ = [
    "Command",
    "CommandParameter",
    "EnvironmentVariable",
    "ParameterType",
    "CreateCommandRequest",
    "UpdateCommandRequest",
    "validate",
    "CommandRegistry",
    "resolve_args",
    "resolve_command",
    "required_prompts",
    "tokenize",
    "UsageTracker",
]
