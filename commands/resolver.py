"""
Parameter Resolver
------------------
Expands {name} / ${name} placeholders in a command's executable and
arguments against user-supplied values.

Rules:
- Supplied non-empty value, else default_value, else fail if required, else ""
- Select parameters with options only accept one of their options
- Placeholders naming undeclared parameters are kept verbatim
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

from core.errors import InvalidParameterValueError, MissingRequiredParameterError

from .model import PLACEHOLDER_PATTERN, Command, CommandParameter


@dataclass(frozen=True)
class Literal:
    """Plain text segment."""
    text: str


@dataclass(frozen=True)
class Placeholder:
    """A placeholder segment; raw keeps the original spelling."""
    name: str
    raw: str


Segment = Union[Literal, Placeholder]


def tokenize(template: str) -> List[Segment]:
    """Split an argument template into literal and placeholder segments."""
    segments: List[Segment] = []
    position = 0

    for match in PLACEHOLDER_PATTERN.finditer(template):
        if match.start() > position:
            segments.append(Literal(template[position:match.start()]))
        segments.append(Placeholder(name=match.group(1), raw=match.group(0)))
        position = match.end()

    if position < len(template):
        segments.append(Literal(template[position:]))

    return segments


def render(segments: List[Segment], values: Mapping[str, str]) -> str:
    """Join segments, substituting known placeholders."""
    parts = []
    for segment in segments:
        if isinstance(segment, Placeholder):
            parts.append(values.get(segment.name, segment.raw))
        else:
            parts.append(segment.text)
    return "".join(parts)


def resolve_value(param: CommandParameter, supplied: Optional[str]) -> str:
    """Pick the concrete value for one declared parameter."""
    if supplied:
        value = supplied
    elif param.default_value is not None:
        value = param.default_value
    elif param.required:
        raise MissingRequiredParameterError(param.name)
    else:
        value = ""

    options = param.constrained_options
    if options and value not in options and (value or param.required):
        raise InvalidParameterValueError(param.name, value, options)

    return value


def resolve_values(
    parameters: List[CommandParameter],
    supplied: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Resolve every declared parameter to a string."""
    supplied = supplied or {}
    return {param.name: resolve_value(param, supplied.get(param.name)) for param in parameters}


def resolve_args(
    args: List[str],
    parameters: List[CommandParameter],
    supplied: Optional[Mapping[str, str]] = None,
) -> List[str]:
    """
    Produce the concrete argument list.

    Args without placeholders pass through unchanged. Raises
    MissingRequiredParameterError or InvalidParameterValueError.
    """
    values = resolve_values(parameters, supplied)
    return [render(tokenize(arg), values) for arg in args]


def required_prompts(command: Command) -> List[CommandParameter]:
    """Parameters a collaborator must ask for: required and without default."""
    return [
        param for param in command.parameters
        if param.required and param.default_value is None
    ]


@dataclass
class ResolvedCommand:
    """A command's executable and arguments with placeholders expanded."""
    command: str
    args: List[str] = field(default_factory=list)


def resolve_command(
    command: Command,
    supplied: Optional[Mapping[str, str]] = None,
) -> ResolvedCommand:
    """Resolve both the executable and the arguments of a command."""
    values = resolve_values(command.parameters, supplied)
    return ResolvedCommand(
        command=render(tokenize(command.command), values),
        args=[render(tokenize(arg), values) for arg in command.args],
    )
