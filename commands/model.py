"""
Command Model
-------------
Stored command definitions, their parameters and environment.
Pure data plus validation. No I/O.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import re

from core.errors import (
    DuplicateParameterNameError,
    EmptyCommandError,
    EmptyNameError,
    InvalidSelectDefaultError,
)

# Matches {name} and ${name}
PLACEHOLDER_PATTERN = re.compile(r"\$?\{([^{}]+)\}")


class ParameterType(str, Enum):
    """Input affordance of a parameter."""
    TEXT = "text"
    FILE = "file"
    DIRECTORY = "directory"
    SELECT = "select"

    @classmethod
    def parse(cls, value: Any) -> "ParameterType":
        """Read a type name, falling back to TEXT for unknown names."""
        if isinstance(value, ParameterType):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.TEXT


@dataclass
class EnvironmentVariable:
    """A key/value pair overlaid on the inherited environment."""
    key: str
    value: str

    @property
    def is_set(self) -> bool:
        return bool(self.key) and bool(self.value)

    def to_dict(self) -> Dict[str, str]:
        return {"key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict) -> "EnvironmentVariable":
        return cls(key=data["key"], value=data["value"])


@dataclass
class CommandParameter:
    """A named placeholder resolved at execution time."""
    name: str
    placeholder: str = ""
    parameter_type: ParameterType = ParameterType.TEXT
    required: bool = False
    default_value: Optional[str] = None
    options: Optional[List[str]] = None

    def __post_init__(self):
        self.parameter_type = ParameterType.parse(self.parameter_type)

    @property
    def constrained_options(self) -> List[str]:
        """Options a value must belong to; empty when unconstrained."""
        if self.parameter_type == ParameterType.SELECT and self.options:
            return list(self.options)
        return []

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "placeholder": self.placeholder,
            "parameter_type": self.parameter_type.value,
            "required": self.required,
        }
        if self.default_value is not None:
            data["default_value"] = self.default_value
        if self.options is not None:
            data["options"] = list(self.options)
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "CommandParameter":
        options = data.get("options")
        return cls(
            name=data["name"],
            placeholder=data.get("placeholder", ""),
            parameter_type=ParameterType.parse(data.get("parameter_type", "text")),
            required=bool(data.get("required", False)),
            default_value=data.get("default_value"),
            options=list(options) if options is not None else None,
        )


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    # fromisoformat() before 3.11 rejects the trailing "Z"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def dedupe_tags(tags: List[str]) -> List[str]:
    """Drop repeated tags, keeping the first occurrence."""
    seen = set()
    result = []
    for tag in tags:
        if tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


@dataclass
class Command:
    """
    A stored, reusable command definition.

    The registry owns the authoritative copy; everything else works on
    copies for the duration of one operation.
    """
    id: str
    name: str
    command: str
    created_at: datetime
    updated_at: datetime
    args: List[str] = field(default_factory=list)
    description: Optional[str] = None
    working_directory: Optional[str] = None
    environment_variables: List[EnvironmentVariable] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    last_used_at: Optional[datetime] = None
    use_count: int = 0
    parameters: List[CommandParameter] = field(default_factory=list)
    mise_enabled: bool = False

    def full_command(self) -> str:
        """The command line as a single space-joined string."""
        return " ".join([self.command, *self.args])

    def detect_placeholders(self) -> List[str]:
        """Distinct placeholder names, in order of first appearance."""
        names: List[str] = []
        for part in [self.command, *self.args]:
            for match in PLACEHOLDER_PATTERN.finditer(part):
                if match.group(1) not in names:
                    names.append(match.group(1))
        return names

    def effective_environment(self) -> Dict[str, str]:
        """Set environment pairs as a mapping; the last duplicate key wins."""
        return {env.key: env.value for env in self.environment_variables if env.is_set}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the registry file. Absent optionals are omitted."""
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "command": self.command,
            "args": list(self.args),
        }
        if self.description is not None:
            data["description"] = self.description
        if self.working_directory is not None:
            data["working_directory"] = self.working_directory
        data["environment_variables"] = [env.to_dict() for env in self.environment_variables]
        data["tags"] = list(self.tags)
        data["created_at"] = _format_timestamp(self.created_at)
        data["updated_at"] = _format_timestamp(self.updated_at)
        if self.last_used_at is not None:
            data["last_used_at"] = _format_timestamp(self.last_used_at)
        data["use_count"] = self.use_count
        data["parameters"] = [param.to_dict() for param in self.parameters]
        data["mise_enabled"] = self.mise_enabled
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "Command":
        """
        Rebuild a command from its serialized form.

        Raises KeyError/TypeError/ValueError on malformed input; the
        registry turns those into CorruptDataError.
        """
        return cls(
            id=str(data["id"]),
            name=data["name"],
            command=data["command"],
            args=list(data.get("args") or []),
            description=data.get("description"),
            working_directory=data.get("working_directory"),
            environment_variables=[
                EnvironmentVariable.from_dict(env)
                for env in data.get("environment_variables") or []
            ],
            tags=list(data.get("tags") or []),
            created_at=_parse_timestamp(data["created_at"]),
            updated_at=_parse_timestamp(data["updated_at"]),
            last_used_at=_parse_timestamp(data.get("last_used_at")),
            use_count=int(data.get("use_count", 0)),
            parameters=[
                CommandParameter.from_dict(param)
                for param in data.get("parameters") or []
            ],
            mise_enabled=bool(data.get("mise_enabled", False)),
        )

    def __repr__(self) -> str:
        return f"Command(id={self.id}, name={self.name})"


@dataclass
class CreateCommandRequest:
    """Fields a user supplies when saving a new command."""
    name: str
    command: str
    args: List[str] = field(default_factory=list)
    description: Optional[str] = None
    working_directory: Optional[str] = None
    environment_variables: List[EnvironmentVariable] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    parameters: List[CommandParameter] = field(default_factory=list)
    mise_enabled: bool = False


@dataclass
class UpdateCommandRequest:
    """Partial update. None means the field was not supplied."""
    name: Optional[str] = None
    command: Optional[str] = None
    args: Optional[List[str]] = None
    description: Optional[str] = None
    working_directory: Optional[str] = None
    environment_variables: Optional[List[EnvironmentVariable]] = None
    tags: Optional[List[str]] = None
    parameters: Optional[List[CommandParameter]] = None
    mise_enabled: Optional[bool] = None

    def supplied_fields(self) -> Dict[str, Any]:
        return {
            name: value
            for name, value in self.__dict__.items()
            if value is not None
        }


def validate(command: Command) -> None:
    """
    Check a command definition.

    Raises the matching ValidationError subclass on the first problem.
    """
    if not command.name or not command.name.strip():
        raise EmptyNameError()
    if not command.command or not command.command.strip():
        raise EmptyCommandError()

    seen = set()
    for param in command.parameters:
        if param.name in seen:
            raise DuplicateParameterNameError(param.name)
        seen.add(param.name)

        options = param.constrained_options
        if options and param.default_value and param.default_value not in options:
            raise InvalidSelectDefaultError(param.name, param.default_value, options)
