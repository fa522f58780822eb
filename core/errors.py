"""
Error Handling Module
---------------------
Typed errors for the registry and execution engine.
No automatic retries: every failure goes back to the caller.
"""

from enum import Enum, auto
from typing import Dict, List, Optional
import logging


class ErrorCategory(Enum):
    """Categories of errors for handling decisions."""
    VALIDATION = auto()     # Bad input shape, re-prompt
    NOT_FOUND = auto()      # Unknown command id
    STORAGE = auto()        # Backing file unreadable/unwritable
    CORRUPT_DATA = auto()   # Backing file exists but cannot be parsed
    PARAMETER = auto()      # Parameter resolution failed
    SPAWN = auto()          # Process could not be started


class ArgusError(Exception):
    """Base class for all engine errors."""

    category: ErrorCategory = ErrorCategory.STORAGE
    recoverable: bool = True

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.category.name}: {self.message})"


# Validation

class ValidationError(ArgusError):
    """A command definition or parameter value has an invalid shape."""
    category = ErrorCategory.VALIDATION


class EmptyNameError(ValidationError):
    def __init__(self):
        super().__init__("Command name must not be empty", {"field": "name"})


class EmptyCommandError(ValidationError):
    def __init__(self):
        super().__init__("Command must not be empty", {"field": "command"})


class DuplicateParameterNameError(ValidationError):
    def __init__(self, name: str):
        super().__init__(f"Duplicate parameter name: {name}", {"parameter": name})
        self.name = name


class InvalidSelectDefaultError(ValidationError):
    def __init__(self, name: str, default: str, options: List[str]):
        super().__init__(
            f"Default value '{default}' for parameter '{name}' is not one of {options}",
            {"parameter": name, "default_value": default, "options": options},
        )
        self.name = name


class InvalidParameterValueError(ValidationError):
    """A select parameter resolved to a value outside its options."""

    def __init__(self, name: str, value: str, options: List[str]):
        super().__init__(
            f"Value '{value}' for parameter '{name}' must be one of {options}",
            {"parameter": name, "value": value, "options": options},
        )
        self.name = name
        self.value = value


# Registry

class NotFoundError(ArgusError):
    category = ErrorCategory.NOT_FOUND

    def __init__(self, command_id: str):
        super().__init__(f"Command not found: {command_id}", {"id": command_id})
        self.command_id = command_id


class StorageError(ArgusError):
    """I/O failure on the registry file."""
    category = ErrorCategory.STORAGE
    recoverable = False


class CorruptDataError(StorageError):
    """The registry file exists but cannot be parsed."""
    category = ErrorCategory.CORRUPT_DATA

    def __init__(self, path: str, detail: str):
        super().__init__(
            f"Registry file {path} is corrupt: {detail}",
            {"path": path, "detail": detail},
        )
        self.path = path
        self.detail = detail


# Execution

class MissingRequiredParameterError(ArgusError):
    category = ErrorCategory.PARAMETER

    def __init__(self, name: str):
        super().__init__(f"Missing required parameter: {name}", {"parameter": name})
        self.name = name


class SpawnError(ArgusError):
    """The process could not be started at all."""
    category = ErrorCategory.SPAWN

    def __init__(self, reason: str, details: Optional[Dict] = None):
        super().__init__(f"Failed to start process: {reason}", details)
        self.reason = reason


class InvalidWorkingDirectoryError(SpawnError):
    def __init__(self, path: str):
        super().__init__(f"working directory does not exist: {path}", {"path": path})
        self.path = path


class ErrorHandler:
    """
    Central error handler with logging and user messages.
    """

    LOG_LEVELS: Dict[ErrorCategory, int] = {
        ErrorCategory.VALIDATION: logging.WARNING,
        ErrorCategory.PARAMETER: logging.WARNING,
        ErrorCategory.NOT_FOUND: logging.WARNING,
        ErrorCategory.SPAWN: logging.ERROR,
        ErrorCategory.STORAGE: logging.ERROR,
        ErrorCategory.CORRUPT_DATA: logging.CRITICAL,
    }

    def __init__(self):
        self._logger = logging.getLogger("argus.errors")
        self._error_history: List[ArgusError] = []
        self._max_history = 100

    def handle(self, error: ArgusError) -> str:
        """
        Log an error and return a user-friendly message.
        """
        level = self.LOG_LEVELS.get(error.category, logging.ERROR)
        self._logger.log(
            level,
            f"{error.category.name}: {error.message}",
            extra={"details": error.details},
        )

        self._error_history.append(error)
        if len(self._error_history) > self._max_history:
            self._error_history.pop(0)

        return self._get_user_message(error)

    def _get_user_message(self, error: ArgusError) -> str:
        messages = {
            ErrorCategory.VALIDATION: error.message,
            ErrorCategory.PARAMETER: error.message,
            ErrorCategory.NOT_FOUND: "That command no longer exists.",
            ErrorCategory.SPAWN: error.message,
            ErrorCategory.STORAGE: f"Could not access the command registry: {error.message}",
            ErrorCategory.CORRUPT_DATA: (
                "The command registry file is damaged and was left untouched. "
                f"{error.message}"
            ),
        }
        return messages.get(error.category, "An error occurred.")

    def get_error_stats(self) -> Dict[str, int]:
        """Get error counts per category."""
        stats: Dict[str, int] = {}
        for error in self._error_history:
            key = error.category.name
            stats[key] = stats.get(key, 0) + 1
        return stats

    def clear_history(self) -> None:
        self._error_history.clear()
