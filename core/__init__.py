# Core module - Error taxonomy and the boundary service
# core.service is imported directly to keep this package import-cycle free

from .errors import (
    ArgusError, ErrorCategory, ErrorHandler,
    ValidationError, EmptyNameError, EmptyCommandError,
    DuplicateParameterNameError, InvalidSelectDefaultError, InvalidParameterValueError,
    NotFoundError, StorageError, CorruptDataError,
    MissingRequiredParameterError, SpawnError, InvalidWorkingDirectoryError
)

__all__ = [
    "ArgusError", "ErrorCategory", "ErrorHandler",
    "ValidationError", "EmptyNameError", "EmptyCommandError",
    "DuplicateParameterNameError", "InvalidSelectDefaultError", "InvalidParameterValueError",
    "NotFoundError", "StorageError", "CorruptDataError",
    "MissingRequiredParameterError", "SpawnError", "InvalidWorkingDirectoryError",
]
