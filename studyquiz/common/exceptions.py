"""
Common Exception Classes

This module defines the exceptions raised across StudyQuiz. Storage failures
all derive from ``DatabaseError`` so callers can isolate them per topic.
"""

from typing import Optional, Any


class BaseError(Exception):
    """Base class for all custom exceptions."""

    code = "unknown_error"

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        """
        Initialize the exception.

        Args:
            message: Error message
            original_exception: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class DatabaseError(BaseError):
    """Exception raised for storage-related errors."""

    code = "database_error"

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(f"Database error: {message}", original_exception)


class StoreUnavailableError(DatabaseError):
    """The analytics store could not be reached or rejected the operation."""

    code = "store_unavailable"


class ConcurrencyError(DatabaseError):
    """An optimistic read-modify-write kept conflicting and ran out of retries."""

    code = "concurrency_conflict"

    def __init__(self, key: Any, attempts: int, original_exception: Optional[Exception] = None):
        super().__init__(f"update of {key} still conflicting after {attempts} attempts", original_exception)
        self.key = key
        self.attempts = attempts


class ValidationError(BaseError):
    """Exception raised for validation errors."""

    code = "validation_error"

    def __init__(self, message: str, errors: Optional[dict] = None):
        """
        Initialize the validation error.

        Args:
            message: Error message
            errors: Dictionary of field errors
        """
        super().__init__(f"Validation error: {message}")
        self.errors = errors or {}


class ConfigurationError(BaseError):
    """Exception raised for configuration-related errors."""

    code = "configuration_error"

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(f"Configuration error: {message}")
        self.config_key = config_key


class DuplicateError(BaseError):
    """Exception raised when attempting to create a duplicate resource."""

    code = "duplicate"

    def __init__(self, resource_type: str, identifier: Any):
        """
        Initialize the duplicate error.

        Args:
            resource_type: Type of resource that was duplicated
            identifier: The identifier that caused the duplicate
        """
        super().__init__(f"Duplicate {resource_type} with identifier {identifier}")
        self.resource_type = resource_type
        self.identifier = identifier
