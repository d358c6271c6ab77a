"""
Common Components for StudyQuiz

Shared infrastructure used by the analytics modules:
1. Logging - Centralized logger configuration
2. Exceptions - Error hierarchy for validation and storage failures
3. Error Handling - Retry helper and API error envelopes
"""

from studyquiz.common.logger import app_logger, with_context, log_execution_time
from studyquiz.common.exceptions import (
    BaseError,
    DatabaseError,
    StoreUnavailableError,
    ConcurrencyError,
    ValidationError,
    ConfigurationError,
    DuplicateError,
)
from studyquiz.common.error_handling import retry, error_response, status_code_for

__all__ = [
    'app_logger',
    'with_context',
    'log_execution_time',
    'BaseError',
    'DatabaseError',
    'StoreUnavailableError',
    'ConcurrencyError',
    'ValidationError',
    'ConfigurationError',
    'DuplicateError',
    'retry',
    'error_response',
    'status_code_for',
]
