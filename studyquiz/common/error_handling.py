"""
Error Handling Utilities

This module provides:
1. A retry helper with backoff for transient, retryable failures
2. Mapping of StudyQuiz exceptions to HTTP status codes
3. The standard error envelope returned by the API
"""

import asyncio
import functools
import random
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type, TypeVar

from studyquiz.common.exceptions import BaseError, DuplicateError, ValidationError
from studyquiz.common.logger import app_logger

T = TypeVar('T')

logger = app_logger.getChild("error_handling")


def retry(
    max_retries: int = 3,
    retry_delay: float = 0.05,
    backoff_factor: float = 2.0,
    jitter: float = 0.1,
    retry_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[int, Exception, float], None]] = None
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for retrying a coroutine function when given exceptions occur.

    After ``max_retries`` retries the last exception is re-raised.

    Args:
        max_retries: Maximum number of retries
        retry_delay: Initial delay between retries in seconds
        backoff_factor: Factor to increase delay with each retry
        jitter: Random jitter factor applied to each delay
        retry_exceptions: Exception types that trigger a retry
        on_retry: Optional callback called before each retry

    Returns:
        Decorator
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            retries = 0
            delay = retry_delay

            while True:
                try:
                    return await func(*args, **kwargs)
                except retry_exceptions as e:
                    retries += 1
                    if retries > max_retries:
                        raise

                    actual_delay = delay * (1 + random.uniform(-jitter, jitter))
                    if on_retry:
                        on_retry(retries, e, actual_delay)

                    logger.debug(
                        f"Retry {retries}/{max_retries} for {func.__name__} "
                        f"after {actual_delay:.3f}s due to {type(e).__name__}"
                    )
                    await asyncio.sleep(actual_delay)
                    delay *= backoff_factor

        return wrapper
    return decorator


def status_code_for(error: Exception) -> int:
    """Map an exception to the HTTP status code the API answers with."""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, DuplicateError):
        return 409
    return 500


def error_response(error: Exception, include_details: bool = True) -> Dict[str, Any]:
    """
    Generate the standardized API error envelope.

    Args:
        error: The error to describe
        include_details: Whether to include field-level details

    Returns:
        Error response dictionary
    """
    if isinstance(error, BaseError):
        response = {
            "status": "error",
            "code": error.code,
            "message": error.message
        }
        details = getattr(error, "errors", None)
        if include_details and details:
            response["details"] = details
        return response

    return {
        "status": "error",
        "code": "internal_error",
        "message": "Internal server error"
    }
