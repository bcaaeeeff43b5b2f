"""
Retry decorator with exponential backoff for async functions.
"""
import logging
from functools import wraps
from typing import Callable, Optional, Tuple, Type, Union

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from xsession.messages import get_logger

from .exceptions import ConnectionLostError


def with_retry(
    retries: int = 3,
    delay: float = 0,
    exceptions: Union[Type[Exception], Tuple[Type[Exception], ...]] = (
        ConnectionLostError,
    ),
    logger_name: str = "xsession.retry",
    retry_if_func: Optional[Callable] = None,
):
    """
    Retry decorator with exponential backoff for async functions.

    Args:
        retries: Maximum number of attempts (default: 3)
        delay: Initial delay between retries in seconds (default: 0)
        exceptions: Exception types to retry on (default: ConnectionLostError)
        logger_name: Name for logging retry attempts (default: xsession.retry)
        retry_if_func: Optional predicate deciding whether an error is retried.
            Takes (exception) and returns bool. If provided, overrides exceptions.

    Example:
        @with_retry(retries=2, retry_if_func=is_unknown_capability)
        async def open_channel(self, sequence):
            ...

    Raises:
        The last error: If all attempts fail
    """
    logger = get_logger(logger_name)
    standard_logger = logger.logger if hasattr(logger, "logger") else logger

    def decorator(func):
        if retry_if_func:
            retry_condition = retry_if_exception(retry_if_func)
        else:
            retry_condition = retry_if_exception_type(exceptions)

        @retry(
            stop=stop_after_attempt(retries),
            wait=wait_exponential(multiplier=delay, min=delay, max=delay * 8),
            retry=retry_condition,
            before_sleep=before_sleep_log(standard_logger, logging.WARNING),
            reraise=True,
        )
        @wraps(func)
        async def wrapper(*args, **kwargs):
            return await func(*args, **kwargs)

        return wrapper

    return decorator
