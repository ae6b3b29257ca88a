"""Retry decorator with exponential backoff."""
import time
import functools
import socket
import ssl

from googleapiclient.errors import HttpError

from .exceptions import RetryableError
from .logger import get_logger

logger = get_logger()

# Exceptions that are safe to retry
RETRYABLE_ERRORS = (
    RetryableError,
    ConnectionError,
    TimeoutError,
    socket.timeout,
    ssl.SSLError,
    HttpError
)


def retry_with_backoff(max_retries=3, initial_delay=1.0, backoff_factor=2.0, retryable_exceptions=RETRYABLE_ERRORS):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Number of retries after the first attempt
        initial_delay: Wait time before the first retry, in seconds
        backoff_factor: Multiplier for wait time between retries
        retryable_exceptions: Tuple of exception types that trigger retry
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e

                    # Don't retry 4xx HttpErrors (except 429)
                    if isinstance(e, HttpError):
                        if e.resp.status < 500 and e.resp.status != 429:
                            raise

                    if attempt == max_retries:
                        break

                    wait_time = initial_delay * (backoff_factor ** attempt)
                    logger.warning(
                        f"Retry {attempt + 1}/{max_retries} for {func.__name__} "
                        f"after {wait_time:.1f}s: {e}"
                    )
                    time.sleep(wait_time)

            logger.error(f"Max retries ({max_retries}) exceeded for {func.__name__}: {last_exception}")
            raise last_exception

        return wrapper
    return decorator
