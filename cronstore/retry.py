"""
Retry with exponential backoff, for hosts.

Store operations never retry on their own. A host that starts before its
database (containers, rolling restarts) can wrap open() with these helpers.
"""

import time
import functools
from typing import Callable, Type, Tuple, Optional

from .errors import QueryTimeoutError, StoreConnectionError


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""
    pass


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential calculation (delay *= base)
        exceptions: Tuple of exceptions to catch and retry
        on_retry: Optional callback function(attempt, exception, delay)

    Example:
        @exponential_backoff(max_retries=5, exceptions=(StoreConnectionError,))
        def start():
            conn.open()
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {str(e)}"
                        ) from e

                    current_delay = min(delay, max_delay)
                    if on_retry:
                        on_retry(attempt + 1, e, current_delay)

                    time.sleep(current_delay)
                    delay *= exponential_base

        return wrapper
    return decorator


def is_transient_error(exception: Exception) -> bool:
    """
    Determine if an exception is likely transient and worth retrying.

    Args:
        exception: Exception to check

    Returns:
        True for connection failures, timeouts and similar messages
    """
    if isinstance(exception, (StoreConnectionError, QueryTimeoutError)):
        return True

    error_str = str(exception).lower()

    transient_keywords = [
        'timeout',
        'timed out',
        'connection refused',
        'connection reset',
        'could not connect',
        'server closed the connection',
        'the database system is starting up',
        'too many connections',
    ]

    return any(keyword in error_str for keyword in transient_keywords)


def open_with_retry(
    connection,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    on_retry: Optional[Callable] = None,
) -> None:
    """
    Call ``connection.open()`` until it succeeds or attempts run out.

    Only StoreConnectionError is retried; provisioning failures (QueryError)
    propagate at once. A connection that is already open or closed is a
    caller error and is not retried.

    Raises:
        StoreConnectionError: The connection is already open or closed
        RetryError: All attempts failed; the last StoreConnectionError is chained
    """
    if connection.is_open or connection.closed:
        raise StoreConnectionError("Connection is already open or closed")

    @exponential_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        max_delay=max_delay,
        exceptions=(StoreConnectionError,),
        on_retry=on_retry,
    )
    def _open():
        connection.open()

    _open()
