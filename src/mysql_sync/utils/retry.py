"""
Retry decorators with exponential backoff

Provides:
- retry_with_backoff: generic decorator, used for the page retry policy
- retry_database_operation: retries only transient MySQL failures, used
  for catalog reads

Usage:
    from mysql_sync.utils.retry import retry_with_backoff

    @retry_with_backoff(max_retries=2, base_delay=0.1, max_delay=2.0, jitter=False)
    def apply_page():
        ...
"""

import logging
import random
import time
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

import pymysql

logger = logging.getLogger(__name__)

# MySQL client/server error codes that clear up on their own
TRANSIENT_MYSQL_ERROR_CODES = frozenset({
    1040,  # too many connections
    1205,  # lock wait timeout exceeded
    1213,  # deadlock found
    2003,  # can't connect to server
    2006,  # server has gone away
    2013,  # lost connection during query
})


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """
    Backoff delay before retry number ``attempt + 1``

    Args:
        attempt: Zero-based index of the attempt that just failed
        base_delay: Delay after the first failure in seconds
        max_delay: Upper bound for the delay
        exponential_base: Growth factor per attempt
        jitter: Add +/-25% random jitter (never below 0.1s)

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        jitter_amount = delay * 0.25
        delay = max(0.1, delay + random.uniform(-jitter_amount, jitter_amount))
    return delay


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    retry_if: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
):
    """
    Decorator that retries a function with exponential backoff

    The wrapped function runs at most ``max_retries + 1`` times. The last
    exception is re-raised once attempts are exhausted.

    Args:
        max_retries: Number of retries after the first attempt (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        exponential_base: Base for exponential backoff (default: 2.0)
        jitter: Add random jitter to prevent thundering herd (default: True)
        retryable_exceptions: Tuple of exception types to retry (default: all)
        retry_if: Predicate deciding whether a caught exception is retried
        on_retry: Callback function(attempt, exception, delay) called on each retry

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: Callable) -> Callable:
        func_name = getattr(func, "__name__", "function")

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if retryable_exceptions and not isinstance(e, retryable_exceptions):
                        logger.error(
                            f"Non-retryable exception in {func_name}: {type(e).__name__}: {e}"
                        )
                        raise
                    if retry_if is not None and not retry_if(e):
                        logger.error(
                            f"Non-retryable error in {func_name}: {type(e).__name__}: {e}"
                        )
                        raise
                    if attempt == max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) exceeded for {func_name}: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = compute_delay(
                        attempt, base_delay, max_delay, exponential_base, jitter
                    )
                    logger.warning(
                        f"Attempt {attempt + 1}/{max_retries + 1} failed for {func_name}: "
                        f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
                    )

                    if on_retry:
                        try:
                            on_retry(attempt + 1, e, delay)
                        except Exception as callback_error:
                            logger.error(f"Error in retry callback: {callback_error}")

                    time.sleep(delay)

            raise RuntimeError(f"Unexpected error in retry logic for {func_name}")

        return wrapper
    return decorator


def is_transient_mysql_error(exception: Exception) -> bool:
    """
    Determine if a MySQL exception is worth retrying

    Syntax errors, unknown columns and constraint violations are permanent;
    connection loss, deadlocks and lock wait timeouts are transient.
    """
    cause = exception.__cause__ if exception.__cause__ is not None else exception
    if isinstance(cause, (pymysql.err.OperationalError, pymysql.err.InternalError)):
        code = cause.args[0] if cause.args else None
        return code in TRANSIENT_MYSQL_ERROR_CODES
    if isinstance(cause, pymysql.err.InterfaceError):
        return True
    return isinstance(cause, (ConnectionError, TimeoutError))


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
):
    """
    Convenience decorator for catalog reads

    Only transient MySQL failures are retried, anything else fails fast.

    Example:
        @retry_database_operation(max_retries=3)
        def count_rows(self, table):
            ...
    """
    return retry_with_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        retry_if=is_transient_mysql_error,
        on_retry=on_retry,
    )
