"""
Retry logic with exponential backoff for handling transient failures.

The retry loop is a bounded state machine: each attempt either succeeds,
schedules a retry after ``base_delay * exponential_base ** (attempt - 1)``
seconds, or exhausts the attempt budget and raises ``RetryError``.
The sleep function is injectable so timing can be asserted without
real timers.
"""

import time
from typing import Any, Callable, Optional, Tuple, Type


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


# Attempt states
SUCCESS = "success"
RETRY = "retry"
EXHAUSTED = "exhausted"


def backoff_delay(attempt: int, base_delay: float, exponential_base: float = 2.0) -> float:
    """Delay to wait after the given (1-based) failed attempt."""
    return base_delay * exponential_base ** (attempt - 1)


def next_state(attempt: int, max_attempts: int, failed: bool) -> str:
    """Transition for an attempt: success, retry, or exhausted."""
    if not failed:
        return SUCCESS
    if attempt < max_attempts:
        return RETRY
    return EXHAUSTED


def retry_call(
    func: Callable[..., Any],
    *args,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    error_class: Type[RetryError] = RetryError,
    **kwargs,
):
    """
    Call ``func`` until it succeeds or ``max_attempts`` calls have failed.

    Args:
        func: Callable to invoke
        max_attempts: Total number of calls allowed (>= 1)
        base_delay: Delay in seconds after the first failure
        exponential_base: Multiplier applied to the delay after each failure
        exceptions: Exception types that count as a failed attempt
        on_retry: Optional callback(attempt, exception, delay) before sleeping
        sleep: Function used to wait between attempts
        error_class: RetryError subclass raised on exhaustion

    Raises:
        error_class: After the final attempt fails, chained to the last error
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 1
    while True:
        try:
            result = func(*args, **kwargs)
        except exceptions as e:
            state = next_state(attempt, max_attempts, failed=True)
            if state == EXHAUSTED:
                raise error_class(
                    f"Failed after {max_attempts} attempts: {e}",
                    attempts=attempt,
                ) from e

            delay = backoff_delay(attempt, base_delay, exponential_base)
            if on_retry:
                on_retry(attempt, e, delay)
            sleep(delay)
            attempt += 1
        else:
            return result
