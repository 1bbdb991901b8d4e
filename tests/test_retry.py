"""
Tests for bounded retry with exponential backoff.
"""

import pytest
from placeapprover.retry import (
    retry_call,
    backoff_delay,
    next_state,
    RetryError,
    SUCCESS,
    RETRY,
    EXHAUSTED,
)


class FlakyFunc:
    """Fails a fixed number of times, then returns 'success'."""

    def __init__(self, failures, exc=ConnectionError):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"Temporary failure {self.calls}")
        return "success"


class TestRetryCall:
    """Test the retry loop."""

    def test_success_on_first_try(self):
        """Function that succeeds immediately should not retry."""
        func = FlakyFunc(failures=0)
        delays = []

        assert retry_call(func, sleep=delays.append) == "success"
        assert func.calls == 1
        assert delays == []

    def test_retry_then_succeed(self):
        """Function that fails then succeeds should retry."""
        func = FlakyFunc(failures=2)
        delays = []

        result = retry_call(func, max_attempts=3, base_delay=2.0, sleep=delays.append)

        assert result == "success"
        assert func.calls == 3
        assert delays == [2.0, 4.0]

    def test_all_attempts_exhausted(self):
        """Should raise RetryError after max_attempts calls, without a trailing sleep."""
        func = FlakyFunc(failures=10)
        delays = []

        with pytest.raises(RetryError) as exc_info:
            retry_call(func, max_attempts=3, base_delay=2.0, sleep=delays.append)

        assert func.calls == 3
        assert delays == [2.0, 4.0]
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert "Temporary failure 3" in str(exc_info.value)

    def test_single_attempt(self):
        func = FlakyFunc(failures=1)
        delays = []

        with pytest.raises(RetryError):
            retry_call(func, max_attempts=1, sleep=delays.append)

        assert func.calls == 1
        assert delays == []

    def test_only_catches_specified_exceptions(self):
        """Should only retry on specified exception types."""
        func = FlakyFunc(failures=1, exc=KeyError)

        with pytest.raises(KeyError):
            retry_call(func, exceptions=(ConnectionError,), sleep=lambda s: None)

        assert func.calls == 1

    def test_on_retry_callback(self):
        seen = []

        def on_retry(attempt, exception, delay):
            seen.append((attempt, type(exception).__name__, delay))

        retry_call(
            FlakyFunc(failures=2),
            max_attempts=5,
            base_delay=0.5,
            exponential_base=3.0,
            on_retry=on_retry,
            sleep=lambda s: None,
        )

        assert seen == [(1, "ConnectionError", 0.5), (2, "ConnectionError", 1.5)]

    def test_custom_error_class(self):
        class ScrapeFailed(RetryError):
            pass

        with pytest.raises(ScrapeFailed):
            retry_call(FlakyFunc(failures=5), max_attempts=2, sleep=lambda s: None, error_class=ScrapeFailed)

    def test_passes_arguments(self):
        def add(a, b, scale=1):
            return (a + b) * scale

        assert retry_call(add, 1, 2, scale=10, sleep=lambda s: None) == 30

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            retry_call(FlakyFunc(failures=0), max_attempts=0)


class TestStateMachine:
    """Test the attempt transitions and delay schedule."""

    def test_backoff_delay(self):
        assert backoff_delay(1, 2.0) == 2.0
        assert backoff_delay(2, 2.0) == 4.0
        assert backoff_delay(3, 2.0) == 8.0
        assert backoff_delay(2, 1.0, exponential_base=3.0) == 3.0

    @pytest.mark.parametrize("attempt,failed,expected", [
        (1, False, SUCCESS),
        (3, False, SUCCESS),
        (1, True, RETRY),
        (2, True, RETRY),
        (3, True, EXHAUSTED),
    ])
    def test_next_state(self, attempt, failed, expected):
        assert next_state(attempt, 3, failed) == expected
