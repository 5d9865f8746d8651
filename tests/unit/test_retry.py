"""Unit tests for retry module."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from avif_converter.core.retry import (
    RetryAttempt,
    RetryError,
    RetryPolicy,
    RetryResult,
    retry_async,
    retry_call,
)


class TestRetryPolicy:
    """Tests for RetryPolicy dataclass."""

    def test_default_policy(self) -> None:
        """Test default configuration values."""
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.delay == 0.0
        assert policy.retry_on == (Exception,)

    def test_invalid_max_attempts(self) -> None:
        """Test that max_attempts must be at least 1."""
        with pytest.raises(ValueError, match="max_attempts must be at least 1"):
            RetryPolicy(max_attempts=0)

    def test_invalid_delay(self) -> None:
        """Test that delay must not be negative."""
        with pytest.raises(ValueError, match="delay must not be negative"):
            RetryPolicy(delay=-1)

    def test_invalid_backoff(self) -> None:
        """Test that backoff must be at least 1.0."""
        with pytest.raises(ValueError, match="backoff must be at least 1.0"):
            RetryPolicy(backoff=0.5)

    def test_delay_backoff_capped(self) -> None:
        """Test exponential delay growth and the max_delay cap."""
        policy = RetryPolicy(delay=1.0, backoff=2.0, max_delay=3.0)
        assert policy.delay_for(1) == 1.0
        assert policy.delay_for(2) == 2.0
        assert policy.delay_for(3) == 3.0

    def test_should_retry(self) -> None:
        """Test matching of retryable exception types."""
        policy = RetryPolicy(retry_on=(OSError,))
        assert policy.should_retry(FileNotFoundError()) is True
        assert policy.should_retry(ValueError()) is False


class TestRetryResult:
    """Tests for RetryResult dataclass."""

    def test_unwrap_success(self) -> None:
        """Test unwrap returns the value of a successful result."""
        result: RetryResult[int] = RetryResult(success=True, value=5)
        assert result.unwrap() == 5
        assert result.total_attempts == 1

    def test_unwrap_failure_raises(self) -> None:
        """Test unwrap raises RetryError after exhaustion."""
        error = OSError("disk")
        result: RetryResult[int] = RetryResult(
            success=False,
            attempts=[RetryAttempt(1, "OSError", "disk")],
            last_error=error,
            description="mkdir",
        )
        with pytest.raises(RetryError) as exc_info:
            result.unwrap()
        assert exc_info.value.attempts == 1
        assert exc_info.value.last_error is error

    def test_failure_report(self) -> None:
        """Test that the failure report lists every attempt."""
        result: RetryResult[None] = RetryResult(
            success=False,
            attempts=[
                RetryAttempt(1, "OSError", "first"),
                RetryAttempt(2, "OSError", "second"),
            ],
            description="copy",
        )
        report = result.get_failure_report()
        assert "copy failed after 2 attempt(s)" in report
        assert "Attempt 1: OSError: first" in report
        assert "Attempt 2: OSError: second" in report


class TestRetryCall:
    """Tests for retry_call function."""

    def test_first_attempt_succeeds(self) -> None:
        """Test that a succeeding operation runs once."""
        operation = MagicMock(return_value="ok")
        result = retry_call(operation, RetryPolicy(max_attempts=3))

        assert result.success is True
        assert result.value == "ok"
        assert result.total_attempts == 1
        operation.assert_called_once_with(1)

    def test_recovers_after_failures(self) -> None:
        """Test that attempt numbers are passed and failures recorded."""
        operation = MagicMock(side_effect=[OSError("a"), OSError("b"), "done"])
        result = retry_call(operation, RetryPolicy(max_attempts=3, retry_on=(OSError,)))

        assert result.success is True
        assert result.value == "done"
        assert result.total_attempts == 3
        assert [a.attempt_number for a in result.attempts] == [1, 2]
        assert [c.args[0] for c in operation.call_args_list] == [1, 2, 3]

    def test_exhaustion(self) -> None:
        """Test that the last error is kept after all attempts fail."""
        operation = MagicMock(side_effect=OSError("always"))
        result = retry_call(operation, RetryPolicy(max_attempts=2, retry_on=(OSError,)))

        assert result.success is False
        assert len(result.attempts) == 2
        assert str(result.last_error) == "always"

    def test_non_retryable_propagates(self) -> None:
        """Test that an unlisted exception is raised immediately."""
        operation = MagicMock(side_effect=ValueError("bad"))
        with pytest.raises(ValueError, match="bad"):
            retry_call(operation, RetryPolicy(max_attempts=3, retry_on=(OSError,)))
        operation.assert_called_once()

    def test_sleeps_between_attempts_only(self) -> None:
        """Test that no delay follows the final attempt."""
        sleep = MagicMock()
        operation = MagicMock(side_effect=OSError("x"))
        retry_call(operation, RetryPolicy(max_attempts=3, delay=0.5), sleep=sleep)

        assert sleep.call_count == 2
        sleep.assert_called_with(0.5)

    def test_on_failure_callback(self) -> None:
        """Test that on_failure receives the attempt number and error."""
        on_failure = MagicMock()
        error = OSError("x")
        retry_call(MagicMock(side_effect=error), RetryPolicy(max_attempts=1), on_failure=on_failure)
        on_failure.assert_called_once_with(1, error)


class TestRetryAsync:
    """Tests for retry_async function."""

    @pytest.mark.asyncio
    async def test_recovers(self) -> None:
        """Test async recovery on the second attempt."""
        calls: list[int] = []

        async def operation(attempt: int) -> str:
            calls.append(attempt)
            if attempt == 1:
                raise OSError("transient")
            return "ok"

        result = await retry_async(operation, RetryPolicy(max_attempts=3))

        assert result.success is True
        assert result.value == "ok"
        assert calls == [1, 2]

    @pytest.mark.asyncio
    async def test_exhaustion(self) -> None:
        """Test that every attempt is made before giving up."""
        calls: list[int] = []

        async def operation(attempt: int) -> None:
            calls.append(attempt)
            raise OSError("nope")

        result = await retry_async(operation, RetryPolicy(max_attempts=4))

        assert result.success is False
        assert calls == [1, 2, 3, 4]
        assert result.total_attempts == 4

    @pytest.mark.asyncio
    async def test_non_retryable_propagates(self) -> None:
        """Test that an unlisted exception escapes."""

        async def operation(attempt: int) -> None:
            raise KeyError("boom")

        with pytest.raises(KeyError):
            await retry_async(operation, RetryPolicy(retry_on=(OSError,)))
