"""Unified retry logic for transient failures.

Every retry loop in the pipeline (directory creation fallback during
discovery, rename fallback, conversion retries and verification reads) goes
through this module so that attempt counting, delays and reporting behave the
same everywhere.

Retry Policy:
    1. Call the operation with the 1-based attempt number.
    2. Stop at the first success.
    3. On an exception listed in ``retry_on``: record it, wait ``delay_for``
       and try again until ``max_attempts`` is reached.
    4. Any other exception propagates immediately.

Example:
    >>> from avif_converter.core.retry import RetryPolicy, retry_call
    >>> policy = RetryPolicy(max_attempts=3, retry_on=(OSError,))
    >>> result = retry_call(lambda attempt: path.mkdir(parents=True), policy)
    >>> if not result.success:
    ...     print(result.get_failure_report())
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts, including the first one.
        delay: Seconds to wait before the second attempt.
        backoff: Multiplier applied to the delay after each failed attempt.
        max_delay: Upper bound for a single delay.
        retry_on: Exception types that trigger another attempt.
    """

    max_attempts: int = 3
    delay: float = 0.0
    backoff: float = 1.0
    max_delay: float = 60.0
    retry_on: tuple[type[Exception], ...] = (Exception,)

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")
        if self.backoff < 1.0:
            raise ValueError("backoff must be at least 1.0")

    def delay_for(self, attempt_number: int) -> float:
        """Return the wait before the attempt following ``attempt_number``."""
        wait = self.delay * (self.backoff ** max(0, attempt_number - 1))
        return min(wait, self.max_delay)

    def should_retry(self, error: BaseException) -> bool:
        """Check whether an exception is considered transient."""
        return isinstance(error, self.retry_on)


@dataclass
class RetryAttempt:
    """Record of a single failed attempt.

    Attributes:
        attempt_number: Which attempt this was (1-based).
        error_type: Class name of the raised exception.
        error_message: String form of the raised exception.
        duration_seconds: Time taken by the attempt.
    """

    attempt_number: int
    error_type: str
    error_message: str
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "attempt_number": self.attempt_number,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "duration_seconds": self.duration_seconds,
        }


class RetryError(Exception):
    """Raised by ``RetryResult.unwrap`` when every attempt failed.

    Attributes:
        description: What was being attempted.
        attempts: Number of attempts made.
        last_error: The exception raised by the final attempt.
    """

    def __init__(self, description: str, attempts: int, last_error: BaseException | None) -> None:
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{description} failed after {attempts} attempt(s): {last_error}")


@dataclass
class RetryResult(Generic[T]):
    """Result of a retried operation.

    Attributes:
        success: Whether one of the attempts succeeded.
        value: Return value of the successful attempt.
        attempts: Failed attempts in order.
        last_error: Exception raised by the last failed attempt.
        description: What was being attempted.
        total_duration_seconds: Total time across all attempts.
    """

    success: bool
    value: T | None = None
    attempts: list[RetryAttempt] = field(default_factory=list)
    last_error: BaseException | None = None
    description: str = "operation"
    total_duration_seconds: float = 0.0

    @property
    def total_attempts(self) -> int:
        """Number of attempts made, including the successful one."""
        return len(self.attempts) + (1 if self.success else 0)

    def unwrap(self) -> T:
        """Return the value or raise ``RetryError`` if every attempt failed."""
        if not self.success:
            raise RetryError(self.description, len(self.attempts), self.last_error)
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "success": self.success,
            "description": self.description,
            "total_attempts": self.total_attempts,
            "total_duration_seconds": self.total_duration_seconds,
            "attempts": [a.to_dict() for a in self.attempts],
        }

    def get_failure_report(self) -> str:
        """Generate a human-readable failure report.

        Returns:
            Formatted string describing all failed attempts.
        """
        if self.success:
            return f"{self.description} succeeded after {self.total_attempts} attempt(s)"

        lines = [f"{self.description} failed after {len(self.attempts)} attempt(s):"]
        for attempt in self.attempts:
            lines.append(
                f"  Attempt {attempt.attempt_number}: "
                f"{attempt.error_type}: {attempt.error_message}"
            )
        return "\n".join(lines)


def _record(attempt_number: int, error: BaseException, started: float) -> RetryAttempt:
    return RetryAttempt(
        attempt_number=attempt_number,
        error_type=type(error).__name__,
        error_message=str(error),
        duration_seconds=time.monotonic() - started,
    )


def retry_call(
    operation: Callable[[int], T],
    policy: RetryPolicy,
    *,
    description: str = "operation",
    on_failure: Callable[[int, Exception], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryResult[T]:
    """Run a synchronous operation with retries.

    Args:
        operation: Callable receiving the 1-based attempt number.
        policy: Retry policy to apply.
        description: Human-readable name used in logs and reports.
        on_failure: Optional callback invoked after each failed attempt.
        sleep: Sleep function (injectable for tests).

    Returns:
        RetryResult with the value of the first successful attempt.

    Raises:
        Exception: Any exception not matched by ``policy.retry_on``.
    """
    result: RetryResult[T] = RetryResult(success=False, description=description)
    run_started = time.monotonic()

    for attempt_number in range(1, policy.max_attempts + 1):
        started = time.monotonic()
        try:
            value = operation(attempt_number)
        except Exception as e:
            if not policy.should_retry(e):
                raise
            result.attempts.append(_record(attempt_number, e, started))
            result.last_error = e
            logger.debug("%s attempt %d failed: %s", description, attempt_number, e)
            if on_failure is not None:
                on_failure(attempt_number, e)
            if attempt_number < policy.max_attempts:
                wait = policy.delay_for(attempt_number)
                if wait > 0:
                    sleep(wait)
            continue

        result.success = True
        result.value = value
        break

    result.total_duration_seconds = time.monotonic() - run_started
    return result


async def retry_async(
    operation: Callable[[int], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str = "operation",
    on_failure: Callable[[int, Exception], None] | None = None,
) -> RetryResult[T]:
    """Run an asynchronous operation with retries.

    Cancellation is never retried: ``asyncio.CancelledError`` is not an
    ``Exception`` subclass and propagates to the caller.

    Args:
        operation: Coroutine function receiving the 1-based attempt number.
        policy: Retry policy to apply.
        description: Human-readable name used in logs and reports.
        on_failure: Optional callback invoked after each failed attempt.

    Returns:
        RetryResult with the value of the first successful attempt.

    Raises:
        Exception: Any exception not matched by ``policy.retry_on``.
    """
    result: RetryResult[T] = RetryResult(success=False, description=description)
    run_started = time.monotonic()

    for attempt_number in range(1, policy.max_attempts + 1):
        started = time.monotonic()
        try:
            value = await operation(attempt_number)
        except Exception as e:
            if not policy.should_retry(e):
                raise
            result.attempts.append(_record(attempt_number, e, started))
            result.last_error = e
            logger.debug("%s attempt %d failed: %s", description, attempt_number, e)
            if on_failure is not None:
                on_failure(attempt_number, e)
            if attempt_number < policy.max_attempts:
                wait = policy.delay_for(attempt_number)
                if wait > 0:
                    await asyncio.sleep(wait)
            continue

        result.success = True
        result.value = value
        break

    result.total_duration_seconds = time.monotonic() - run_started
    return result


__all__ = [
    "RetryAttempt",
    "RetryError",
    "RetryPolicy",
    "RetryResult",
    "retry_async",
    "retry_call",
]
