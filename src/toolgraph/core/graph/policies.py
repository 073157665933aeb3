"""Retry policies for node execution.

RetryPolicy defines how a node recovers from capability failures:
- max_retries: how many extra attempts are allowed after the first
- delay_ms / backoff: how long to wait between attempts
- should_retry: optional predicate that can veto a retry

Retries are transparent to the caller: only when the policy refuses
another attempt does the failure surface.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for a node.

    Attributes:
        max_retries: Number of retry attempts after the first call (0 = no retries).
        delay_ms: Delay before the first retry in milliseconds.
        backoff: Multiplier for delay after each retry.
            The default of 1.0 keeps the delay constant; 2.0 gives 1s, 2s, 4s...
        should_retry: Optional predicate receiving the error and the
            0-indexed attempt number. Returning False stops retrying early.

    Example:
        # Retry up to 2 times, half a second apart
        policy = RetryPolicy(max_retries=2, delay_ms=500)

        # Only retry timeouts
        policy = RetryPolicy(
            max_retries=3,
            should_retry=lambda error, attempt: isinstance(error, TimeoutError),
        )
    """

    max_retries: int = 0
    delay_ms: int = 1000
    backoff: float = 1.0
    should_retry: Callable[[BaseException, int], bool] | None = field(
        default=None, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        """Validate policy configuration."""
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")

        if self.delay_ms < 0:
            raise ValueError("delay_ms cannot be negative")

        if self.backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")

    def get_delay_for_attempt(self, attempt: int) -> float:
        """Calculate delay in seconds before retrying a failed attempt.

        Args:
            attempt: The attempt that just failed (0-indexed).

        Returns:
            Delay in seconds before the next attempt.
        """
        delay_ms = self.delay_ms * (self.backoff**attempt)
        return delay_ms / 1000.0

    def allows_retry(self, error: BaseException, attempt: int) -> bool:
        """Check if another attempt should be made.

        Args:
            error: The error raised by the failed attempt.
            attempt: The attempt that just failed (0-indexed).

        Returns:
            True if retries remain and the predicate (if any) permits it.
        """
        if attempt >= self.max_retries:
            return False
        if self.should_retry is not None:
            return bool(self.should_retry(error, attempt))
        return True
