"""Retry policy for batch delivery.

The policy bundles the retry budget, the backoff function and the
retryable-status predicate so delivery wiring never hardcodes them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from core.constants import DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_RETRIES, RETRYABLE_STATUS_CODES

BackoffFunction = Callable[[float, int], float]


def linear_backoff(base_delay_seconds: float, attempt: int) -> float:
    """Return ``base_delay * attempt`` for a one-based retry attempt."""
    return base_delay_seconds * attempt


def is_retryable_status(status_code: int) -> bool:
    """Return whether a status signals timeout, rate limit or server error."""
    return status_code in RETRYABLE_STATUS_CODES


@dataclass(frozen=True)
class RetryPolicy:
    """Injectable delivery retry policy.

    Attributes:
        max_retries: Retries allowed after the first attempt.
        base_delay_seconds: Base delay passed to the backoff function.
        backoff: Delay function of (base delay, one-based retry attempt).
        retryable_status: Predicate classifying HTTP-equivalent statuses.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_seconds: float = DEFAULT_BASE_DELAY_MS / 1000
    backoff: BackoffFunction = field(default=linear_backoff)
    retryable_status: Callable[[int], bool] = field(default=is_retryable_status)

    @classmethod
    def from_options(cls, max_retries: int, base_delay_ms: int) -> "RetryPolicy":
        """Build the default linear policy from run options."""
        return cls(max_retries=max_retries, base_delay_seconds=base_delay_ms / 1000)

    def delay_for(self, attempt: int) -> float:
        """Return the sleep before retry ``attempt`` (one-based)."""
        return max(0.0, self.backoff(self.base_delay_seconds, attempt))
