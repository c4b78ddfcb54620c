"""Backoff policy for batch retries."""

from __future__ import annotations

from dataclasses import dataclass

from linetl_schemas.config import RetryConfig


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff with a ceiling and a bounded attempt count."""

    max_attempts: int = 4
    base_delay_s: float = 1.0
    multiplier: float = 2.0
    max_delay_s: float = 30.0

    def __post_init__(self) -> None:
        """Validate policy bounds.

        Raises:
            ValueError: If any bound is out of range.
        """
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        if self.base_delay_s < 0 or self.max_delay_s < 0:
            raise ValueError("delays must not be negative")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        """Create a policy from retry configuration.

        Args:
            config: Retry configuration.

        Returns:
            RetryPolicy: Equivalent policy.
        """
        return cls(
            max_attempts=config.max_attempts,
            base_delay_s=config.backoff_s,
            multiplier=config.multiplier,
            max_delay_s=config.max_backoff_s,
        )

    def delay_for(self, attempt: int) -> float:
        """Return the wait after a failed attempt.

        Args:
            attempt: 1-based number of the attempt that failed.

        Returns:
            float: Delay in seconds, capped at ``max_delay_s``.
        """
        delay = self.base_delay_s * self.multiplier ** max(attempt - 1, 0)
        return min(delay, self.max_delay_s)

    def allows_retry(self, attempt: int) -> bool:
        """Return whether another attempt may follow ``attempt``."""
        return attempt < self.max_attempts
