"""Retry policy and timeout configuration for the UDP client.

LAN discovery is low-rate, so retries use a fixed interval instead of
exponential backoff. Attempt budgets are bounded where a caller waits on the
outcome (connect) and unbounded for background self-healing (socket reopen,
rediscovery after the unit disappears).
"""

from __future__ import annotations

from sinclair_ac.const import (
    DEFAULT_MAX_DISCOVERY_ATTEMPTS,
    DEFAULT_MAX_MISSED_POLLS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_UPDATE_INTERVAL,
)


class TimeoutConfig:
    """Request deadlines and timer intervals.

    All values are in seconds.
    """

    def __init__(
        self,
        request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT,
        update_interval_seconds: float = DEFAULT_UPDATE_INTERVAL,
        retry_interval_seconds: float = DEFAULT_RETRY_INTERVAL,
        max_missed_polls: int = DEFAULT_MAX_MISSED_POLLS,
    ):
        """Initialize timeout configuration.

        Args:
            request_timeout_seconds: Deadline for one request/response exchange
            update_interval_seconds: Interval between status polls
            retry_interval_seconds: Interval between discovery and socket retries
            max_missed_polls: Consecutive poll timeouts before the unit is
                considered gone
        """
        self.request_timeout_seconds = request_timeout_seconds
        self.update_interval_seconds = update_interval_seconds
        self.retry_interval_seconds = retry_interval_seconds
        self.max_missed_polls = max_missed_polls

        # Scan and bind are two round trips answered back to back
        self.bind_timeout_seconds = request_timeout_seconds

    def __repr__(self) -> str:
        """String representation showing all timeouts."""
        return (
            f"TimeoutConfig(request={self.request_timeout_seconds:.3f}s, "
            f"update_interval={self.update_interval_seconds:.1f}s, "
            f"retry_interval={self.retry_interval_seconds:.1f}s, "
            f"max_missed_polls={self.max_missed_polls})"
        )


class RetryPolicy:
    """Fixed-interval retry policy with an optional attempt budget."""

    def __init__(
        self,
        interval_seconds: float = DEFAULT_RETRY_INTERVAL,
        max_attempts: int | None = DEFAULT_MAX_DISCOVERY_ATTEMPTS,
    ):
        """Initialize retry policy.

        Args:
            interval_seconds: Delay between attempts (default: 5.0s)
            max_attempts: Attempt budget including the first attempt
                (None = retry forever)
        """
        if max_attempts is not None and max_attempts < 1:
            msg = f"max_attempts must be >= 1 or None, got {max_attempts}"
            raise ValueError(msg)
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts

    def get_delay(self, attempt: int) -> float:  # noqa: ARG002
        """Delay before the retry following `attempt` (0-indexed).

        The interval is fixed; the argument keeps the signature compatible
        with backoff policies.
        """
        return self.interval_seconds

    def should_retry(self, attempt: int) -> bool:
        """Whether another attempt is allowed after `attempt` (0-indexed) failed."""
        return self.max_attempts is None or attempt + 1 < self.max_attempts

    def __repr__(self) -> str:
        """String representation of retry policy."""
        return f"RetryPolicy(interval={self.interval_seconds}s, max_attempts={self.max_attempts})"
