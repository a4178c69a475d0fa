"""Unit tests for retry policy and timeout configuration."""

from __future__ import annotations

import math

import pytest

from sinclair_ac.transport.retry_policy import RetryPolicy, TimeoutConfig
from tests.helpers.expectations import expect_exception


def assert_close(actual: float, expected: float, rel_tol: float = 1e-6) -> None:
    """Assert that two floats are approximately equal."""
    assert math.isclose(actual, expected, rel_tol=rel_tol)


class TestTimeoutConfig:
    """Tests for TimeoutConfig class."""

    def test_defaults(self):
        config = TimeoutConfig()
        assert_close(config.request_timeout_seconds, 3.0)
        assert_close(config.update_interval_seconds, 10.0)
        assert_close(config.retry_interval_seconds, 5.0)
        assert config.max_missed_polls == 3
        assert_close(config.bind_timeout_seconds, 3.0)

    def test_bind_timeout_follows_request_timeout(self):
        config = TimeoutConfig(request_timeout_seconds=0.5)
        assert_close(config.bind_timeout_seconds, 0.5)

    def test_repr(self):
        repr_str = repr(TimeoutConfig(update_interval_seconds=30.0))
        assert "TimeoutConfig" in repr_str
        assert "update_interval=30.0s" in repr_str


class TestRetryPolicy:
    """Tests for the fixed-interval RetryPolicy."""

    def test_default_policy(self):
        policy = RetryPolicy()
        assert_close(policy.interval_seconds, 5.0)
        assert policy.max_attempts == 3

    @pytest.mark.parametrize("attempt", [0, 1, 5, 50])
    def test_delay_is_fixed(self, attempt):
        assert_close(RetryPolicy(interval_seconds=2.0).get_delay(attempt), 2.0)

    def test_should_retry_respects_budget(self):
        policy = RetryPolicy(max_attempts=3)
        assert policy.should_retry(0)
        assert policy.should_retry(1)
        assert not policy.should_retry(2)

    def test_single_attempt_never_retries(self):
        assert not RetryPolicy(max_attempts=1).should_retry(0)

    def test_unbounded_policy(self):
        policy = RetryPolicy(max_attempts=None)
        assert policy.should_retry(10_000)

    @pytest.mark.parametrize("max_attempts", [0, -1])
    def test_invalid_budget(self, max_attempts):
        err = expect_exception(RetryPolicy, ValueError, max_attempts=max_attempts)
        assert "max_attempts" in str(err)

    def test_repr(self):
        assert repr(RetryPolicy(interval_seconds=1.5, max_attempts=None)) == (
            "RetryPolicy(interval=1.5s, max_attempts=None)"
        )
