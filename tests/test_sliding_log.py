"""Unit tests for the sliding-window log."""

import random

import pytest

from admission.adapters.limiters.sliding_log import SlidingWindowLog
from admission.schemas.limiter import LimiterConfig


def test_denies_once_limit_reached_inside_window() -> None:
    limiter = SlidingWindowLog(LimiterConfig(limit=2, window_size=2))

    assert limiter.allow(1) is True
    assert limiter.allow(2) is True
    assert limiter.allow(2) is False
    assert limiter.allow(3) is True  # entry at t=1 expired (1 <= 3 - 2)


def test_entry_exactly_window_old_is_expired() -> None:
    limiter = SlidingWindowLog(LimiterConfig(limit=2, window_size=10))

    limiter.allow(1)
    limiter.allow(2)

    assert limiter.allow(11) is True
    assert limiter.snapshot()["log"] == (2, 11)


def test_denied_request_is_not_logged() -> None:
    limiter = SlidingWindowLog(LimiterConfig(limit=1, window_size=5))

    assert limiter.allow(0.0) is True
    assert limiter.allow(1.0) is False
    assert limiter.allow(4.0) is False

    assert limiter.snapshot()["log"] == (0.0,)
    assert limiter.allow(5.0) is True


def test_cost_logs_one_entry_per_permit() -> None:
    limiter = SlidingWindowLog(LimiterConfig(limit=4, window_size=1))

    assert limiter.allow(0.1, cost=3) is True
    assert limiter.allow(0.2, cost=2) is False
    assert limiter.snapshot()["log"] == (0.1, 0.1, 0.1)


def test_retry_after_points_at_oldest_entry_expiry() -> None:
    limiter = SlidingWindowLog(LimiterConfig(limit=2, window_size=10))

    limiter.allow(1.0)
    limiter.allow(4.0)

    assert limiter.retry_after(6.0) == pytest.approx(5.0)
    assert limiter.retry_after(11.0) == 0.0


def test_never_exceeds_limit_in_any_trailing_window() -> None:
    rng = random.Random(42)
    limit, window = 5, 1.0
    limiter = SlidingWindowLog(LimiterConfig(limit=limit, window_size=window))

    now = 0.0
    admitted: list[float] = []
    for _ in range(2_000):
        now += rng.choice([0.0, 0.01, 0.05, 0.2])
        if limiter.allow(now):
            admitted.append(now)

        in_window = [t for t in admitted if t > now - window]
        assert len(in_window) <= limit
        assert len(limiter.snapshot()["log"]) == len(in_window)
