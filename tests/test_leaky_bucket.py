"""Unit tests for both leaky bucket state models."""

import pytest

from admission.adapters.limiters.leaky_bucket import LeakyBucket, LeakyBucketQueue
from admission.schemas.limiter import LeakModel, LimiterConfig


def _config(model: LeakModel, capacity: int = 3, leak_rate: float = 1.0) -> LimiterConfig:
    return LimiterConfig(
        limit=capacity,
        window_size=1.0,
        capacity=capacity,
        leak_rate=leak_rate,
        leak_model=model,
    )


@pytest.mark.parametrize(
    ("limiter_cls", "model"),
    [(LeakyBucket, LeakModel.COUNTER), (LeakyBucketQueue, LeakModel.QUEUE)],
)
def test_strict_pacing_under_simultaneous_burst(limiter_cls, model) -> None:
    limiter = limiter_cls(_config(model))

    results = [limiter.allow(5.0) for _ in range(6)]

    assert results.count(True) == 3
    assert results == [True, True, True, False, False, False]


@pytest.mark.parametrize(
    ("limiter_cls", "model"),
    [(LeakyBucket, LeakModel.COUNTER), (LeakyBucketQueue, LeakModel.QUEUE)],
)
def test_idle_period_does_not_bank_a_larger_burst(limiter_cls, model) -> None:
    limiter = limiter_cls(_config(model))
    limiter.allow(0.0)

    results = [limiter.allow(1_000.0) for _ in range(10)]

    assert results.count(True) == 3


@pytest.mark.parametrize(
    ("limiter_cls", "model"),
    [(LeakyBucket, LeakModel.COUNTER), (LeakyBucketQueue, LeakModel.QUEUE)],
)
def test_one_slot_frees_per_leak_interval(limiter_cls, model) -> None:
    limiter = limiter_cls(_config(model, capacity=2, leak_rate=2.0))

    assert limiter.allow(0.0) is True
    assert limiter.allow(0.0) is True
    assert limiter.allow(0.25) is False
    assert limiter.allow(0.5) is True
    assert limiter.allow(0.5) is False


def test_counter_model_keeps_fractional_progress_between_calls() -> None:
    limiter = LeakyBucket(_config(LeakModel.COUNTER, capacity=1, leak_rate=1.0))

    assert limiter.allow(0.0) is True
    # Calls closer together than one leak interval must not reset the leak clock
    assert limiter.allow(0.4) is False
    assert limiter.allow(0.8) is False
    assert limiter.snapshot()["last_leak_time"] == 0.0
    assert limiter.allow(1.0) is True
    assert limiter.snapshot() == {"water": 1, "last_leak_time": 1.0}


def test_counter_model_water_never_negative() -> None:
    limiter = LeakyBucket(_config(LeakModel.COUNTER, capacity=3, leak_rate=10.0))

    limiter.allow(0.0)
    limiter.allow(100.0)

    assert limiter.snapshot()["water"] == 1


def test_queue_model_preserves_residual_leak_time() -> None:
    limiter = LeakyBucketQueue(_config(LeakModel.QUEUE, capacity=3, leak_rate=1.0))
    for _ in range(3):
        limiter.allow(0.0)

    assert limiter.allow(1.5) is True
    state = limiter.snapshot()
    # One whole interval leaked; the extra 0.5s carries over
    assert state["last_leak_time"] == pytest.approx(1.0)
    assert state["queue"] == (0.0, 0.0, 1.5)

    assert limiter.allow(2.0) is True
    assert limiter.snapshot()["queue"] == (0.0, 1.5, 2.0)


def test_queue_model_cannot_pop_more_than_queued() -> None:
    limiter = LeakyBucketQueue(_config(LeakModel.QUEUE, capacity=2, leak_rate=1.0))
    limiter.allow(0.0)

    assert limiter.allow(10.0) is True
    assert limiter.snapshot()["queue"] == (10.0,)
    assert limiter.snapshot()["last_leak_time"] == pytest.approx(10.0)


def test_cost_fills_multiple_slots() -> None:
    counter = LeakyBucket(_config(LeakModel.COUNTER, capacity=4))
    queue = LeakyBucketQueue(_config(LeakModel.QUEUE, capacity=4))

    assert counter.allow(0.0, cost=3) is True
    assert counter.allow(0.0, cost=2) is False
    assert queue.allow(0.0, cost=3) is True
    assert queue.allow(0.0, cost=2) is False
    assert len(queue.snapshot()["queue"]) == 3
