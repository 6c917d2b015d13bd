"""Admission algorithms behind one decision contract.

Every limiter implements AbstractRateLimiter.allow(now, cost=1) -> bool and
holds the state of a single client identity.
"""

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.adapters.limiters.factory import (
    config_from_settings,
    create_limiter,
    resolve_algorithm,
)
from admission.adapters.limiters.fixed_window import FixedWindowCounter
from admission.adapters.limiters.interpolated_counter import InterpolatedSlidingWindowCounter
from admission.adapters.limiters.leaky_bucket import LeakyBucket, LeakyBucketQueue
from admission.adapters.limiters.sliding_counter import SlidingWindowCounter
from admission.adapters.limiters.sliding_log import SlidingWindowLog
from admission.adapters.limiters.token_bucket import TokenBucket

__all__ = [
    "AbstractRateLimiter",
    "FixedWindowCounter",
    "InterpolatedSlidingWindowCounter",
    "LeakyBucket",
    "LeakyBucketQueue",
    "SlidingWindowCounter",
    "SlidingWindowLog",
    "TokenBucket",
    "config_from_settings",
    "create_limiter",
    "resolve_algorithm",
]
