"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment so settings never pick up a developer's .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_FORMAT", "json")

import pytest  # noqa: E402

from admission.core.clock import ManualClock  # noqa: E402
from admission.schemas.limiter import LimiterConfig  # noqa: E402


@pytest.fixture
def clock() -> ManualClock:
    """Deterministic clock starting at t=0."""
    return ManualClock()


@pytest.fixture
def small_config() -> LimiterConfig:
    """Three permits per one-second window."""
    return LimiterConfig(limit=3, window_size=1.0)
