"""Engine configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class LimiterSettings(BaseSettings):
    """Default limiter parameters applied by AdmissionController.from_settings().

    Algorithm-specific fields left unset are derived from limit and
    window_seconds (see LimiterConfig).
    """

    algorithm: str = Field(
        "token_bucket",
        description=(
            "Admission algorithm: fixed_window, sliding_log, sliding_counter, "
            "interpolated_sliding_counter, leaky_bucket or token_bucket"
        ),
    )
    limit: int = Field(
        60,
        description="Maximum permits per window",
        ge=1,
    )
    window_seconds: float = Field(
        60.0,
        description="Window size in seconds",
        gt=0,
        allow_inf_nan=False,
    )
    bucket_count: int = Field(
        10,
        description="Number of sub-buckets for the bucketed sliding window counter",
        ge=1,
    )
    capacity: int | None = Field(
        None,
        description="Bucket capacity for token/leaky bucket (defaults to limit)",
        gt=0,
    )
    refill_rate: float | None = Field(
        None,
        description="Token refill rate per second (defaults to limit / window_seconds)",
        gt=0,
        allow_inf_nan=False,
    )
    leak_rate: float | None = Field(
        None,
        description="Leak rate per second (defaults to limit / window_seconds)",
        gt=0,
        allow_inf_nan=False,
    )
    leak_model: str = Field(
        "counter",
        description="Leaky bucket state model: counter or queue",
    )

    registry_shards: int = Field(
        16,
        description="Number of independently locked registry shards",
        ge=1,
    )
    registry_max_entries: int | None = Field(
        None,
        description="LRU bound on tracked identities (unbounded when unset)",
        ge=1,
    )
    registry_idle_seconds: float | None = Field(
        None,
        description="Evict identities idle for longer than this (disabled when unset)",
        gt=0,
        allow_inf_nan=False,
    )
    log_decisions: bool = Field(
        True,
        description="Emit admission.allowed / admission.denied log events",
    )

    model_config = SettingsConfigDict(
        env_prefix="LIMITER_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field(
        "INFO",
        description="Root log level",
    )
    format: str = Field(
        "json",
        description="Log format: json or plain",
    )
    output: str = Field(
        "stdout",
        description="Log destination: stdout or file",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (defaults to logs/admission.log)",
    )
    max_bytes: int | None = Field(
        None,
        description="Rotate the log file after this many bytes (no rotation when unset)",
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is malformed.
    """

    app_env: str = APP_ENV
    limiter: LimiterSettings = Field(default_factory=LimiterSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
