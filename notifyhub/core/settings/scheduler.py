"""Scheduler and metrics storage settings.

The scheduler persists jobs and per-destination metric rows in a relational
store reached through SQLAlchemy's async engine.
"""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerSettings(BaseSettings):
    """Configuration for the job scheduler.

    Environment variables use SCHEDULER_ prefix.
    Example: SCHEDULER_DATABASE_URL=sqlite+aiosqlite:///./jobs.db
    """

    database_url: str = Field(
        default="sqlite+aiosqlite:///./notifyhub.db",
        description="SQLAlchemy async database URL for jobs and metrics",
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement (debugging only)",
    )

    # Claim loop
    poll_interval: float = Field(
        default=10.0,
        gt=0.0,
        le=3600.0,
        description="Seconds between scans for due jobs",
    )
    batch_size: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum jobs claimed per scan",
    )

    # Retry policy
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Default attempts before a job is marked exhausted",
    )
    retry_base_delay: float = Field(
        default=30.0,
        ge=0.0,
        description="Base delay for exponential retry backoff (seconds)",
    )
    retry_max_delay: float = Field(
        default=3600.0,
        ge=1.0,
        description="Cap on the retry delay (seconds)",
    )

    # Housekeeping
    metrics_retention_days: int = Field(
        default=30,
        ge=1,
        le=3650,
        description="Metric rows older than this are removed by cleanup",
    )

    @model_validator(mode="after")
    def check_delays(self) -> SchedulerSettings:
        """Ensure the backoff cap is not below the base delay."""
        if self.retry_max_delay < self.retry_base_delay:
            msg = "retry_max_delay must be greater than or equal to retry_base_delay"
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
