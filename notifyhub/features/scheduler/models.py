"""SQLAlchemy models for scheduled jobs, delivery metrics and templates."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from notifyhub.infra.database import Base, IntegerPKMixin, UTCDateTime, utcnow

ERROR_MESSAGE_MAX_LENGTH = 500


class JobStatus(str, Enum):
    """Lifecycle of a scheduled job."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


class ScheduledJob(Base, IntegerPKMixin):
    """A notification to send at ``scheduled_for``, retried with backoff.

    Jobs with a ``cron_expression`` are recurring definitions: they are never
    claimed themselves. Each cron firing enqueues a fresh one-shot job copied
    from the definition.

    Indexes:
        - (status, scheduled_for) for the claim query
    """

    __tablename__ = "scheduled_jobs"

    # Content
    title: Mapped[str] = mapped_column(Text(), default="", nullable=False)
    body: Mapped[str] = mapped_column(Text(), default="", nullable=False)
    notify_type: Mapped[str] = mapped_column(String(20), default="info", nullable=False)
    body_format: Mapped[str | None] = mapped_column(String(20), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON(), default=list, nullable=False)
    urls: Mapped[list[str]] = mapped_column(
        JSON(),
        default=list,
        nullable=False,
        comment="Destination URLs, parsed when the job runs",
    )
    template_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    template_vars: Mapped[dict[str, Any]] = mapped_column(JSON(), default=dict, nullable=False)

    # Scheduling
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    scheduled_for: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    cron_expression: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Crontab expression for recurring definitions",
    )
    enabled: Mapped[bool] = mapped_column(Boolean(), default=True, nullable=False)

    # Retry state
    attempts: Mapped[int] = mapped_column(Integer(), default=0, nullable=False)
    max_attempts: Mapped[int] = mapped_column(Integer(), default=3, nullable=False)
    retry_base_delay: Mapped[float | None] = mapped_column(nullable=True)
    retry_max_delay: Mapped[float | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=JobStatus.PENDING.value, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text(), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (Index("ix_scheduled_jobs_status_due", "status", "scheduled_for"),)

    @property
    def is_recurring(self) -> bool:
        return bool(self.cron_expression)

    def __repr__(self) -> str:
        return f"ScheduledJob(id={self.id}, status={self.status}, scheduled_for={self.scheduled_for})"


class NotificationMetric(Base, IntegerPKMixin):
    """One delivery outcome. Rows are only ever inserted or purged."""

    __tablename__ = "notification_metrics"

    job_id: Mapped[str | None] = mapped_column(String(64), nullable=True, comment="Dispatch identifier")
    scheduled_job_id: Mapped[int | None] = mapped_column(Integer(), nullable=True, index=True)
    service_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    service_url: Mapped[str] = mapped_column(Text(), default="", nullable=False, comment="Redacted")
    notification_type: Mapped[int] = mapped_column(
        Integer(),
        default=0,
        nullable=False,
        comment="0 info, 1 success, 2 warning, 3 error",
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, comment="success or failed")
    duration_ms: Mapped[int] = mapped_column(Integer(), default=0, nullable=False)
    error_message: Mapped[str | None] = mapped_column(String(ERROR_MESSAGE_MAX_LENGTH), nullable=True)
    metadata_json: Mapped[str] = mapped_column("metadata", Text(), default="{}", nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False, index=True)


class NotificationTemplate(Base, IntegerPKMixin):
    """Reusable Jinja2 title and body.

    ``variables`` holds default values that rendering callers may override.
    """

    __tablename__ = "notification_templates"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    title_template: Mapped[str] = mapped_column(Text(), default="", nullable=False)
    body_template: Mapped[str] = mapped_column(Text(), default="", nullable=False)
    notify_type: Mapped[str] = mapped_column(String(20), default="info", nullable=False)
    variables: Mapped[dict[str, Any]] = mapped_column(JSON(), default=dict, nullable=False)
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)


__all__ = [
    "ERROR_MESSAGE_MAX_LENGTH",
    "JobStatus",
    "NotificationMetric",
    "NotificationTemplate",
    "ScheduledJob",
]
