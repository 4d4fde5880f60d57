"""Queries for scheduled jobs and templates.

Sessions are passed explicitly; callers own the transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlalchemy.exc import OperationalError

from notifyhub.features.scheduler.models import JobStatus, NotificationTemplate, ScheduledJob
from notifyhub.infra.logging import get_lazy_logger
from notifyhub.utils.retry import retry

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession


class JobRepository:
    """Persistence for ``ScheduledJob`` rows."""

    def __init__(self) -> None:
        self._lazy = get_lazy_logger(__name__)

    async def add(self, session: AsyncSession, job: ScheduledJob) -> ScheduledJob:
        session.add(job)
        await session.flush()
        return job

    async def get(self, session: AsyncSession, job_id: int) -> ScheduledJob | None:
        return await session.get(ScheduledJob, job_id)

    async def list_jobs(
        self,
        session: AsyncSession,
        status: JobStatus | None = None,
        limit: int = 100,
    ) -> Sequence[ScheduledJob]:
        stmt = select(ScheduledJob).order_by(ScheduledJob.scheduled_for).limit(limit)
        if status is not None:
            stmt = stmt.where(ScheduledJob.status == status.value)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def recurring(self, session: AsyncSession) -> Sequence[ScheduledJob]:
        """Enabled recurring definitions."""
        stmt = select(ScheduledJob).where(
            ScheduledJob.cron_expression.is_not(None),
            ScheduledJob.enabled.is_(True),
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    @retry(max_attempts=3, initial_delay=0.1, max_delay=1.0, exceptions=(OperationalError,))
    async def claim_due(self, session: AsyncSession, now: datetime, limit: int) -> list[ScheduledJob]:
        """Mark up to ``limit`` due one-shot jobs as running and commit.

        Each claimed job has its ``attempts`` incremented. Retried on
        ``OperationalError`` (locked SQLite database).
        """
        stmt = (
            select(ScheduledJob)
            .where(
                ScheduledJob.status == JobStatus.PENDING.value,
                ScheduledJob.scheduled_for <= now,
                ScheduledJob.cron_expression.is_(None),
                ScheduledJob.enabled.is_(True),
            )
            .order_by(ScheduledJob.scheduled_for, ScheduledJob.id)
            .limit(limit)
        )
        try:
            result = await session.execute(stmt)
            jobs = list(result.scalars().all())
            for job in jobs:
                job.status = JobStatus.RUNNING.value
                job.attempts += 1
            await session.commit()
        except OperationalError:
            await session.rollback()
            raise

        self._lazy.debug(lambda: f"db.claim_due(limit={limit}) -> {[job.id for job in jobs]}")
        return jobs


class TemplateRepository:
    """Persistence for ``NotificationTemplate`` rows."""

    def __init__(self) -> None:
        self._lazy = get_lazy_logger(__name__)

    async def get_by_name(self, session: AsyncSession, name: str) -> NotificationTemplate | None:
        result = await session.execute(select(NotificationTemplate).where(NotificationTemplate.name == name))
        template = result.scalar_one_or_none()
        self._lazy.debug(lambda: f"db.get_template({name=}) -> {'found' if template else 'not found'}")
        return template

    async def list_templates(self, session: AsyncSession) -> Sequence[NotificationTemplate]:
        result = await session.execute(select(NotificationTemplate).order_by(NotificationTemplate.name))
        return result.scalars().all()

    async def add(self, session: AsyncSession, template: NotificationTemplate) -> NotificationTemplate:
        session.add(template)
        await session.flush()
        return template

    async def delete(self, session: AsyncSession, name: str) -> bool:
        result = await session.execute(delete(NotificationTemplate).where(NotificationTemplate.name == name))
        return bool(result.rowcount)


__all__ = ["JobRepository", "TemplateRepository"]
