"""Persistent notification scheduler.

Jobs live in the ``scheduled_jobs`` table. A poll loop driven by APScheduler
claims due jobs, dispatches them, stores one metric row per destination and
either completes the job or reschedules it with exponential backoff.

Usage:
    database = Database("sqlite+aiosqlite:///./notifyhub.db")
    scheduler = NotificationScheduler(database)
    await scheduler.start()

    await scheduler.schedule(
        urls=["ntfy://ntfy.sh/backups"],
        title="Nightly backup",
        body="started",
        scheduled_for=datetime.now(UTC) + timedelta(minutes=5),
    )

    # Recurring: enqueue a copy every day at 02:00 UTC
    await scheduler.schedule(
        urls=["ntfy://ntfy.sh/backups"],
        template_name="backup-status",
        template_vars={"database": "orders"},
        cron_expression="0 2 * * *",
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
import uuid

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.cron import CronTrigger  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

from notifyhub.core.exceptions import NotifyError, SchedulerError, TemplateRenderError
from notifyhub.core.types import BodyFormat, NotifyType
from notifyhub.features.dispatch.dispatcher import NotifyResponse
from notifyhub.features.dispatch.options import with_body_format, with_tags
from notifyhub.features.scheduler.models import (
    ERROR_MESSAGE_MAX_LENGTH,
    JobStatus,
    NotificationTemplate,
    ScheduledJob,
)
from notifyhub.features.scheduler.reporter import MetricsReporter
from notifyhub.features.scheduler.repository import JobRepository, TemplateRepository
from notifyhub.features.scheduler.templates import DEFAULT_TEMPLATES, TemplateRenderer
from notifyhub.infra.logging import lazy_urls, log_context
from notifyhub.infra.metrics.tracking import track_scheduled_job
from notifyhub.utils.redact import redact_url
from notifyhub.utils.retry import RetryStrategy

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from notifyhub.core.settings import SchedulerSettings
    from notifyhub.features.dispatch.options import NotifyOption
    from notifyhub.infra.database import Database

logger = logging.getLogger(__name__)

PROCESS_DUE_JOB_ID = "notifyhub:process_due"
METRICS_RETENTION_JOB_ID = "notifyhub:metrics_retention"


@runtime_checkable
class Notifier(Protocol):
    """What the scheduler needs from a dispatcher."""

    def add(self, url: str, *tags: str) -> Any: ...

    async def notify(
        self,
        title: str,
        body: str,
        notify_type: NotifyType | str | int = NotifyType.INFO,
        *options: NotifyOption,
    ) -> list[NotifyResponse]: ...


def _default_notifier_factory() -> Notifier:
    from notifyhub.features.dispatch.dispatcher import Dispatcher

    return Dispatcher()


@dataclass
class JobOutcome:
    """Result of one processed job attempt."""

    job_id: int
    status: JobStatus
    responses: list[NotifyResponse] = field(default_factory=list)
    error: str | None = None


class NotificationScheduler:
    """Claims due jobs from the database and dispatches them.

    Args:
        database: Store holding jobs, metrics and templates.
        notifier_factory: Builds an empty ``Notifier`` per job run.
        settings: Poll interval, batch size and retry defaults.
        renderer: Template renderer.
    """

    def __init__(
        self,
        database: Database,
        notifier_factory: Callable[[], Notifier] | None = None,
        settings: SchedulerSettings | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        if settings is None:
            from notifyhub.core.settings import get_scheduler_settings

            settings = get_scheduler_settings()
        self.database = database
        self.settings = settings
        self.notifier_factory = notifier_factory or _default_notifier_factory
        self.renderer = renderer or TemplateRenderer()
        self.reporter = MetricsReporter(database)
        self.jobs = JobRepository()
        self.templates = TemplateRepository()
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    # ------------------------------------------------------------------
    # Job management
    # ------------------------------------------------------------------

    async def schedule(
        self,
        *,
        urls: Sequence[str],
        title: str = "",
        body: str = "",
        notify_type: NotifyType | str | int = NotifyType.INFO,
        body_format: BodyFormat | str | None = None,
        tags: Sequence[str] = (),
        scheduled_for: datetime | None = None,
        template_name: str | None = None,
        template_vars: dict[str, Any] | None = None,
        max_attempts: int | None = None,
        retry_base_delay: float | None = None,
        retry_max_delay: float | None = None,
        cron_expression: str | None = None,
    ) -> ScheduledJob:
        """Persist a pending job.

        With ``cron_expression`` the row is a recurring definition: each firing
        enqueues a one-shot copy due immediately.

        Raises:
            SchedulerError: No URLs, an invalid crontab, or an unknown template.
        """
        if not urls:
            msg = "A scheduled job needs at least one destination URL"
            raise SchedulerError(msg)
        if cron_expression is not None:
            self._cron_trigger(cron_expression)
        parsed_format = BodyFormat.parse(body_format)

        async with self.database.session() as session:
            if template_name is not None and await self.templates.get_by_name(session, template_name) is None:
                msg = f"Unknown template: {template_name}"
                raise SchedulerError(msg, extra={"template": template_name})
            job = ScheduledJob(
                title=title,
                body=body,
                notify_type=NotifyType.from_value(notify_type).value,
                body_format=parsed_format.value if parsed_format else None,
                tags=list(tags),
                urls=list(urls),
                template_name=template_name,
                template_vars=dict(template_vars or {}),
                scheduled_for=scheduled_for or datetime.now(UTC),
                cron_expression=cron_expression,
                enabled=True,
                attempts=0,
                max_attempts=max_attempts or self.settings.max_attempts,
                retry_base_delay=retry_base_delay,
                retry_max_delay=retry_max_delay,
                status=JobStatus.PENDING.value,
            )
            await self.jobs.add(session, job)
            await session.commit()

        logger.info(
            "Job scheduled",
            extra={
                "job_id": job.id,
                "scheduled_for": job.scheduled_for.isoformat(),
                "recurring": job.is_recurring,
                "destinations": len(job.urls),
            },
        )
        if job.is_recurring and self.running:
            self._add_cron_job(job)
        return job

    async def cancel(self, job_id: int) -> bool:
        """Mark a pending job failed with error ``canceled``.

        Recurring definitions are also disabled and removed from the cron
        schedule. Returns False when the job does not exist or is not pending.
        """
        async with self.database.session() as session:
            job = await self.jobs.get(session, job_id)
            if job is None or job.status != JobStatus.PENDING.value:
                return False
            job.status = JobStatus.FAILED.value
            job.last_error = "canceled"
            job.enabled = False
            job.completed_at = datetime.now(UTC)
            await session.commit()

        if self._scheduler is not None and self._scheduler.get_job(self._cron_job_id(job_id)):
            self._scheduler.remove_job(self._cron_job_id(job_id))
        logger.info("Job canceled", extra={"job_id": job_id})
        return True

    async def get_job(self, job_id: int) -> ScheduledJob | None:
        async with self.database.session() as session:
            return await self.jobs.get(session, job_id)

    async def list_jobs(self, status: JobStatus | None = None, limit: int = 100) -> list[ScheduledJob]:
        async with self.database.session() as session:
            return list(await self.jobs.list_jobs(session, status, limit))

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def add_template(
        self,
        name: str,
        title_template: str,
        body_template: str,
        notify_type: NotifyType | str = NotifyType.INFO,
        variables: dict[str, Any] | None = None,
        description: str | None = None,
    ) -> NotificationTemplate:
        """Validate and store a template.

        Raises:
            TemplateRenderError: Either source fails to parse.
            SchedulerError: A template with ``name`` already exists.
        """
        self.renderer.validate(title_template, body_template)
        async with self.database.session() as session:
            if await self.templates.get_by_name(session, name) is not None:
                msg = f"Template already exists: {name}"
                raise SchedulerError(msg, extra={"template": name})
            template = NotificationTemplate(
                name=name,
                title_template=title_template,
                body_template=body_template,
                notify_type=NotifyType.from_value(notify_type).value,
                variables=dict(variables or {}),
                description=description,
            )
            await self.templates.add(session, template)
            await session.commit()
        return template

    async def ensure_default_templates(self) -> int:
        """Insert the bundled templates that are missing; returns how many."""
        created = 0
        async with self.database.session() as session:
            for definition in DEFAULT_TEMPLATES:
                if await self.templates.get_by_name(session, definition["name"]) is not None:
                    continue
                await self.templates.add(session, NotificationTemplate(**definition))
                created += 1
            await session.commit()
        return created

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def _strategy(self, job: ScheduledJob) -> RetryStrategy:
        return RetryStrategy.from_scheduler_settings(
            self.settings,
            max_attempts=job.max_attempts,
            base_delay=job.retry_base_delay,
            max_delay=job.retry_max_delay,
        )

    async def process_due(self, now: datetime | None = None) -> list[JobOutcome]:
        """Claim and run every due job, up to ``batch_size``.

        Returns:
            One outcome per claimed job.
        """
        now = now or datetime.now(UTC)
        async with self.database.session() as session:
            claimed = await self.jobs.claim_due(session, now, self.settings.batch_size)
        if not claimed:
            return []

        logger.info("Processing due jobs", extra={"count": len(claimed)})
        outcomes = []
        for job in claimed:
            with log_context(scheduled_job_id=job.id):
                outcomes.append(await self._run_job(job, now))
        return outcomes

    async def _render(self, job: ScheduledJob) -> tuple[str, str, NotifyType]:
        if not job.template_name:
            return job.title, job.body, NotifyType.from_value(job.notify_type)
        async with self.database.session() as session:
            template = await self.templates.get_by_name(session, job.template_name)
        if template is None:
            msg = f"Unknown template: {job.template_name}"
            raise TemplateRenderError(msg, extra={"template": job.template_name})
        rendered = self.renderer.render(template, job.template_vars)
        return rendered.title, rendered.body, rendered.notify_type

    async def _run_job(self, job: ScheduledJob, now: datetime) -> JobOutcome:
        run_id = uuid.uuid4().hex[:12]
        try:
            title, body, notify_type = await self._render(job)
        except TemplateRenderError as e:
            return await self._finish(job, JobStatus.FAILED, now, error=str(e))

        notifier = self.notifier_factory()
        rejected: list[NotifyResponse] = []
        accepted: list[str] = []
        for url in job.urls:
            try:
                destination = notifier.add(url, *job.tags)
                accepted.append(getattr(destination, "url", None) or redact_url(url))
            except NotifyError as e:
                scheme = url.partition("://")[0].lower() or "unknown"
                rejected.append(NotifyResponse(scheme, False, e, 0.0, redact_url(url)))
                logger.warning(
                    "Scheduled destination rejected",
                    extra={"job_id": job.id, "url": redact_url(url), "error": str(e)},
                )
        logger.debug("Running job %s against %s", job.id, lazy_urls(accepted), extra={"attempt": job.attempts})

        responses: list[NotifyResponse] = []
        if len(rejected) < len(job.urls):
            options: list[NotifyOption] = []
            if job.tags:
                options.append(with_tags(*job.tags))
            if job.body_format:
                options.append(with_body_format(job.body_format))
            responses = await notifier.notify(title, body, notify_type, *options)

        all_responses = rejected + responses
        metrics = [
            MetricsReporter.build_metric(
                response,
                notify_type=notify_type,
                job_id=run_id,
                scheduled_job_id=job.id,
                metadata={"attempt": job.attempts},
            )
            for response in all_responses
        ]

        if not responses:
            return await self._finish(
                job, JobStatus.FAILED, now, error="no valid destinations", responses=all_responses, metrics=metrics
            )

        first_error = next((r.error for r in all_responses if not r.success), None)
        if first_error is None:
            return await self._finish(job, JobStatus.SUCCEEDED, now, responses=all_responses, metrics=metrics)

        strategy = self._strategy(job)
        if strategy.exhausted(job.attempts):
            status = JobStatus.EXHAUSTED
            next_run = None
        else:
            status = JobStatus.PENDING
            next_run = strategy.next_run(job.attempts, now)
        return await self._finish(
            job,
            status,
            now,
            error=str(first_error),
            responses=all_responses,
            metrics=metrics,
            next_run=next_run,
        )

    async def _finish(
        self,
        job: ScheduledJob,
        status: JobStatus,
        now: datetime,
        *,
        error: str | None = None,
        responses: list[NotifyResponse] | None = None,
        metrics: list[Any] | None = None,
        next_run: datetime | None = None,
    ) -> JobOutcome:
        async with self.database.session() as session:
            stored = await self.jobs.get(session, job.id)
            if stored is None:
                msg = f"Scheduled job {job.id} disappeared while running"
                raise SchedulerError(msg)
            stored.status = status.value
            stored.last_error = error[:ERROR_MESSAGE_MAX_LENGTH] if error else None
            if next_run is not None:
                stored.scheduled_for = next_run
            if status is not JobStatus.PENDING:
                stored.completed_at = now
            if metrics:
                await self.reporter.add_metrics(session, metrics)
            await session.commit()

        track_scheduled_job("retried" if status is JobStatus.PENDING else status.value)
        log = logger.info if status is JobStatus.SUCCEEDED else logger.warning
        log(
            "Scheduled job finished",
            extra={
                "job_id": job.id,
                "status": status.value,
                "attempt": job.attempts,
                "error": error,
                "next_run": next_run.isoformat() if next_run else None,
            },
        )
        return JobOutcome(job_id=job.id, status=status, responses=responses or [], error=error)

    async def enqueue_from(self, definition_id: int, now: datetime | None = None) -> ScheduledJob | None:
        """Copy a recurring definition into a pending one-shot job due ``now``."""
        async with self.database.session() as session:
            definition = await self.jobs.get(session, definition_id)
            if definition is None or not definition.enabled or not definition.is_recurring:
                return None
            job = ScheduledJob(
                title=definition.title,
                body=definition.body,
                notify_type=definition.notify_type,
                body_format=definition.body_format,
                tags=list(definition.tags),
                urls=list(definition.urls),
                template_name=definition.template_name,
                template_vars=dict(definition.template_vars),
                scheduled_for=now or datetime.now(UTC),
                enabled=True,
                attempts=0,
                max_attempts=definition.max_attempts,
                retry_base_delay=definition.retry_base_delay,
                retry_max_delay=definition.retry_max_delay,
                status=JobStatus.PENDING.value,
            )
            await self.jobs.add(session, job)
            await session.commit()
        logger.debug("Recurring job enqueued", extra={"definition_id": definition_id, "job_id": job.id})
        return job

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @staticmethod
    def _cron_job_id(definition_id: int) -> str:
        return f"notifyhub:cron:{definition_id}"

    @staticmethod
    def _cron_trigger(expression: str) -> CronTrigger:
        try:
            return CronTrigger.from_crontab(expression, timezone="UTC")
        except ValueError as e:
            msg = f"Invalid cron expression {expression!r}: {e}"
            raise SchedulerError(msg) from e

    def _add_cron_job(self, definition: ScheduledJob) -> None:
        if self._scheduler is None:
            msg = "Scheduler is not running"
            raise SchedulerError(msg)
        self._scheduler.add_job(
            self.enqueue_from,
            trigger=self._cron_trigger(definition.cron_expression or ""),
            args=[definition.id],
            id=self._cron_job_id(definition.id),
            name=f"Recurring notification {definition.id}",
            replace_existing=True,
        )

    async def prune_metrics(self, now: datetime | None = None) -> int:
        """Delete metric rows older than ``metrics_retention_days``."""
        return await self.reporter.cleanup(self.settings.metrics_retention_days, now=now)

    async def start(self) -> None:
        """Create the schema and start the poll loop and cron jobs."""
        if self.running:
            return
        await self.database.create_all()

        self._scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 60,
            },
        )
        self._scheduler.add_job(
            self.process_due,
            trigger=IntervalTrigger(seconds=self.settings.poll_interval),
            id=PROCESS_DUE_JOB_ID,
            name="Process due notifications",
            replace_existing=True,
        )
        self._scheduler.add_job(
            self.prune_metrics,
            trigger=IntervalTrigger(days=1),
            id=METRICS_RETENTION_JOB_ID,
            name="Remove expired notification metrics",
            replace_existing=True,
        )
        async with self.database.session() as session:
            definitions = await self.jobs.recurring(session)
        for definition in definitions:
            try:
                self._add_cron_job(definition)
            except SchedulerError:
                logger.exception("Skipping recurring job", extra={"job_id": definition.id})

        self._scheduler.start()
        logger.info(
            "Scheduler started",
            extra={"poll_interval": self.settings.poll_interval, "recurring_jobs": len(definitions)},
        )

    async def stop(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped")


__all__ = ["METRICS_RETENTION_JOB_ID", "PROCESS_DUE_JOB_ID", "JobOutcome", "NotificationScheduler", "Notifier"]
