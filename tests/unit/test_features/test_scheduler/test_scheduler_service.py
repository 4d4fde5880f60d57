"""Tests for the persistent notification scheduler."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from notifyhub.core.exceptions import SchedulerError, TemplateRenderError
from notifyhub.core.settings import SchedulerSettings
from notifyhub.features.dispatch import Dispatcher, NotifyResponse
from notifyhub.features.scheduler import JobStatus, NotificationScheduler
from notifyhub.features.scheduler.service import METRICS_RETENTION_JOB_ID

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def failing_host(host: str):
    """Handler that rejects requests to ``host`` and accepts the rest."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == host:
            return httpx.Response(500, text="upstream down")
        return httpx.Response(200, json={"id": "1"})

    return handler


@pytest.fixture
def scheduler_settings() -> SchedulerSettings:
    return SchedulerSettings(max_attempts=3, retry_base_delay=10.0, retry_max_delay=60.0, batch_size=10)


@pytest.fixture
def build_scheduler(database, registry, dispatch_settings, scheduler_settings):
    """Scheduler whose notifiers deliver through the given pool."""

    def factory(pool) -> NotificationScheduler:
        return NotificationScheduler(
            database,
            notifier_factory=lambda: Dispatcher(registry=registry, pool=pool, settings=dispatch_settings),
            settings=scheduler_settings,
        )

    return factory


# ──────────────────────────────────────────────────────────────
# Scheduling
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestSchedule:
    async def test_persists_pending_job(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)

        job = await scheduler.schedule(
            urls=["ntfy://ntfy.local/alerts"],
            title="Disk",
            body="full",
            notify_type="warning",
            body_format="markdown",
            tags=["ops"],
            scheduled_for=NOW,
        )
        stored = await scheduler.get_job(job.id)

        assert stored.status == JobStatus.PENDING.value
        assert stored.notify_type == "warning"
        assert stored.body_format == "markdown"
        assert stored.tags == ["ops"]
        assert stored.attempts == 0
        assert stored.max_attempts == 3
        assert stored.scheduled_for == NOW
        assert not stored.is_recurring

    async def test_requires_destinations(self, build_scheduler, ok_pool):
        with pytest.raises(SchedulerError):
            await build_scheduler(ok_pool).schedule(urls=[], body="b")

    async def test_rejects_invalid_cron(self, build_scheduler, ok_pool):
        with pytest.raises(SchedulerError, match="Invalid cron"):
            await build_scheduler(ok_pool).schedule(urls=["ntfy://ntfy.local/a"], cron_expression="every day")

    async def test_rejects_unknown_template(self, build_scheduler, ok_pool):
        with pytest.raises(SchedulerError, match="Unknown template"):
            await build_scheduler(ok_pool).schedule(urls=["ntfy://ntfy.local/a"], template_name="missing")

    async def test_list_jobs_by_status(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)
        first = await scheduler.schedule(urls=["ntfy://ntfy.local/a"], body="1", scheduled_for=NOW)
        await scheduler.schedule(urls=["ntfy://ntfy.local/a"], body="2", scheduled_for=NOW + timedelta(hours=1))
        await scheduler.cancel(first.id)

        pending = await scheduler.list_jobs(JobStatus.PENDING)
        everything = await scheduler.list_jobs()

        assert [job.body for job in pending] == ["2"]
        assert [job.body for job in everything] == ["1", "2"]


@pytest.mark.unit
class TestCancel:
    async def test_cancel_pending_job(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)
        job = await scheduler.schedule(urls=["ntfy://ntfy.local/a"], body="b", scheduled_for=NOW)

        assert await scheduler.cancel(job.id) is True

        stored = await scheduler.get_job(job.id)
        assert stored.status == JobStatus.FAILED.value
        assert stored.last_error == "canceled"
        assert stored.enabled is False
        assert await scheduler.process_due(NOW) == []

    async def test_cancel_twice_or_missing(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)
        job = await scheduler.schedule(urls=["ntfy://ntfy.local/a"], body="b", scheduled_for=NOW)
        await scheduler.cancel(job.id)

        assert await scheduler.cancel(job.id) is False
        assert await scheduler.cancel(9999) is False


# ──────────────────────────────────────────────────────────────
# Processing
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestProcessDue:
    async def test_success(self, build_scheduler, ok_pool, requests_seen):
        scheduler = build_scheduler(ok_pool)
        job = await scheduler.schedule(
            urls=["ntfy://ntfy.local/alerts", "ntfy://backup.local/alerts"],
            title="Deploy",
            body="done",
            notify_type="success",
            scheduled_for=NOW - timedelta(minutes=1),
        )

        outcomes = await scheduler.process_due(NOW)

        assert [(o.job_id, o.status) for o in outcomes] == [(job.id, JobStatus.SUCCEEDED)]
        assert len(outcomes[0].responses) == 2
        assert sorted(request.url.host for request in requests_seen) == ["backup.local", "ntfy.local"]
        stored = await scheduler.get_job(job.id)
        assert stored.status == JobStatus.SUCCEEDED.value
        assert stored.attempts == 1
        assert stored.completed_at == NOW
        assert stored.last_error is None

    async def test_future_jobs_wait(self, build_scheduler, ok_pool, requests_seen):
        scheduler = build_scheduler(ok_pool)
        await scheduler.schedule(urls=["ntfy://ntfy.local/a"], body="b", scheduled_for=NOW + timedelta(seconds=1))

        assert await scheduler.process_due(NOW) == []
        assert requests_seen == []

    async def test_failure_is_retried_with_backoff(self, build_scheduler, make_pool):
        """A failed destination puts the job back with a later due time."""
        scheduler = build_scheduler(make_pool(failing_host("backup.local")))
        job = await scheduler.schedule(
            urls=["ntfy://ntfy.local/alerts", "ntfy://backup.local/alerts"],
            body="b",
            scheduled_for=NOW,
        )

        (outcome,) = await scheduler.process_due(NOW)

        assert outcome.status is JobStatus.PENDING
        assert outcome.error
        stored = await scheduler.get_job(job.id)
        assert stored.status == JobStatus.PENDING.value
        assert stored.last_error == outcome.error
        assert stored.completed_at is None
        # base delay 10s with jitter in [0.5, 1.5]
        assert NOW + timedelta(seconds=5) <= stored.scheduled_for <= NOW + timedelta(seconds=15)
        assert await scheduler.process_due(NOW + timedelta(seconds=1)) == []

    async def test_exhausted_after_max_attempts(self, build_scheduler, make_pool):
        scheduler = build_scheduler(make_pool(failing_host("ntfy.local")))
        job = await scheduler.schedule(urls=["ntfy://ntfy.local/a"], body="b", scheduled_for=NOW, max_attempts=2)

        first = await scheduler.process_due(NOW)
        second = await scheduler.process_due(NOW + timedelta(minutes=5))

        assert first[0].status is JobStatus.PENDING
        assert second[0].status is JobStatus.EXHAUSTED
        stored = await scheduler.get_job(job.id)
        assert stored.attempts == 2
        assert stored.completed_at == NOW + timedelta(minutes=5)

    async def test_rejected_destination_counts_as_failure(self, build_scheduler, ok_pool, requests_seen):
        """Valid destinations are still sent when another URL is rejected."""
        scheduler = build_scheduler(ok_pool)
        await scheduler.schedule(urls=["nope://x", "ntfy://ntfy.local/a"], body="b", scheduled_for=NOW)

        (outcome,) = await scheduler.process_due(NOW)

        assert outcome.status is JobStatus.PENDING
        assert len(requests_seen) == 1
        assert [r.success for r in outcome.responses] == [False, True]
        assert outcome.responses[0].service_id == "nope"

    async def test_no_valid_destinations(self, build_scheduler, ok_pool, requests_seen):
        scheduler = build_scheduler(ok_pool)
        job = await scheduler.schedule(urls=["nope://x", "ntfy://"], body="b", scheduled_for=NOW)

        (outcome,) = await scheduler.process_due(NOW)

        assert outcome.status is JobStatus.FAILED
        assert outcome.error == "no valid destinations"
        assert requests_seen == []
        assert (await scheduler.get_job(job.id)).last_error == "no valid destinations"

    async def test_batch_size_limits_claims(self, database, registry, dispatch_settings, ok_pool):
        scheduler = NotificationScheduler(
            database,
            notifier_factory=lambda: Dispatcher(registry=registry, pool=ok_pool, settings=dispatch_settings),
            settings=SchedulerSettings(batch_size=2),
        )
        for index in range(3):
            await scheduler.schedule(urls=["ntfy://ntfy.local/a"], body=str(index), scheduled_for=NOW)

        first = await scheduler.process_due(NOW)
        second = await scheduler.process_due(NOW)

        assert len(first) == 2
        assert len(second) == 1

    async def test_metrics_recorded_per_destination(self, build_scheduler, make_pool):
        scheduler = build_scheduler(make_pool(failing_host("backup.local")))
        await scheduler.schedule(
            urls=["ntfy://ntfy.local/a", "ntfy://backup.local/a"],
            body="b",
            notify_type="error",
            scheduled_for=NOW,
        )
        await scheduler.process_due(NOW)
        now = datetime.now(UTC)

        report = await scheduler.reporter.report(now - timedelta(hours=1), now + timedelta(hours=1))

        assert report.total_notifications == 2
        assert report.successful_notifications == 1
        assert report.failed_notifications == 1
        assert report.notification_types == {"error": 2}


# ──────────────────────────────────────────────────────────────
# Templates
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestTemplates:
    async def test_default_templates_installed_once(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)

        assert await scheduler.ensure_default_templates() == 4
        assert await scheduler.ensure_default_templates() == 0

    async def test_template_job(self, build_scheduler, ok_pool, requests_seen):
        scheduler = build_scheduler(ok_pool)
        await scheduler.ensure_default_templates()
        await scheduler.schedule(
            urls=["ntfy://ntfy.local/deploys"],
            template_name="deployment-status",
            template_vars={"app_name": "api", "version": "1.2.0"},
            scheduled_for=NOW,
        )

        (outcome,) = await scheduler.process_due(NOW)

        assert outcome.status is JobStatus.SUCCEEDED
        payload = requests_seen.json()
        assert payload["title"] == "🚀 Deployment completed"
        assert "• Application: api" in payload["message"]
        assert "• Environment: production" in payload["message"]

    async def test_render_failure_fails_job(self, build_scheduler, ok_pool, requests_seen):
        scheduler = build_scheduler(ok_pool)
        await scheduler.add_template("broken", "Title", "{{ value.missing.deep }}")
        await scheduler.schedule(urls=["ntfy://ntfy.local/a"], template_name="broken", scheduled_for=NOW)

        (outcome,) = await scheduler.process_due(NOW)

        assert outcome.status is JobStatus.FAILED
        assert "Missing variable" in outcome.error
        assert requests_seen == []

    async def test_add_template_validation(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)
        await scheduler.add_template("daily", "Daily {{ name }}", "ok")

        with pytest.raises(TemplateRenderError):
            await scheduler.add_template("bad", "{% if %}", "body")
        with pytest.raises(SchedulerError, match="already exists"):
            await scheduler.add_template("daily", "again", "again")


# ──────────────────────────────────────────────────────────────
# Recurring jobs and lifecycle
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestRecurring:
    async def test_definition_is_never_claimed(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)
        definition = await scheduler.schedule(
            urls=["ntfy://ntfy.local/a"], body="nightly", scheduled_for=NOW, cron_expression="0 2 * * *"
        )

        assert definition.is_recurring
        assert await scheduler.process_due(NOW + timedelta(days=1)) == []

    async def test_enqueue_copies_definition(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)
        definition = await scheduler.schedule(
            urls=["ntfy://ntfy.local/a"],
            body="nightly",
            tags=["ops"],
            max_attempts=5,
            cron_expression="0 2 * * *",
        )

        job = await scheduler.enqueue_from(definition.id, NOW)
        (outcome,) = await scheduler.process_due(NOW)

        assert job.id != definition.id
        assert job.cron_expression is None
        assert job.body == "nightly"
        assert job.tags == ["ops"]
        assert job.max_attempts == 5
        assert outcome.job_id == job.id
        assert outcome.status is JobStatus.SUCCEEDED

    async def test_enqueue_ignores_disabled_and_one_shot(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)
        one_shot = await scheduler.schedule(urls=["ntfy://ntfy.local/a"], body="b", scheduled_for=NOW)
        definition = await scheduler.schedule(urls=["ntfy://ntfy.local/a"], body="b", cron_expression="*/5 * * * *")
        await scheduler.cancel(definition.id)

        assert await scheduler.enqueue_from(one_shot.id, NOW) is None
        assert await scheduler.enqueue_from(definition.id, NOW) is None
        assert await scheduler.enqueue_from(9999, NOW) is None

    async def test_start_and_stop(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)
        await scheduler.schedule(urls=["ntfy://ntfy.local/a"], body="b", cron_expression="0 2 * * *")

        await scheduler.start()
        try:
            assert scheduler.running
            await scheduler.start()
            assert scheduler.running
        finally:
            await scheduler.stop()

        assert not scheduler.running
        await scheduler.stop()


@pytest.mark.unit
class TestMetricsRetention:
    async def test_start_registers_daily_cleanup(self, build_scheduler, ok_pool):
        scheduler = build_scheduler(ok_pool)

        await scheduler.start()
        try:
            job = scheduler._scheduler.get_job(METRICS_RETENTION_JOB_ID)
            assert job is not None
            assert job.trigger.interval == timedelta(days=1)
            assert job.func == scheduler.prune_metrics
        finally:
            await scheduler.stop()

    async def test_prune_uses_retention_setting(self, database, registry, dispatch_settings):
        scheduler = NotificationScheduler(
            database,
            notifier_factory=lambda: Dispatcher(registry=registry, settings=dispatch_settings),
            settings=SchedulerSettings(metrics_retention_days=7),
        )
        response = NotifyResponse("ntfy", True, None, 0.1, "ntfy://ntfy.local/a")
        await scheduler.reporter.record(response, timestamp=NOW - timedelta(days=8))
        await scheduler.reporter.record(response, timestamp=NOW - timedelta(days=6))

        deleted = await scheduler.prune_metrics(NOW)

        assert deleted == 1
        report = await scheduler.reporter.report(NOW - timedelta(days=30), NOW)
        assert report.total_notifications == 1
