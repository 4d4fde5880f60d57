"""Delivery metric storage and aggregated reports.

Usage:
    reporter = MetricsReporter(database)
    await reporter.record(response, notify_type=NotifyType.ERROR)

    report = await reporter.report(start, end)
    report.success_rate  # percent
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime, timedelta
import json
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import case, delete, func, select

from notifyhub.core.types import NotifyType
from notifyhub.features.scheduler.models import ERROR_MESSAGE_MAX_LENGTH, NotificationMetric
from notifyhub.utils.redact import redact_url

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from notifyhub.features.dispatch.dispatcher import NotifyResponse
    from notifyhub.infra.database import Database

logger = logging.getLogger(__name__)

_TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d %H:%M:%S")


def parse_timestamp(value: datetime | str | None) -> datetime:
    """Parse a stored timestamp into an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), RFC3339 strings and
    ``YYYY-MM-DD HH:MM:SS[.ffffff]``. Anything else yields the current time
    and a warning.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        for fmt in _TIMESTAMP_FORMATS:
            try:
                return datetime.strptime(text, fmt).replace(tzinfo=UTC)
            except ValueError:
                continue
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            pass
        else:
            return parse_timestamp(parsed)
    logger.warning("Unparseable metric timestamp, using current time", extra={"value": repr(value)})
    return datetime.now(UTC)


def _rate(successful: int, total: int) -> float:
    return round(successful / total * 100, 2) if total else 0.0


@dataclass
class ServiceMetrics:
    service_id: str
    total_notifications: int
    successful_notifications: int
    failed_notifications: int
    success_rate: float
    average_duration_ms: float


@dataclass
class HourlyMetrics:
    hour: str
    total: int
    successful: int
    failed: int
    success_rate: float


@dataclass
class ErrorMetrics:
    error_message: str
    count: int
    last_seen: datetime


@dataclass
class MetricsReport:
    """Aggregated delivery metrics for ``[start, end]``.

    ``success_rate`` values are percentages; durations are milliseconds.
    """

    period: str
    total_notifications: int = 0
    successful_notifications: int = 0
    failed_notifications: int = 0
    success_rate: float = 0.0
    average_duration_ms: float = 0.0
    service_metrics: dict[str, ServiceMetrics] = field(default_factory=dict)
    notification_types: dict[str, int] = field(default_factory=dict)
    hourly_breakdown: list[HourlyMetrics] = field(default_factory=list)
    top_errors: list[ErrorMetrics] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for error in data["top_errors"]:
            error["last_seen"] = error["last_seen"].isoformat()
        return data


class MetricsReporter:
    """Writes ``NotificationMetric`` rows and aggregates them into reports."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @staticmethod
    def build_metric(
        response: NotifyResponse,
        *,
        notify_type: NotifyType | str | int = NotifyType.INFO,
        job_id: str | None = None,
        scheduled_job_id: int | None = None,
        metadata: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> NotificationMetric:
        error_message = str(response.error)[:ERROR_MESSAGE_MAX_LENGTH] if response.error else None
        return NotificationMetric(
            job_id=job_id,
            scheduled_job_id=scheduled_job_id,
            service_id=response.service_id,
            service_url=redact_url(response.service_url) if response.service_url else "",
            notification_type=NotifyType.from_value(notify_type).code,
            status="success" if response.success else "failed",
            duration_ms=response.duration_ms,
            error_message=error_message,
            metadata_json=json.dumps(metadata or {}, default=str),
            timestamp=timestamp or datetime.now(UTC),
        )

    async def record(self, response: NotifyResponse, **kwargs: Any) -> None:
        """Store one response; keyword arguments as ``build_metric``."""
        await self.record_many([response], **kwargs)

    async def record_many(self, responses: Iterable[NotifyResponse], **kwargs: Any) -> int:
        metrics = [self.build_metric(response, **kwargs) for response in responses]
        if not metrics:
            return 0
        async with self.database.session() as session:
            session.add_all(metrics)
            await session.commit()
        return len(metrics)

    async def add_metrics(self, session: AsyncSession, metrics: Iterable[NotificationMetric]) -> None:
        """Add prebuilt rows inside the caller's transaction."""
        session.add_all(list(metrics))

    async def report(self, start: datetime, end: datetime, top_n: int = 10) -> MetricsReport:
        """Aggregate the metrics recorded between ``start`` and ``end`` inclusive."""
        report = MetricsReport(period=f"{start.isoformat()} to {end.isoformat()}")
        in_period = NotificationMetric.timestamp.between(start, end)
        succeeded = func.sum(case((NotificationMetric.status == "success", 1), else_=0))
        failed = func.sum(case((NotificationMetric.status == "failed", 1), else_=0))

        async with self.database.session() as session:
            overall = (
                await session.execute(
                    select(func.count(), succeeded, failed, func.avg(NotificationMetric.duration_ms)).where(
                        in_period
                    )
                )
            ).one()
            report.total_notifications = overall[0] or 0
            report.successful_notifications = overall[1] or 0
            report.failed_notifications = overall[2] or 0
            report.success_rate = _rate(report.successful_notifications, report.total_notifications)
            report.average_duration_ms = round(float(overall[3] or 0.0), 2)

            rows = await session.execute(
                select(
                    NotificationMetric.service_id,
                    func.count(),
                    succeeded,
                    failed,
                    func.avg(NotificationMetric.duration_ms),
                )
                .where(in_period)
                .group_by(NotificationMetric.service_id)
                .order_by(func.count().desc())
            )
            for service_id, total, ok, bad, avg in rows:
                report.service_metrics[service_id] = ServiceMetrics(
                    service_id=service_id,
                    total_notifications=total,
                    successful_notifications=ok or 0,
                    failed_notifications=bad or 0,
                    success_rate=_rate(ok or 0, total),
                    average_duration_ms=round(float(avg or 0.0), 2),
                )

            rows = await session.execute(
                select(NotificationMetric.notification_type, func.count())
                .where(in_period)
                .group_by(NotificationMetric.notification_type)
            )
            for code, count in rows:
                report.notification_types[NotifyType.from_value(code).label] = count

            hour = func.strftime("%Y-%m-%d %H:00", NotificationMetric.timestamp)
            rows = await session.execute(
                select(hour, func.count(), succeeded, failed).where(in_period).group_by(hour).order_by(hour)
            )
            for label, total, ok, bad in rows:
                report.hourly_breakdown.append(
                    HourlyMetrics(
                        hour=label,
                        total=total,
                        successful=ok or 0,
                        failed=bad or 0,
                        success_rate=_rate(ok or 0, total),
                    )
                )

            rows = await session.execute(
                select(
                    NotificationMetric.error_message,
                    func.count().label("count"),
                    func.max(NotificationMetric.timestamp),
                )
                .where(
                    in_period,
                    NotificationMetric.status == "failed",
                    NotificationMetric.error_message.is_not(None),
                    NotificationMetric.error_message != "",
                )
                .group_by(NotificationMetric.error_message)
                .order_by(func.count().desc())
                .limit(top_n)
            )
            for message, count, last_seen in rows:
                report.top_errors.append(
                    ErrorMetrics(error_message=message, count=count, last_seen=parse_timestamp(last_seen))
                )

        return report

    async def cleanup(self, older_than_days: int, *, now: datetime | None = None) -> int:
        """Delete metric rows older than ``older_than_days``; returns the count."""
        cutoff = (now or datetime.now(UTC)) - timedelta(days=older_than_days)
        async with self.database.session() as session:
            result = await session.execute(delete(NotificationMetric).where(NotificationMetric.timestamp < cutoff))
            await session.commit()
        deleted = result.rowcount or 0
        logger.info("Old metrics removed", extra={"deleted": deleted, "cutoff": cutoff.isoformat()})
        return deleted


__all__ = [
    "ErrorMetrics",
    "HourlyMetrics",
    "MetricsReport",
    "MetricsReporter",
    "ServiceMetrics",
    "parse_timestamp",
]
