"""Persistent job scheduler, delivery metrics and notification templates."""

from notifyhub.features.scheduler.models import (
    JobStatus,
    NotificationMetric,
    NotificationTemplate,
    ScheduledJob,
)
from notifyhub.features.scheduler.reporter import MetricsReport, MetricsReporter, parse_timestamp
from notifyhub.features.scheduler.service import JobOutcome, NotificationScheduler, Notifier
from notifyhub.features.scheduler.templates import TemplateRenderer

__all__ = [
    "JobOutcome",
    "JobStatus",
    "MetricsReport",
    "MetricsReporter",
    "NotificationMetric",
    "NotificationScheduler",
    "NotificationTemplate",
    "Notifier",
    "ScheduledJob",
    "TemplateRenderer",
    "parse_timestamp",
]
