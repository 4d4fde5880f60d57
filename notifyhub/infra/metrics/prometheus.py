"""Prometheus collectors for dispatch, scheduler and retry activity."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram

# Dedicated registry so embedding applications decide what to expose
REGISTRY = CollectorRegistry()

# Provider round-trips range from a few ms (local webhook) to tens of seconds
DELIVERY_LATENCY_BUCKETS = (
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
)

# ============================================================================
# Dispatch Metrics
# ============================================================================

notifications_total = Counter(
    "notifyhub_notifications_total",
    "Total number of per-destination deliveries",
    ["service_id", "status"],  # status: success, failed
    registry=REGISTRY,
)
"""Incremented once per destination result returned by a dispatch."""

notification_duration_seconds = Histogram(
    "notifyhub_notification_duration_seconds",
    "Per-destination delivery duration in seconds",
    ["service_id"],
    buckets=DELIVERY_LATENCY_BUCKETS,
    registry=REGISTRY,
)
"""Observed for every destination, failed ones included."""

dispatch_total = Counter(
    "notifyhub_dispatch_total",
    "Total number of notify calls",
    registry=REGISTRY,
)
"""Incremented once per notify call, even with zero destinations."""

# ============================================================================
# Scheduler Metrics
# ============================================================================

scheduler_jobs_total = Counter(
    "notifyhub_scheduler_jobs_total",
    "Scheduled jobs by final status of an attempt",
    ["status"],  # succeeded, failed, exhausted, retried
    registry=REGISTRY,
)
"""Incremented after each processed job attempt."""

# ============================================================================
# Retry Metrics
# ============================================================================

retry_attempts_total = Counter(
    "notifyhub_retry_attempts_total",
    "Total number of retry attempts",
    ["operation", "attempt_number"],
    registry=REGISTRY,
)

retry_exhausted_total = Counter(
    "notifyhub_retry_exhausted_total",
    "Total number of operations that exhausted all retries",
    ["operation"],
    registry=REGISTRY,
)

retry_success_after_failure_total = Counter(
    "notifyhub_retry_success_after_failure_total",
    "Total number of operations that succeeded after retry",
    ["operation", "attempts_needed"],
    registry=REGISTRY,
)
