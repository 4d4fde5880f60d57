"""Helper functions for updating the notifyhub collectors."""

from __future__ import annotations

from notifyhub.infra.metrics import prometheus

# ============================================================================
# Dispatch Tracking
# ============================================================================


def track_delivery(service_id: str, success: bool, duration: float) -> None:
    """Track one per-destination delivery.

    Args:
        service_id: Adapter scheme
        success: Whether the destination accepted the notification
        duration: Wall-clock seconds spent in the adapter

    Example:
        track_delivery("discord", True, 0.214)
    """
    status = "success" if success else "failed"
    prometheus.notifications_total.labels(service_id=service_id, status=status).inc()
    prometheus.notification_duration_seconds.labels(service_id=service_id).observe(duration)


def track_dispatch() -> None:
    """Track a notify call."""
    prometheus.dispatch_total.inc()


def track_scheduled_job(status: str) -> None:
    """Track the outcome of one scheduled job attempt.

    Args:
        status: succeeded, failed, exhausted or retried
    """
    prometheus.scheduler_jobs_total.labels(status=status).inc()


# ============================================================================
# Retry Tracking
# ============================================================================


def track_retry_attempt(operation: str, attempt_number: int) -> None:
    """Track a retry attempt.

    Args:
        operation: Name of the operation being retried
        attempt_number: Current attempt number (1-indexed)

    Example:
        track_retry_attempt("login", 2)
    """
    prometheus.retry_attempts_total.labels(
        operation=operation,
        attempt_number=str(attempt_number),
    ).inc()


def track_retry_exhausted(operation: str) -> None:
    """Track when all retry attempts are exhausted."""
    prometheus.retry_exhausted_total.labels(operation=operation).inc()


def track_retry_success(operation: str, attempts_needed: int) -> None:
    """Track successful operation after retries."""
    prometheus.retry_success_after_failure_total.labels(
        operation=operation,
        attempts_needed=str(attempts_needed),
    ).inc()


__all__ = [
    "track_delivery",
    "track_dispatch",
    "track_retry_attempt",
    "track_retry_exhausted",
    "track_retry_success",
    "track_scheduled_job",
]
