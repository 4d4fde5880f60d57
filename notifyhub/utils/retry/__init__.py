"""Retry helpers: backoff strategy and an async ``@retry`` decorator."""

from __future__ import annotations

from notifyhub.utils.retry.decorator import retry
from notifyhub.utils.retry.exceptions import RetryError, RetryStatistics
from notifyhub.utils.retry.strategies import RetryStrategy

__all__ = ["RetryError", "RetryStatistics", "RetryStrategy", "retry"]
