"""Exponential backoff with jitter."""

from __future__ import annotations

from datetime import datetime, timedelta
import random
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from notifyhub.core.settings import SchedulerSettings


class RetryStrategy:
    """Decides whether and when to retry.

    The delay for the zero-based ``attempt`` is
    ``initial_delay * exponential_base ** attempt`` multiplied by a uniform
    factor from ``jitter_range``, then capped at ``max_delay``.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        jitter_range: tuple[float, float] = (0.5, 1.5),
        exceptions: tuple[type[Exception], ...] = (Exception,),
        retry_if: Callable[[Exception], bool] | None = None,
        stop_after_delay: float | None = None,
    ) -> None:
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.jitter_range = jitter_range
        self.exceptions = exceptions
        self.retry_if = retry_if
        self.stop_after_delay = stop_after_delay

    @classmethod
    def from_scheduler_settings(
        cls,
        settings: SchedulerSettings,
        *,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
    ) -> RetryStrategy:
        """Build the job backoff policy, letting a job override the defaults."""
        return cls(
            max_attempts=max_attempts or settings.max_attempts,
            initial_delay=base_delay or settings.retry_base_delay,
            max_delay=max_delay or settings.retry_max_delay,
        )

    def should_retry(self, exception: Exception) -> bool:
        if self.retry_if is not None:
            return self.retry_if(exception)
        return isinstance(exception, self.exceptions)

    def calculate_delay(self, attempt: int) -> float:
        delay = self.initial_delay * (self.exponential_base**attempt)
        if self.jitter:
            delay *= random.uniform(self.jitter_range[0], self.jitter_range[1])
        return min(delay, self.max_delay)

    def exhausted(self, attempts: int) -> bool:
        """True once ``attempts`` completed attempts use up the budget."""
        return attempts >= self.max_attempts

    def next_run(self, attempts: int, now: datetime) -> datetime:
        """Return when a job that has made ``attempts`` attempts runs next."""
        return now + timedelta(seconds=self.calculate_delay(max(attempts - 1, 0)))
