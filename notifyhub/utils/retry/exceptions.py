"""Retry bookkeeping and the error raised when retries run out."""

from __future__ import annotations

from dataclasses import dataclass, field
import time

from notifyhub.core.exceptions import NotifyError


@dataclass
class RetryStatistics:
    """What happened across the attempts of one call."""

    start_time: float = field(default_factory=time.monotonic)
    end_time: float = 0.0
    delays: list[float] = field(default_factory=list)
    exceptions: list[str] = field(default_factory=list)

    @property
    def attempts(self) -> int:
        """Retries made so far, not counting the first call."""
        return len(self.delays)

    @property
    def total_delay(self) -> float:
        return sum(self.delays)

    @property
    def elapsed(self) -> float:
        return (self.end_time or time.monotonic()) - self.start_time

    def failed(self, error: Exception) -> None:
        self.exceptions.append(type(error).__name__)

    def waited(self, delay: float) -> None:
        self.delays.append(delay)


class RetryError(NotifyError):
    """Every attempt failed with a retryable error.

    Attributes:
        last_exception: Error from the final attempt.
        attempts: Calls made, the first one included.
        statistics: Per-attempt delays and exception names.
    """

    def __init__(
        self,
        last_exception: Exception,
        attempts: int,
        statistics: RetryStatistics | None = None,
    ) -> None:
        self.last_exception = last_exception
        self.attempts = attempts
        self.statistics = statistics or RetryStatistics()
        super().__init__(
            f"failed after {attempts} attempts: {last_exception}",
            extra={"attempts": attempts, "last_exception": type(last_exception).__name__},
        )
