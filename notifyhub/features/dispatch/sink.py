"""One-way result sink for dispatch outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.features.dispatch.dispatcher import NotifyResponse


@runtime_checkable
class ResultSink(Protocol):
    """Receives every per-destination response after a dispatch.

    The dispatcher never reads anything back from the sink; errors raised by
    ``record`` are logged and ignored.
    """

    def record(self, response: NotifyResponse, request: NotificationRequest) -> None: ...


@dataclass
class MemorySink:
    """Keeps responses in memory, newest last."""

    responses: list[NotifyResponse] = field(default_factory=list)

    def record(self, response: NotifyResponse, request: NotificationRequest) -> None:
        self.responses.append(response)

    def clear(self) -> None:
        self.responses.clear()


__all__ = ["MemorySink", "ResultSink"]
