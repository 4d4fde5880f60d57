"""JSON Lines formatter for notifyhub records."""

from __future__ import annotations

from datetime import UTC, datetime
import json
import logging
from typing import Any

from notifyhub.utils.redact import redact_url

# Standard LogRecord attributes; everything else on a record is an extra field
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

# Extra fields holding destination URLs
URL_FIELDS = frozenset({"url", "service_url", "destination", "urls"})


def _scrub(key: str, value: Any) -> Any:
    if key not in URL_FIELDS:
        return value
    if isinstance(value, str):
        return redact_url(value)
    if isinstance(value, list | tuple):
        return [redact_url(item) if isinstance(item, str) else item for item in value]
    return value


class JSONFormatter(logging.Formatter):
    """One JSON object per record with a UTC millisecond ``timestamp``.

    ``extra={...}`` fields and the fields injected by
    ``ContextInjectingFilter`` are merged into the object. Values of the
    ``URL_FIELDS`` keys are passed through ``redact_url`` so destination
    credentials never reach a log sink, even when a caller forgot to redact.

    Example output:
        {"level": "WARNING", "logger": "notifyhub.features.dispatch.dispatcher", "message": "Delivery failed", "timestamp": "2025-01-01T00:00:00.123Z", "service_id": "slack", "url": "slack://****/B000/****"}
    """

    def __init__(self, static: dict[str, Any] | None = None) -> None:
        """
        Args:
            static: Fields added to every record, such as the service name.
        """
        super().__init__()
        self.static = dict(static or {})

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info).replace("\n", "\\n")
        if record.stack_info:
            data["stack_trace"] = record.stack_info.replace("\n", "\\n")
        data.update(self.static)

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in data:
                data[key] = _scrub(key, value)

        return json.dumps(data, ensure_ascii=False, default=str)


__all__ = ["URL_FIELDS", "JSONFormatter"]
