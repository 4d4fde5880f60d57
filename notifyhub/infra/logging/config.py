"""Logging configuration setup.

Uses ``logging.config.dictConfig`` for the root logger and filters, and a
``QueueHandler`` + ``QueueListener`` pair so adapters running inside the event
loop never block on console or file I/O.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any

from notifyhub.infra.logging.context import ContextInjectingFilter

if TYPE_CHECKING:
    from notifyhub.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)

_log_queue: Queue[logging.LogRecord] | None = None
_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def shutdown() -> None:
    """Stop the QueueListener, flushing pending records.

    Registered with ``atexit`` by ``configure_logging``.
    """
    global _log_queue, _listener

    if _listener is not None:
        _listener.stop()
        _listener = None
    _log_queue = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from notifyhub.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    log_config = {**settings_obj.to_logging_kwargs(), **configure_kwargs}
    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    service_name: str = "notifyhub",
    json_logs: bool = False,
    console_enabled: bool = True,
    file_path: str | Path | None = None,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    include_context: bool = True,
    capture_warnings: bool = True,
) -> None:
    """Configure root logging with dictConfig and the queue pattern.

    Args:
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        service_name: Static ``service`` field for JSON records.
        json_logs: Emit JSON Lines instead of human-readable text.
        console_enabled: Write records to stderr.
        file_path: Rotating log file path. None disables file logging.
        file_max_bytes: Maximum log file size before rotation.
        file_backup_count: Number of rotated log files to keep.
        include_context: Inject the contextvars log context into every record.
        capture_warnings: Forward Python warnings to logging.

    Example:
        from notifyhub.core.settings import get_logging_settings
        configure_logging(**get_logging_settings().to_logging_kwargs())
    """
    global _log_queue, _listener

    if capture_warnings:
        logging.captureWarnings(True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "root": {
                "level": log_level.upper(),
                "handlers": [],
            },
        }
    )

    handlers = _build_handlers(
        service_name=service_name,
        json_logs=json_logs,
        console_enabled=console_enabled,
        file_path=Path(file_path) if file_path else None,
        file_max_bytes=file_max_bytes,
        file_backup_count=file_backup_count,
    )

    # Replace any listener left over from a previous configuration
    shutdown()
    _log_queue = Queue()
    _listener = QueueListener(_log_queue, *handlers, respect_handler_level=True)
    _listener.start()

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    queue_handler = QueueHandler(_log_queue)
    if include_context:
        # QueueHandler copies the record; inject context before it is queued
        queue_handler.addFilter(ContextInjectingFilter())
    root.addHandler(queue_handler)

    atexit.register(shutdown)
    logger.debug(
        "Logging configured",
        extra={"log_level": log_level, "json_logs": json_logs, "file_path": str(file_path)},
    )


def _build_handlers(
    service_name: str,
    json_logs: bool,
    console_enabled: bool,
    file_path: Path | None,
    file_max_bytes: int,
    file_backup_count: int,
) -> list[logging.Handler]:
    from notifyhub.infra.logging.formatters import JSONFormatter

    def make_formatter() -> logging.Formatter:
        if json_logs:
            return JSONFormatter(static={"service": service_name})
        return logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = []
    if console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(make_formatter())
        handlers.append(console_handler)

    if file_path:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        # Files are always machine-readable
        file_handler.setFormatter(JSONFormatter(static={"service": service_name}))
        handlers.append(file_handler)

    if not handlers:
        handlers.append(logging.NullHandler())
    return handlers


__all__ = ["configure_logging", "setup_logging", "shutdown"]
