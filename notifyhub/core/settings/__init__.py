"""Pydantic settings for notifyhub.

Each domain has its own frozen settings model and environment prefix:

- ``DispatchSettings`` (NOTIFY_)
- ``AttachmentSettings`` (ATTACH_)
- ``SchedulerSettings`` (SCHEDULER_)
- ``LoggingSettings`` (LOG_)

Import through the cached loaders:
    from notifyhub.core.settings import get_dispatch_settings
"""

from __future__ import annotations

from .attachments import AttachmentSettings
from .dispatch import DispatchSettings
from .loader import (
    clear_settings_cache,
    get_attachment_settings,
    get_dispatch_settings,
    get_logging_settings,
    get_scheduler_settings,
)
from .logs import LoggingSettings
from .scheduler import SchedulerSettings

__all__ = [
    "AttachmentSettings",
    "DispatchSettings",
    "LoggingSettings",
    "SchedulerSettings",
    "clear_settings_cache",
    "get_attachment_settings",
    "get_dispatch_settings",
    "get_logging_settings",
    "get_scheduler_settings",
]
