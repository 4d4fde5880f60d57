"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Usage:
    from notifyhub.core.settings.loader import get_dispatch_settings

    settings = get_dispatch_settings()

Testing:
    Clear the cache to force a reload:
    get_dispatch_settings.cache_clear()

    Or construct settings directly:
    settings = DispatchSettings(timeout=1.0)
"""

from __future__ import annotations

from functools import lru_cache

from .attachments import AttachmentSettings
from .dispatch import DispatchSettings
from .logs import LoggingSettings
from .scheduler import SchedulerSettings


@lru_cache(maxsize=1)
def get_dispatch_settings() -> DispatchSettings:
    """Get cached dispatch settings."""
    return DispatchSettings()


@lru_cache(maxsize=1)
def get_attachment_settings() -> AttachmentSettings:
    """Get cached attachment settings."""
    return AttachmentSettings()


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """Get cached scheduler settings."""
    return SchedulerSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


def clear_settings_cache() -> None:
    """Clear every cached settings instance (testing helper)."""
    get_dispatch_settings.cache_clear()
    get_attachment_settings.cache_clear()
    get_scheduler_settings.cache_clear()
    get_logging_settings.cache_clear()
