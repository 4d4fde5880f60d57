"""Logging infrastructure.

Basic usage:
    import logging
    from notifyhub.infra.logging import set_log_context

    logger = logging.getLogger(__name__)
    set_log_context(dispatch_id="3f2a")
    logger.info("Sending")  # record includes dispatch_id

Lazy evaluation for expensive debug output:
    from notifyhub.infra.logging import get_lazy_logger

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Payload: {dump(payload)}")
"""

from notifyhub.infra.logging.config import configure_logging, setup_logging, shutdown
from notifyhub.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    remove_from_log_context,
    set_log_context,
)
from notifyhub.infra.logging.formatters import JSONFormatter
from notifyhub.infra.logging.lazy import LazyLoggerAdapter, LazyString, get_lazy_logger, lazy, lazy_urls

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "LazyString",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "lazy",
    "lazy_urls",
    "log_context",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
