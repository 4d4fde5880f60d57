"""Deferred log messages.

Adapters and repositories log request lines, payload sizes and query results
at DEBUG. Building those strings costs more than the log call itself, so they
are passed as callables and only evaluated when DEBUG is on:

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"{service_id}: POST {redact_url(url)}")
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
from typing import Any


def _evaluate(value: Any) -> Any:
    return value() if callable(value) else value


class LazyString:
    """Defers ``func()`` until the record is formatted."""

    __slots__ = ("_func",)

    def __init__(self, func: Callable[[], Any]) -> None:
        self._func = func

    def __str__(self) -> str:
        return str(self._func())

    def __repr__(self) -> str:
        return f"LazyString({self._func!r})"


class LazyLoggerAdapter(logging.LoggerAdapter):
    """``LoggerAdapter`` whose message and arguments may be callables.

    Fields given at construction are merged under each call's ``extra``.

    Example:
        registry_log = LazyLoggerAdapter(logging.getLogger(__name__), {"component": "registry"})
        registry_log.debug(lambda: f"schemes: {sorted(registry)}")
    """

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        if self.extra:
            kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        self.logger.log(level, _evaluate(msg), *map(_evaluate, args), **kwargs)

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, **kwargs)


def get_lazy_logger(name: str, **context: Any) -> LazyLoggerAdapter:
    """Return a lazy adapter for ``logging.getLogger(name)``.

    Args:
        name: Logger name, usually ``__name__``.
        **context: Fields attached to every record from this adapter.
    """
    return LazyLoggerAdapter(logging.getLogger(name), context)


def lazy(func: Callable[[], Any]) -> LazyString:
    return LazyString(func)


def lazy_urls(urls: Iterable[str]) -> LazyString:
    """Comma-separated redacted URLs, computed only if the record is emitted."""
    from notifyhub.utils.redact import redact_url

    items = list(urls)
    return LazyString(lambda: ", ".join(redact_url(url) for url in items))


__all__ = ["LazyLoggerAdapter", "LazyString", "get_lazy_logger", "lazy", "lazy_urls"]
