"""Pytest configuration and shared fixtures.

Organization:
    - Settings Fixtures: isolated settings per test
    - HTTP Fixtures: mock-transport client pools that record requests
    - Database Fixtures: in-memory scheduler store
    - Logging Fixtures: restore root logging after configure_logging
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
import json
import logging
from typing import Any

import httpx
import pytest

from notifyhub.core.settings import DispatchSettings, clear_settings_cache
from notifyhub.features.services.registry import build_default_registry
from notifyhub.infra.database import Database
from notifyhub.infra.http.pool import HTTPClientPool
from notifyhub.infra.logging import shutdown as shutdown_logging

Handler = Callable[[httpx.Request], httpx.Response]


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep environment settings and cached loaders from leaking between tests."""
    for name in ("NOTIFY_TIMEOUT", "NOTIFY_DEFAULT_TAGS", "SCHEDULER_DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def dispatch_settings() -> DispatchSettings:
    """Dispatch settings with a short deadline and no default tags."""
    return DispatchSettings(timeout=5.0, default_tags=[])


# ============================================================================
# HTTP Fixtures
# ============================================================================


class RecordedRequests(list[httpx.Request]):
    """Requests seen by a mock transport, oldest first."""

    def json(self, index: int = -1) -> Any:
        return json.loads(self[index].content)

    def to(self, host: str) -> list[httpx.Request]:
        return [request for request in self if request.url.host == host]


@pytest.fixture
def requests_seen() -> RecordedRequests:
    return RecordedRequests()


@pytest.fixture
async def make_pool(requests_seen: RecordedRequests) -> AsyncGenerator[Callable[[Handler], HTTPClientPool]]:
    """Build HTTP pools whose clients answer through ``handler``.

    Every request is appended to ``requests_seen`` before the handler runs.

    Example:
        async def test_send(make_pool, requests_seen):
            pool = make_pool(lambda request: httpx.Response(204))
    """
    pools: list[HTTPClientPool] = []

    def factory(handler: Handler) -> HTTPClientPool:
        def record(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            return handler(request)

        pool = HTTPClientPool(transport=httpx.MockTransport(record), user_agent="notifyhub-tests")
        pools.append(pool)
        return pool

    yield factory
    for pool in pools:
        await pool.close_idle()


@pytest.fixture
def ok_pool(make_pool: Callable[[Handler], HTTPClientPool]) -> HTTPClientPool:
    """Pool whose every request succeeds with an empty 204."""
    return make_pool(lambda request: httpx.Response(204))


@pytest.fixture
def registry():
    return build_default_registry()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def database() -> AsyncGenerator[Database]:
    """In-memory scheduler store with every table created.

    Yields:
        Database sharing one SQLite connection across sessions.
    """
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()
    try:
        yield db
    finally:
        await db.dispose()


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture
def restore_root_logging():
    """Undo ``configure_logging``: stop the listener and restore root handlers."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    shutdown_logging()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.captureWarnings(False)
