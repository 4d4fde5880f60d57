"""Tests for the shared HTTP client pool."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from notifyhub.core.settings import DispatchSettings
from notifyhub.features.dispatch import Dispatcher
from notifyhub.infra.http import pool as pool_module
from notifyhub.infra.http.pool import POOL_CONFIGS, HTTPClientPool, PoolClass


@pytest.fixture
async def pool():
    instance = HTTPClientPool(
        user_agent="notifyhub-tests",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"ua": request.headers["User-Agent"]})),
    )
    yield instance
    await instance.aclose()


@pytest.mark.unit
class TestHTTPClientPool:
    async def test_clients_are_cached_per_key_and_class(self, pool):
        discord = pool.get(PoolClass.WEBHOOK, "discord")

        assert pool.get(PoolClass.WEBHOOK, "discord") is discord
        assert pool.get(PoolClass.WEBHOOK, "slack") is not discord
        assert pool.get(PoolClass.CLOUD, "discord") is not discord

    async def test_client_settings_follow_class(self, pool):
        webhook = pool.get(PoolClass.WEBHOOK, "discord")
        cloud = pool.get(PoolClass.CLOUD, "sns")

        assert webhook.timeout.read == 15.0
        assert cloud.timeout.read == 60.0
        assert webhook.headers["User-Agent"] == "notifyhub-tests"
        assert webhook.follow_redirects

    async def test_requests_use_injected_transport(self, pool):
        response = await pool.get(PoolClass.DEFAULT, "telegram").get("https://api.telegram.org/")

        assert response.json() == {"ua": "notifyhub-tests"}

    async def test_close_idle_rebuilds_on_demand(self, pool):
        first = pool.get(PoolClass.DEFAULT, "a")
        pool.get(PoolClass.CLOUD, "b")

        closed = await pool.close_idle()

        assert closed == 2
        assert first.is_closed
        assert pool.get(PoolClass.DEFAULT, "a") is not first
        assert await pool.close_idle() == 1

    async def test_remove(self, pool):
        client = pool.get(PoolClass.DEFAULT, "a")

        assert await pool.remove(PoolClass.DEFAULT, "a") is True
        assert await pool.remove(PoolClass.DEFAULT, "a") is False
        assert client.is_closed

    async def test_stats(self, pool):
        pool.get(PoolClass.WEBHOOK, "slack")
        pool.get(PoolClass.WEBHOOK, "discord")

        stats = pool.stats()

        assert stats["webhook"]["clients"] == ["discord", "slack"]
        assert stats["cloud"] == {"clients": [], "timeout": 60.0, "max_idle": 200, "per_host": 50}


@pytest.mark.unit
class TestEventLoopBinding:
    """Clients are reused within one event loop and replaced across loops."""

    @staticmethod
    def build_pool() -> HTTPClientPool:
        return HTTPClientPool(transport=httpx.MockTransport(lambda request: httpx.Response(204)))

    def test_consecutive_asyncio_runs_get_fresh_clients(self):
        pool = self.build_pool()
        clients = []

        async def fetch() -> int:
            client = pool.get(PoolClass.WEBHOOK, "discord")
            clients.append(client)
            response = await client.post("https://discord.com/api/webhooks/1/abc")
            return response.status_code

        assert asyncio.run(fetch()) == 204
        assert asyncio.run(fetch()) == 204
        assert clients[0] is not clients[1]

    def test_client_built_outside_a_loop_binds_on_first_use(self):
        pool = self.build_pool()
        outside = pool.get(PoolClass.DEFAULT, "ntfy")

        async def lookup() -> tuple[httpx.AsyncClient, httpx.AsyncClient]:
            return pool.get(PoolClass.DEFAULT, "ntfy"), pool.get(PoolClass.DEFAULT, "ntfy")

        first, again = asyncio.run(lookup())
        later, _ = asyncio.run(lookup())

        assert first is outside
        assert again is outside
        assert later is not outside

    def test_dispatcher_runs_in_consecutive_loops(self, registry, dispatch_settings):
        """One dispatcher and pool serve two separate asyncio.run calls."""
        dispatcher = Dispatcher(registry=registry, pool=self.build_pool(), settings=dispatch_settings)
        dispatcher.add("discord://123/abc")

        first = asyncio.run(dispatcher.notify("t", "b"))
        second = asyncio.run(dispatcher.notify("t", "b"))

        assert first[0].success
        assert second[0].success


@pytest.mark.unit
def test_pool_limits():
    limits = POOL_CONFIGS[PoolClass.DEFAULT].limits()

    assert limits.max_keepalive_connections == 100
    assert limits.keepalive_expiry == 90.0
    assert limits.max_connections is None


@pytest.mark.unit
def test_process_wide_pool_uses_dispatch_settings(monkeypatch):
    monkeypatch.setattr(pool_module, "_http_pool", None)
    monkeypatch.setattr(
        "notifyhub.core.settings.get_dispatch_settings",
        lambda: DispatchSettings(user_agent="custom-agent/1.0"),
    )

    first = pool_module.get_http_pool()

    assert pool_module.get_http_pool() is first
    assert first._user_agent == "custom-agent/1.0"
