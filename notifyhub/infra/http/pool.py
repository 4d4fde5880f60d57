"""Shared HTTP client pool.

Adapters never build their own ``httpx.AsyncClient``. They ask the pool for a
client by pool class and service tag; clients are cached on first use so every
adapter instance of the same service shares one connection pool.

Three classes are tuned for the traffic they carry:

- ``default``: general purpose APIs.
- ``cloud``: slow, long-tail cloud APIs (bigger pool, longer timeout).
- ``webhook``: many small endpoints that should fail fast.

Usage:
    pool = get_http_pool()
    client = pool.get(PoolClass.WEBHOOK, "discord")
    response = await client.post(url, json=payload)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class PoolClass(str, Enum):
    """Connection-reuse class of an HTTP client."""

    DEFAULT = "default"
    CLOUD = "cloud"
    WEBHOOK = "webhook"


@dataclass(frozen=True)
class PoolConfig:
    """Tuning for one pool class.

    Attributes:
        timeout: Whole-request timeout in seconds.
        max_idle: Idle keep-alive connections kept across all hosts.
        per_host: Intended concurrent connections per host.
        idle_per_host: Intended idle connections per host.
        idle_lifetime: Seconds an idle connection is kept before closing.
    """

    timeout: float
    max_idle: int
    per_host: int
    idle_per_host: int
    idle_lifetime: float

    def limits(self) -> httpx.Limits:
        # httpx has no per-host caps; per_host/idle_per_host stay informational
        return httpx.Limits(
            max_connections=None,
            max_keepalive_connections=self.max_idle,
            keepalive_expiry=self.idle_lifetime,
        )


POOL_CONFIGS: dict[PoolClass, PoolConfig] = {
    PoolClass.DEFAULT: PoolConfig(
        timeout=30.0, max_idle=100, per_host=30, idle_per_host=10, idle_lifetime=90.0
    ),
    PoolClass.CLOUD: PoolConfig(
        timeout=60.0, max_idle=200, per_host=50, idle_per_host=20, idle_lifetime=120.0
    ),
    PoolClass.WEBHOOK: PoolConfig(
        timeout=15.0, max_idle=50, per_host=20, idle_per_host=5, idle_lifetime=60.0
    ),
}


@dataclass
class _PooledClient:
    """A cached client and the event loop its connections belong to."""

    client: httpx.AsyncClient
    loop: asyncio.AbstractEventLoop | None = None

    def usable_from(self, loop: asyncio.AbstractEventLoop | None) -> bool:
        if self.client.is_closed:
            return False
        return self.loop is None or loop is None or self.loop is loop


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class HTTPClientPool:
    """Process-wide cache of ``httpx.AsyncClient`` instances.

    Features:
    - One map per pool class keyed by an arbitrary service tag
    - Clients are bound to the event loop that first uses them; a lookup from
      another loop (a second ``asyncio.run``) gets a fresh client
    - HTTP/2 negotiation and TLS verification on every client
    - Injectable transport so tests can substitute ``httpx.MockTransport``

    Example:
        pool = HTTPClientPool(transport=httpx.MockTransport(handler))
        client = pool.get(PoolClass.DEFAULT, "telegram")
    """

    def __init__(
        self,
        *,
        verify: bool = True,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        configs: dict[PoolClass, PoolConfig] | None = None,
    ) -> None:
        """Initialize an empty pool.

        Args:
            verify: Verify TLS certificates. Disable only for local testing.
            user_agent: Default User-Agent header for every client.
            transport: Optional transport shared by all clients (tests).
            configs: Override the class table (tests).
        """
        self._verify = verify
        self._user_agent = user_agent
        self._transport = transport
        self._configs = configs or POOL_CONFIGS
        self._clients: dict[PoolClass, dict[str, _PooledClient]] = {pool_class: {} for pool_class in PoolClass}
        self._lock = threading.Lock()

    def config(self, pool_class: PoolClass) -> PoolConfig:
        return self._configs[pool_class]

    def get(self, pool_class: PoolClass, key: str) -> httpx.AsyncClient:
        """Return the cached client for ``key``, creating it on a miss.

        Args:
            pool_class: Connection-reuse class.
            key: Service tag; clients with the same key share a transport.

        Returns:
            Shared ``httpx.AsyncClient`` usable from the running event loop.
        """
        loop = _running_loop()
        clients = self._clients[pool_class]

        with self._lock:
            entry = clients.get(key)
            if entry is not None and entry.usable_from(loop):
                if entry.loop is None:
                    entry.loop = loop
                return entry.client

            if entry is not None and not entry.client.is_closed:
                # Connections of the old client belong to a different loop
                logger.debug(
                    "HTTP client replaced for a new event loop",
                    extra={"pool_class": pool_class.value, "pool_key": key},
                )
            entry = _PooledClient(self._build_client(pool_class), loop)
            clients[key] = entry
            logger.debug(
                "HTTP client created",
                extra={"pool_class": pool_class.value, "pool_key": key},
            )
            return entry.client

    def _build_client(self, pool_class: PoolClass) -> httpx.AsyncClient:
        config = self._configs[pool_class]
        headers = {"User-Agent": self._user_agent} if self._user_agent else None
        kwargs: dict[str, Any] = {
            "timeout": httpx.Timeout(config.timeout),
            "headers": headers,
            "follow_redirects": True,
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        else:
            kwargs["limits"] = config.limits()
            kwargs["http2"] = True
            kwargs["verify"] = self._verify
        return httpx.AsyncClient(**kwargs)

    @staticmethod
    async def _close(entry: _PooledClient) -> None:
        if entry.client.is_closed:
            return
        if entry.loop is not None and entry.loop is not _running_loop():
            # Sockets of a finished loop cannot be closed from this one
            return
        await entry.client.aclose()

    async def remove(self, pool_class: PoolClass, key: str) -> bool:
        """Close and forget one client.

        Returns:
            True if a client was cached under ``key``.
        """
        with self._lock:
            entry = self._clients[pool_class].pop(key, None)
        if entry is None:
            return False
        await self._close(entry)
        return True

    async def close_idle(self) -> int:
        """Forget every cached client, closing those owned by the running loop.

        httpx exposes no idle-only close, so the whole client goes. New
        clients are created on demand.

        Returns:
            Number of clients dropped.
        """
        with self._lock:
            entries = [entry for pool in self._clients.values() for entry in pool.values()]
            for pool in self._clients.values():
                pool.clear()
        for entry in entries:
            await self._close(entry)
        if entries:
            logger.debug("Closed pooled HTTP clients", extra={"count": len(entries)})
        return len(entries)

    async def aclose(self) -> None:
        """Close every client (alias used at shutdown)."""
        await self.close_idle()

    def stats(self) -> dict[str, Any]:
        """Return cached client keys and tuning per pool class."""
        with self._lock:
            return {
                pool_class.value: {
                    "clients": sorted(self._clients[pool_class]),
                    "timeout": self._configs[pool_class].timeout,
                    "max_idle": self._configs[pool_class].max_idle,
                    "per_host": self._configs[pool_class].per_host,
                }
                for pool_class in PoolClass
            }


_http_pool: HTTPClientPool | None = None
_http_pool_lock = threading.Lock()


def get_http_pool() -> HTTPClientPool:
    """Get the process-wide HTTP client pool (created on first call)."""
    global _http_pool
    if _http_pool is None:
        with _http_pool_lock:
            if _http_pool is None:
                from notifyhub.core.settings import get_dispatch_settings

                settings = get_dispatch_settings()
                _http_pool = HTTPClientPool(
                    verify=settings.verify_tls,
                    user_agent=settings.user_agent,
                )
    return _http_pool


__all__ = [
    "POOL_CONFIGS",
    "HTTPClientPool",
    "PoolClass",
    "PoolConfig",
    "get_http_pool",
]
