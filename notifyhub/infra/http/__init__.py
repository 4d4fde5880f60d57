"""Pooled outbound HTTP clients."""

from notifyhub.infra.http.pool import (
    POOL_CONFIGS,
    HTTPClientPool,
    PoolClass,
    PoolConfig,
    get_http_pool,
)

__all__ = ["POOL_CONFIGS", "HTTPClientPool", "PoolClass", "PoolConfig", "get_http_pool"]
