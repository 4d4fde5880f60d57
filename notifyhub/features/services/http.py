"""Pooled HTTP access with provider error mapping.

``ServiceHTTP`` is the one place adapters touch the network: it picks the
pooled client for the adapter's pool class, converts httpx failures into
``TransportError`` and non-2xx answers into ``ProviderError`` subclasses.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from notifyhub.core.exceptions import ProviderError, TransportError, classify_status
from notifyhub.infra.http.pool import PoolClass, get_http_pool
from notifyhub.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from notifyhub.infra.http.pool import HTTPClientPool

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


def _origin(url: str) -> str:
    """Scheme and host of ``url``, without the token-bearing path."""
    parsed = httpx.URL(url)
    return f"{parsed.scheme}://{parsed.host}"


class ServiceHTTP:
    """HTTP helper bound to one service tag and pool class.

    Example:
        http = ServiceHTTP("discord", PoolClass.WEBHOOK, pool)
        response = await http.post_json(url, {"content": "hi"})
    """

    def __init__(
        self,
        service_id: str,
        pool_class: PoolClass = PoolClass.DEFAULT,
        pool: HTTPClientPool | None = None,
    ) -> None:
        self.service_id = service_id
        self.pool_class = pool_class
        self._pool = pool

    @property
    def pool(self) -> HTTPClientPool:
        return self._pool or get_http_pool()

    @property
    def client(self) -> httpx.AsyncClient:
        return self.pool.get(self.pool_class, self.service_id)

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and return the 2xx/3xx response.

        Raises:
            TransportError: Network failure or client-side timeout.
            AuthError, RateLimitedError, ProviderError: Status >= 400.
        """
        lazy_logger.debug(lambda: f"{self.service_id}: {method} {_origin(url)}")
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"request timed out: {e!r}", cause=e, service_id=self.service_id) from e
        except httpx.TransportError as e:
            raise TransportError(f"request failed: {e!r}", cause=e, service_id=self.service_id) from e

        if response.status_code >= 400:
            logger.debug(
                "Provider returned error status",
                extra={"service_id": self.service_id, "status_code": response.status_code},
            )
            raise classify_status(response.status_code, response.content, service_id=self.service_id)
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def post_json(
        self,
        url: str,
        payload: Any,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        return await self.request("POST", url, json=payload, headers=headers, **kwargs)

    def json(self, response: httpx.Response) -> Any:
        """Decode a JSON response body or raise ``ProviderError``."""
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                response.status_code,
                response.content,
                service_id=self.service_id,
                detail="invalid JSON response",
            ) from e

    def fail(self, response: httpx.Response, detail: str) -> ProviderError:
        """Build the error for a 2xx response the provider flagged as failed."""
        return ProviderError(response.status_code, response.content, service_id=self.service_id, detail=detail)


__all__ = ["ServiceHTTP"]
