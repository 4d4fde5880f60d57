"""Webhook-proxy mode: forward an envelope to an external signer.

Services whose APIs need request signing (AWS SigV4, OAuth 1.0a) can be
configured with a proxy URL instead of signing in-process. The adapter then
posts one JSON envelope per notification to the proxy:

    {
        "service": "twitter",
        "credentials": {...},
        "payload": {...},
        "timestamp": "2024-01-01T12:00:00Z",
        "source": "notifyhub",
        "version": "1.0"
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx

    from notifyhub.features.services.http import ServiceHTTP

ENVELOPE_SOURCE = "notifyhub"
ENVELOPE_VERSION = "1.0"

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


@dataclass(frozen=True)
class WebhookProxyConfig:
    """Where and how envelopes are forwarded."""

    url: str
    api_key: str | None = None

    @classmethod
    def build(
        cls,
        host: str,
        port: int | None,
        path: str,
        api_key: str | None = None,
        secure: bool | None = None,
    ) -> WebhookProxyConfig:
        """Compose the proxy URL.

        Unless ``secure`` is given, local hosts use http and anything else https.
        """
        if secure is None:
            secure = host.lower() not in _LOCAL_HOSTS
        scheme = "https" if secure else "http"
        netloc = f"{host}:{port}" if port else host
        return cls(url=f"{scheme}://{netloc}{path}", api_key=api_key or None)

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["X-API-Key"] = self.api_key
        return headers


def rfc3339_now() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_envelope(
    service: str,
    credentials: dict[str, Any],
    payload: dict[str, Any],
    **extra: Any,
) -> dict[str, Any]:
    """Assemble the proxy envelope; ``extra`` keys are merged at top level."""
    envelope: dict[str, Any] = {
        "service": service,
        "credentials": credentials,
        "payload": payload,
        "timestamp": rfc3339_now(),
        "source": ENVELOPE_SOURCE,
        "version": ENVELOPE_VERSION,
    }
    envelope.update(extra)
    return envelope


class WebhookProxy:
    """Forwards envelopes for one adapter."""

    def __init__(self, config: WebhookProxyConfig, http: ServiceHTTP) -> None:
        self.config = config
        self._http = http

    async def forward(
        self,
        credentials: dict[str, Any],
        payload: dict[str, Any],
        **extra: Any,
    ) -> httpx.Response:
        envelope = build_envelope(self._http.service_id, credentials, payload, **extra)
        return await self._http.post_json(self.config.url, envelope, headers=self.config.headers())


__all__ = [
    "ENVELOPE_SOURCE",
    "ENVELOPE_VERSION",
    "WebhookProxy",
    "WebhookProxyConfig",
    "build_envelope",
]
