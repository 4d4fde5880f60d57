"""PagerDuty Events API v2 adapter.

URLs: ``pagerduty://integration_key`` or ``pagerduty://integration_key@region``
with region ``us`` (default) or ``eu``.

Query parameters: ``region``, ``source``, ``component``, ``group``, ``class``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notifyhub import __version__
from notifyhub.core.exceptions import URLParseError
from notifyhub.core.types import NotifyType, clamp_body
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

EVENTS_URLS = {
    "us": "https://events.pagerduty.com/v2/enqueue",
    "eu": "https://events.eu.pagerduty.com/v2/enqueue",
}
DEFAULT_SOURCE = "notifyhub"
DEFAULT_SUMMARY = "Alert from notifyhub"

_SEVERITIES = {
    NotifyType.INFO: "info",
    NotifyType.SUCCESS: "info",
    NotifyType.WARNING: "warning",
    NotifyType.ERROR: "error",
}


class PagerDutyService:
    service_id = "pagerduty"
    friendly_name = "PagerDuty"
    schemes = ("pagerduty",)
    default_port = 443
    supports_attachments = False
    attachment_mode = AttachmentMode.NONE
    max_body_length = 1024
    secret_fields = ("integration_key",)

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.CLOUD, pool)
        self.integration_key = ""
        self.region = "us"
        self.source = DEFAULT_SOURCE
        self.details: dict[str, str] = {}

    @property
    def events_url(self) -> str:
        return EVENTS_URLS[self.region]

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        if parsed.user:
            self.integration_key = parsed.user
            self.region = parsed.host.lower() or "us"
        else:
            self.integration_key = parsed.host
        if not self.integration_key:
            raise URLParseError("PagerDuty integration key is required", url=url)

        self.region = (parsed.param("region") or self.region).lower()
        if self.region not in EVENTS_URLS:
            raise URLParseError(f"invalid region '{self.region}': must be 'us' or 'eu'", url=url)

        self.source = parsed.param("source", DEFAULT_SOURCE) or DEFAULT_SOURCE
        self.details = {key: value for key in ("component", "group", "class") if (value := parsed.param(key))}

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        summary = request.title or clamp_body(request.body, self.max_body_length) or DEFAULT_SUMMARY
        details: dict[str, Any] = {
            "summary": clamp_body(summary, self.max_body_length),
            "source": self.source,
            "severity": _SEVERITIES[request.notify_type],
            **self.details,
        }
        if request.title:
            details["custom_details"] = {"title": request.title, "body": request.body}

        payload: dict[str, Any] = {
            "routing_key": self.integration_key,
            "event_action": "trigger",
            "client": f"notifyhub/{__version__}",
            "payload": details,
        }
        if request.url:
            payload["links"] = [{"href": request.url, "text": request.title or request.url}]
        return payload

    async def send(self, request: NotificationRequest) -> None:
        response = await self._http.post_json(self.events_url, self.build_payload(request))
        data = self._http.json(response)
        if not isinstance(data, dict) or data.get("status") != "success":
            message = data.get("message") if isinstance(data, dict) else None
            raise self._http.fail(response, f"PagerDuty rejected the event: {message}")


__all__ = ["PagerDutyService"]
