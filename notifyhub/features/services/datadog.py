"""Datadog events adapter.

URLs: ``datadog://api_key[:app_key]@[region]`` or ``datadog://api_key``
with region ``us`` (default), ``eu``, ``us3``, ``us5``, ``gov`` or ``ap1``.

Query parameters: ``region``, ``app_key``, ``tags``, ``host``,
``aggregation_key``.

Each notification becomes one event in the Datadog event stream; its
severity maps onto the event ``alert_type``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from notifyhub.core.exceptions import URLParseError
from notifyhub.core.types import NotifyType, clamp_body
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

API_URLS = {
    "us": "https://api.datadoghq.com",
    "eu": "https://api.datadoghq.eu",
    "us3": "https://api.us3.datadoghq.com",
    "us5": "https://api.us5.datadoghq.com",
    "gov": "https://api.ddog-gov.com",
    "ap1": "https://api.ap1.datadoghq.com",
}
# Datadog truncates event titles beyond this
MAX_TITLE_LENGTH = 100
SOURCE_TAG = "source:notifyhub"


class DatadogService:
    service_id = "datadog"
    friendly_name = "Datadog Events"
    schemes = ("datadog",)
    default_port = 443
    supports_attachments = False
    attachment_mode = AttachmentMode.NONE
    max_body_length = 4000
    secret_fields = ("api_key", "app_key")

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.CLOUD, pool)
        self.api_key = ""
        self.app_key: str | None = None
        self.region = "us"
        self.tags: list[str] = []
        self.host: str | None = None
        self.aggregation_key: str | None = None

    @property
    def events_url(self) -> str:
        return f"{API_URLS[self.region]}/api/v1/events"

    def _region(self, value: str, url: str) -> str:
        region = value.lower()
        if region not in API_URLS:
            valid = ", ".join(API_URLS)
            raise URLParseError(f"invalid Datadog region '{value}' (valid: {valid})", url=url)
        return region

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        if parsed.user:
            self.api_key = parsed.user
            self.app_key = parsed.password
            if parsed.host:
                self.region = self._region(parsed.host, url)
        else:
            self.api_key = parsed.host
        if not self.api_key:
            raise URLParseError("Datadog API key is required", url=url)

        if parsed.param("region"):
            self.region = self._region(parsed.param("region") or "", url)
        self.app_key = self.app_key or parsed.param("app_key")
        self.tags = parsed.list_param("tags")
        self.host = parsed.param("host")
        self.aggregation_key = parsed.param("aggregation_key")

    def build_event(self, request: NotificationRequest) -> dict[str, Any]:
        kind = request.notify_type
        event: dict[str, Any] = {
            "title": clamp_body(request.title or f"Notification ({kind.label})", MAX_TITLE_LENGTH),
            "text": clamp_body(request.body, self.max_body_length),
            "date_happened": int(datetime.now(UTC).timestamp()),
            "priority": "normal" if kind in (NotifyType.ERROR, NotifyType.WARNING) else "low",
            "alert_type": kind.value,
            "aggregation_key": self.aggregation_key or f"notifyhub_{kind.value}",
            "source_type_name": "notifyhub",
            "tags": [*self.tags, *sorted(request.tags), SOURCE_TAG],
        }
        if self.host:
            event["host"] = self.host
        if request.url:
            event["text"] += f"\n\n{request.url}"
        return event

    def headers(self) -> dict[str, str]:
        headers = {"DD-API-KEY": self.api_key}
        if self.app_key:
            headers["DD-APPLICATION-KEY"] = self.app_key
        return headers

    async def send(self, request: NotificationRequest) -> None:
        await self._http.post_json(self.events_url, self.build_event(request), headers=self.headers())


__all__ = ["DatadogService"]
