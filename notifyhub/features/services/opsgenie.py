"""Opsgenie alert adapter.

URLs: ``opsgenie://api_key`` or ``opsgenie://api_key@region[/responder...]``
with region ``us`` (default) or ``eu``. Responders containing ``@`` are
users, anything else a team.

Query parameters: ``region``, ``priority`` (P1-P5), ``tags``, ``teams``,
``alias``, ``entity``, ``source``, ``user``, ``note``.
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

ALERTS_URLS = {
    "us": "https://api.opsgenie.com/v2/alerts",
    "eu": "https://api.eu.opsgenie.com/v2/alerts",
}
PRIORITIES = ("P1", "P2", "P3", "P4", "P5")
# Opsgenie rejects longer alert messages
MAX_MESSAGE_LENGTH = 130
DEFAULT_SOURCE = "notifyhub"

_TYPE_PRIORITIES = {
    NotifyType.ERROR: "P1",
    NotifyType.WARNING: "P2",
    NotifyType.INFO: "P3",
    NotifyType.SUCCESS: "P4",
}


class OpsgenieService:
    service_id = "opsgenie"
    friendly_name = "Opsgenie"
    schemes = ("opsgenie",)
    default_port = 443
    supports_attachments = False
    attachment_mode = AttachmentMode.NONE
    max_body_length = 15000
    secret_fields = ("api_key",)

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.CLOUD, pool)
        self.api_key = ""
        self.region = "us"
        self.responders: list[dict[str, str]] = []
        self.tags: list[str] = []
        self.priority: str | None = None
        self.fields: dict[str, str] = {}

    @property
    def alerts_url(self) -> str:
        return ALERTS_URLS[self.region]

    def _region(self, value: str, url: str) -> str:
        region = value.lower()
        if region not in ALERTS_URLS:
            raise URLParseError(f"invalid Opsgenie region: must be 'us' or 'eu', got '{value}'", url=url)
        return region

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        if parsed.user:
            self.api_key = parsed.user
            if parsed.host:
                self.region = self._region(parsed.host, url)
        else:
            self.api_key = parsed.host
        if not self.api_key:
            raise URLParseError("Opsgenie API key is required", url=url)
        if parsed.param("region"):
            self.region = self._region(parsed.param("region") or "", url)

        self.responders = [
            {"type": "user" if "@" in target else "team", "name": target} for target in parsed.path_segments
        ]
        self.responders.extend({"type": "team", "name": team} for team in parsed.list_param("teams"))
        self.tags = parsed.list_param("tags")

        priority = parsed.param("priority")
        if priority is not None:
            if priority.upper() not in PRIORITIES:
                raise URLParseError(f"invalid Opsgenie priority: must be P1-P5, got '{priority}'", url=url)
            self.priority = priority.upper()

        self.fields = {
            key: value for key in ("alias", "entity", "source", "user", "note") if (value := parsed.param(key))
        }
        self.fields.setdefault("source", DEFAULT_SOURCE)

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        message = request.title or request.body or f"Notification ({request.notify_type.value})"
        alert: dict[str, Any] = {
            "message": clamp_body(message, MAX_MESSAGE_LENGTH),
            "description": clamp_body(request.body, self.max_body_length),
            "priority": self.priority or _TYPE_PRIORITIES[request.notify_type],
            "tags": self.tags or [request.notify_type.value],
            "details": {
                "notifyType": request.notify_type.value,
                "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            },
            **self.fields,
        }
        if self.responders:
            alert["responders"] = self.responders
        if request.url:
            alert["details"]["url"] = request.url
        return alert

    async def send(self, request: NotificationRequest) -> None:
        await self._http.post_json(
            self.alerts_url,
            self.build_payload(request),
            headers={"Authorization": f"GenieKey {self.api_key}"},
        )


__all__ = ["OpsgenieService"]
