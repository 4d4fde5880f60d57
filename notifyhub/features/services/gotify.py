"""Gotify adapter.

URL: ``gotify://host[:port][/path]/app_token`` (http) or ``gotifys://``
(https). The last path segment is the application token; anything before it
is the server's sub-path.

Query parameters: ``priority`` (0-10). Without it the priority follows the
notification type.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notifyhub.core.exceptions import URLParseError
from notifyhub.core.types import NotifyType
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

_TYPE_PRIORITIES = {
    NotifyType.INFO: 5,
    NotifyType.SUCCESS: 5,
    NotifyType.WARNING: 7,
    NotifyType.ERROR: 8,
}

_TYPE_COLORS = {
    NotifyType.INFO: "#2196F3",
    NotifyType.SUCCESS: "#4CAF50",
    NotifyType.WARNING: "#FF9800",
    NotifyType.ERROR: "#F44336",
}


class GotifyService:
    service_id = "gotify"
    friendly_name = "Gotify"
    schemes = ("gotify", "gotifys")
    default_port = 443
    supports_attachments = False
    attachment_mode = AttachmentMode.NONE
    max_body_length = 0
    secret_fields = ("token",)

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.DEFAULT, pool)
        self.base_url = ""
        self.token = ""
        self.priority: int | None = None

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        secure = parsed.scheme == "gotifys"
        host = parsed.require_host("Gotify server host")
        port = parsed.port or (443 if secure else 80)
        if not parsed.path_segments:
            raise URLParseError("Gotify application token is required in the URL path", url=url)

        *prefix, self.token = parsed.path_segments
        sub_path = "".join(f"/{segment}" for segment in prefix)
        self.base_url = f"{'https' if secure else 'http'}://{host}:{port}{sub_path}"
        self.priority = parsed.int_param("priority", minimum=0, maximum=10)

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        priority = self.priority if self.priority is not None else _TYPE_PRIORITIES[request.notify_type]
        extras: dict[str, Any] = {
            "client::notification": {"color": _TYPE_COLORS[request.notify_type]},
        }
        if request.body_format is not None and request.body_format.value == "markdown":
            extras["client::display"] = {"contentType": "text/markdown"}
        if request.url:
            extras["client::notification"]["click"] = {"url": request.url}
        return {
            "title": request.title or request.notify_type.label,
            "message": request.body,
            "priority": priority,
            "extras": extras,
        }

    async def send(self, request: NotificationRequest) -> None:
        await self._http.post_json(
            f"{self.base_url}/message",
            self.build_payload(request),
            headers={"X-Gotify-Key": self.token},
        )


__all__ = ["GotifyService"]
