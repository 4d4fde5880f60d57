"""ntfy adapter.

URLs: ``ntfy://[user:pass@|token@]host[:port]/topic`` (http) and ``ntfys://``
(https).

Query parameters: ``token``, ``priority`` (1-5), ``tags``, ``delay``,
``actions``, ``attach``, ``filename``, ``click``, ``email``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from notifyhub.core.exceptions import URLParseError
from notifyhub.core.types import NotifyType, clamp_body
from notifyhub.features.attachments import HTTPAttachment
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

DEFAULT_PRIORITY = 3

# ntfy renders these tag names as emoji
_TYPE_TAGS = {
    NotifyType.INFO: "information_source",
    NotifyType.SUCCESS: "white_check_mark",
    NotifyType.WARNING: "warning",
    NotifyType.ERROR: "rotating_light",
}

_TYPE_PRIORITIES = {
    NotifyType.INFO: 3,
    NotifyType.SUCCESS: 3,
    NotifyType.WARNING: 4,
    NotifyType.ERROR: 5,
}


class NtfyService:
    service_id = "ntfy"
    friendly_name = "ntfy"
    schemes = ("ntfy", "ntfys")
    default_port = 443
    supports_attachments = True
    attachment_mode = AttachmentMode.METADATA
    max_body_length = 4096
    secret_fields = ("token",)

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.DEFAULT, pool)
        self.base_url = ""
        self.topic = ""
        self.auth: httpx.BasicAuth | None = None
        self.token: str | None = None
        self.priority = DEFAULT_PRIORITY
        self.tags: list[str] = []
        self.options: dict[str, Any] = {}

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        secure = parsed.scheme == "ntfys"
        host = parsed.require_host("ntfy server host")
        port = parsed.port or (443 if secure else 80)
        self.base_url = f"{'https' if secure else 'http'}://{host}:{port}"

        self.topic = "/".join(parsed.path_segments)
        if not self.topic:
            raise URLParseError("ntfy topic is required", url=url)

        if parsed.user and parsed.password is not None:
            self.auth = httpx.BasicAuth(parsed.user, parsed.password)
        elif parsed.user:
            self.token = parsed.user
        self.token = parsed.param("token", self.token)

        self.priority = parsed.int_param("priority", DEFAULT_PRIORITY, minimum=1, maximum=5) or DEFAULT_PRIORITY
        self.tags = parsed.list_param("tags")
        self.options = {
            key: value
            for key in ("delay", "attach", "filename", "click", "email")
            if (value := parsed.param(key))
        }
        actions = [a.strip() for a in (parsed.param("actions") or "").split(";") if a.strip()]
        if actions:
            self.options["actions"] = actions

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "topic": self.topic,
            "message": clamp_body(request.body, self.max_body_length),
            "priority": self.priority,
            "tags": self.tags or [_TYPE_TAGS[request.notify_type]],
            **self.options,
        }
        if request.title:
            payload["title"] = request.title
        if self.priority == DEFAULT_PRIORITY:
            payload["priority"] = _TYPE_PRIORITIES[request.notify_type]
        if request.tags:
            payload["tags"] = [*payload["tags"], *sorted(request.tags)]
        if request.url and "click" not in payload:
            payload["click"] = request.url
        if request.body_format is not None and request.body_format.value == "markdown":
            payload["markdown"] = True
        if "attach" not in payload:
            linked = next((a for a in request.attachments if isinstance(a, HTTPAttachment)), None)
            if linked is not None:
                payload["attach"] = linked.url
                payload.setdefault("filename", linked.name)
        return payload

    async def send(self, request: NotificationRequest) -> None:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        await self._http.post_json(
            self.base_url + "/",
            self.build_payload(request),
            headers=headers,
            auth=self.auth,
        )


__all__ = ["NtfyService"]
