"""Pushover adapter.

URL: ``pover://app_token@user_key[/device...]`` (``app_token:user_key@`` also
accepted).

Query parameters: ``priority`` (-2..2), ``sound``, ``retry`` (>= 30 s) and
``expire`` (<= 10800 s) for emergency priority.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notifyhub.core.exceptions import ConfigurationError, URLParseError
from notifyhub.core.types import clamp_body
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL, deliver_all
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

API_URL = "https://api.pushover.net/1/messages.json"

EMERGENCY_PRIORITY = 2
DEFAULT_RETRY = 60
DEFAULT_EXPIRE = 3600
MIN_RETRY = 30
MAX_EXPIRE = 10800


class PushoverService:
    service_id = "pushover"
    friendly_name = "Pushover"
    schemes = ("pover", "pushover")
    default_port = 443
    supports_attachments = False
    attachment_mode = AttachmentMode.NONE
    max_body_length = 1024
    secret_fields = ("token", "user_key")

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.DEFAULT, pool)
        self.token = ""
        self.user_key = ""
        self.devices: tuple[str, ...] = ()
        self.priority = 0
        self.sound = "pushover"
        self.retry: int | None = None
        self.expire: int | None = None

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        self.token = parsed.user or ""
        self.user_key = parsed.password or parsed.host
        if not self.token or not self.user_key:
            raise URLParseError("both Pushover token and user key are required", url=url)
        self.devices = parsed.path_segments

        self.priority = parsed.int_param("priority", 0, minimum=-2, maximum=2) or 0
        self.sound = parsed.param("sound", "pushover") or "pushover"
        retry = parsed.int_param("retry", minimum=MIN_RETRY)
        expire = parsed.int_param("expire", minimum=1, maximum=MAX_EXPIRE)

        if self.priority == EMERGENCY_PRIORITY:
            if retry is not None and expire is None:
                raise ConfigurationError(
                    "emergency priority with retry requires expire",
                    extra={"priority": self.priority, "retry": retry},
                )
            self.retry = retry or DEFAULT_RETRY
            self.expire = expire or DEFAULT_EXPIRE

    def build_payload(self, request: NotificationRequest, device: str | None) -> dict[str, Any]:
        title = f"{request.notify_type.emoji} {request.title}" if request.title else request.notify_type.emoji
        payload: dict[str, Any] = {
            "token": self.token,
            "user": self.user_key,
            "message": clamp_body(request.body, self.max_body_length) or title,
            "title": title,
            "priority": self.priority,
            "sound": self.sound,
        }
        if device:
            payload["device"] = device
        if self.priority == EMERGENCY_PRIORITY:
            payload["retry"] = self.retry
            payload["expire"] = self.expire
        if request.url:
            payload["url"] = request.url
        if request.body_format is not None and request.body_format.value == "html":
            payload["html"] = 1
        return payload

    async def send(self, request: NotificationRequest) -> None:
        async def send_to_device(device: str | None) -> None:
            response = await self._http.post_json(API_URL, self.build_payload(request, device))
            result = self._http.json(response)
            if result.get("status") != 1:
                errors = "; ".join(result.get("errors") or ["unknown error"])
                raise self._http.fail(response, f"Pushover API error: {errors}")

        targets: tuple[str | None, ...] = self.devices or (None,)
        await deliver_all(targets, send_to_device, service_id=self.service_id)


__all__ = ["PushoverService"]
