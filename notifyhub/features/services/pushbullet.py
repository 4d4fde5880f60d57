"""Pushbullet adapter.

URL: ``pball://access_token[/device][/email@example.com][/#channel]``

Targets can also be given as ``device=``, ``email=`` and ``channel=``
comma-separated query parameters. Without targets the push goes to every
device of the account.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL, deliver_all
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

API_URL = "https://api.pushbullet.com/v2/pushes"


class PushbulletService:
    service_id = "pushbullet"
    friendly_name = "Pushbullet"
    schemes = ("pball", "pushbullet")
    default_port = 443
    supports_attachments = False
    attachment_mode = AttachmentMode.NONE
    max_body_length = 0
    secret_fields = ("access_token",)

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.DEFAULT, pool)
        self.access_token = ""
        self.devices: list[str] = []
        self.emails: list[str] = []
        self.channels: list[str] = []

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        self.access_token = parsed.require_host("Pushbullet access token")
        devices: list[str] = []
        emails: list[str] = []
        channels: list[str] = []

        for part in parsed.path_segments:
            if "@" in part:
                emails.append(part)
            elif part.startswith("#"):
                channels.append(part[1:])
            else:
                devices.append(part)

        devices.extend(parsed.list_param("device"))
        emails.extend(e for e in parsed.list_param("email") if "@" in e)
        channels.extend(parsed.list_param("channel"))

        # pball://token/#channel[/device...] puts targets in the fragment
        fragment = [p for p in parsed.fragment.split("/") if p]
        for index, part in enumerate(fragment):
            if "@" in part:
                emails.append(part)
            elif index == 0:
                channels.append(part)
            else:
                devices.append(part)

        self.devices, self.emails, self.channels = devices, emails, channels

    def build_payload(self, request: NotificationRequest, target: tuple[str, str] | None) -> dict[str, Any]:
        emoji = request.notify_type.emoji
        payload: dict[str, Any] = {
            "type": "note",
            "title": f"{emoji} {request.title}" if request.title else emoji,
            "body": request.body,
        }
        if target is not None:
            field_name, value = target
            payload[field_name] = value
        return payload

    async def send(self, request: NotificationRequest) -> None:
        headers = {"Access-Token": self.access_token}

        async def push(target: tuple[str, str] | None) -> None:
            response = await self._http.post_json(API_URL, self.build_payload(request, target), headers=headers)
            result = self._http.json(response)
            error = result.get("error")
            if error:
                raise self._http.fail(response, f"Pushbullet API error: {error.get('code')} - {error.get('message')}")

        targets: list[tuple[str, str] | None] = [
            *(("device_iden", d) for d in self.devices),
            *(("email", e) for e in self.emails),
            *(("channel_tag", c) for c in self.channels),
        ]
        await deliver_all(targets or [None], push, service_id=self.service_id)


__all__ = ["PushbulletService"]
