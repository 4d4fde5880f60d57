"""Discord webhook adapter.

URL: ``discord://[botname@]webhook_id/webhook_token[?avatar=URL&username=NAME]``
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notifyhub.core.types import clamp_body
from notifyhub.features.attachments import describe
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

WEBHOOK_URL = "https://discord.com/api/webhooks/{id}/{token}"


class DiscordService:
    """Posts an embed (titled messages) or plain content to a webhook."""

    service_id = "discord"
    friendly_name = "Discord"
    schemes = ("discord",)
    default_port = 443
    supports_attachments = True
    attachment_mode = AttachmentMode.METADATA
    max_body_length = 2000
    secret_fields = ("webhook_token",)

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.WEBHOOK, pool)
        self.webhook_id = ""
        self.webhook_token = ""
        self.username: str | None = None
        self.avatar_url: str | None = None

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        self.webhook_id = parsed.require_token(0, "webhook id")
        self.webhook_token = parsed.require_token(1, "webhook token")
        self.username = parsed.param("username", parsed.first_param("botname", default=parsed.user))
        self.avatar_url = parsed.param("avatar")

    @property
    def webhook_url(self) -> str:
        return WEBHOOK_URL.format(id=self.webhook_id, token=self.webhook_token)

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        body = clamp_body(request.body, self.max_body_length)
        payload: dict[str, Any] = {}
        if self.username:
            payload["username"] = self.username
        if self.avatar_url:
            payload["avatar_url"] = self.avatar_url

        if not request.title and not request.attachments:
            payload["content"] = body
            return payload

        embed: dict[str, Any] = {
            "title": request.title or None,
            "description": body,
            "color": request.notify_type.color.value,
            "footer": {"text": f"Type: {request.notify_type.label}"},
        }
        if request.url:
            embed["url"] = request.url
        if request.attachments:
            names = ", ".join(str(describe(a)["name"]) for a in request.attachments)
            embed["fields"] = [{"name": "Attachments", "value": clamp_body(names, 1024)}]
        payload["embeds"] = [{k: v for k, v in embed.items() if v is not None}]
        return payload

    async def send(self, request: NotificationRequest) -> None:
        await self._http.post_json(self.webhook_url, self.build_payload(request))


__all__ = ["DiscordService"]
