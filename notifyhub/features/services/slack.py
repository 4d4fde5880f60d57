"""Slack adapter: incoming webhook or bot token.

URLs:
    ``slack://TokenA/TokenB/TokenC[/#channel]``: incoming webhook
    ``slack://xoxb-token/#channel``: bot token via ``chat.postMessage``

Query parameters: ``channel``, ``username``, ``icon_url``, ``icon_emoji``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notifyhub.core.exceptions import URLParseError
from notifyhub.core.types import NotifyType, clamp_body
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

WEBHOOK_URL = "https://hooks.slack.com/services/{a}/{b}/{c}"
POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"

_COLORS = {
    NotifyType.INFO: "#36a64f",
    NotifyType.SUCCESS: "good",
    NotifyType.WARNING: "warning",
    NotifyType.ERROR: "danger",
}


class SlackService:
    service_id = "slack"
    friendly_name = "Slack"
    schemes = ("slack",)
    default_port = 443
    supports_attachments = False
    attachment_mode = AttachmentMode.NONE
    max_body_length = 4000
    secret_fields = ("tokens", "bot_token")

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.WEBHOOK, pool)
        self.mode = "webhook"
        self.tokens: tuple[str, ...] = ()
        self.bot_token: str | None = None
        self.channel: str | None = None
        self.username: str | None = None
        self.icon_url: str | None = None
        self.icon_emoji: str | None = None

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        tokens = parsed.tokens
        # Channels may come from the fragment when written as slack://.../#ops
        channel = parsed.fragment or None
        if not tokens:
            raise URLParseError("missing Slack tokens", url=url)

        if tokens[0].startswith("xox"):
            self.mode = "bot"
            self.bot_token = tokens[0]
            if len(tokens) > 1:
                channel = tokens[1]
        elif len(tokens) >= 3:
            self.mode = "webhook"
            self.tokens = tokens[:3]
            if len(tokens) > 3:
                channel = tokens[3]
        else:
            raise URLParseError("Slack webhooks need three tokens (A/B/C)", url=url)

        self.channel = parsed.param("channel", channel)
        if self.mode == "bot" and not self.channel:
            raise URLParseError("Slack bot mode requires a channel", url=url)
        self.username = parsed.param("username", parsed.user)
        self.icon_url = parsed.param("icon_url")
        self.icon_emoji = parsed.param("icon_emoji")

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        body = clamp_body(request.body, self.max_body_length)
        payload: dict[str, Any] = {
            key: value
            for key, value in (
                ("channel", self.channel),
                ("username", self.username),
                ("icon_url", self.icon_url),
                ("icon_emoji", self.icon_emoji),
            )
            if value
        }
        if request.title:
            attachment: dict[str, Any] = {
                "color": _COLORS[request.notify_type],
                "title": request.title,
                "text": body,
                "footer": f"Type: {request.notify_type.label}",
            }
            if request.url:
                attachment["title_link"] = request.url
            payload["attachments"] = [attachment]
        else:
            payload["text"] = body
        return payload

    async def send(self, request: NotificationRequest) -> None:
        payload = self.build_payload(request)
        if self.mode == "bot":
            response = await self._http.post_json(
                POST_MESSAGE_URL,
                payload,
                headers={"Authorization": f"Bearer {self.bot_token}"},
            )
            result = self._http.json(response)
            if not result.get("ok"):
                raise self._http.fail(response, f"Slack API error: {result.get('error', 'unknown')}")
            return

        a, b, c = self.tokens
        response = await self._http.post_json(WEBHOOK_URL.format(a=a, b=b, c=c), payload)
        if response.text.strip() != "ok":
            raise self._http.fail(response, "Slack webhook rejected the message")


__all__ = ["SlackService"]
