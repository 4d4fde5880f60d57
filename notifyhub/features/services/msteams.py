"""Microsoft Teams incoming webhook adapter (MessageCard).

URLs:
    ``msteams://team/TokenA/TokenB/TokenC[/TokenD]``: ``{team}.webhook.office.com``
    ``msteams:///TokenA/TokenB/TokenC``: legacy ``outlook.office.com`` webhook

Query parameters: ``image`` (include a severity image, default yes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notifyhub.core.exceptions import URLParseError
from notifyhub.core.types import BodyFormat, NotifyType, clamp_body
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

LEGACY_URL = "https://outlook.office.com/webhook/{a}/IncomingWebhook/{b}/{c}"
MODERN_URL = "https://{team}.webhook.office.com/webhookb2/{a}/IncomingWebhook/{b}/{c}"

_IMAGE_BASE = "https://cdn.jsdelivr.net/gh/microsoft/fluentui-emoji@main/assets"

_THEME_COLORS = {
    NotifyType.INFO: "0078D4",
    NotifyType.SUCCESS: "00FF00",
    NotifyType.WARNING: "FFFF00",
    NotifyType.ERROR: "FF0000",
}

_IMAGES = {
    NotifyType.INFO: "/Information/3D/information_3d.png",
    NotifyType.SUCCESS: "/Check-mark-button/3D/check_mark_button_3d.png",
    NotifyType.WARNING: "/Warning/3D/warning_3d.png",
    NotifyType.ERROR: "/Cross-mark/3D/cross_mark_3d.png",
}

SUMMARY_LENGTH = 100


class MSTeamsService:
    service_id = "msteams"
    friendly_name = "Microsoft Teams"
    schemes = ("msteams",)
    default_port = 443
    supports_attachments = False
    attachment_mode = AttachmentMode.NONE
    max_body_length = 28000
    secret_fields = ("webhook_tokens",)

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.WEBHOOK, pool)
        self.webhook_url = ""
        self.webhook_tokens: tuple[str, ...] = ()
        self.version = 2
        self.include_image = True

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        tokens = parsed.path_segments
        if len(tokens) < 3:
            raise URLParseError("MS Teams URLs need three webhook tokens", url=url)
        a, b, c = tokens[:3]
        self.webhook_tokens = tokens

        if parsed.host:
            self.version = 3 if len(tokens) > 3 else 2
            self.webhook_url = MODERN_URL.format(team=parsed.host, a=a, b=b, c=c)
            if self.version == 3:
                self.webhook_url += f"/{tokens[3]}"
        else:
            self.version = 1
            self.webhook_url = LEGACY_URL.format(a=a, b=b, c=c)
        self.include_image = parsed.bool_param("image", True)

    @staticmethod
    def summary(request: NotificationRequest) -> str:
        if request.title:
            return request.title
        return clamp_body(request.body, SUMMARY_LENGTH + 3)

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        section: dict[str, Any] = {
            "text": clamp_body(request.body, self.max_body_length),
            "markdown": request.body_format is BodyFormat.MARKDOWN,
        }
        if request.title:
            section["activityTitle"] = request.title
        if self.include_image:
            section["activityImage"] = _IMAGE_BASE + _IMAGES[request.notify_type]

        payload: dict[str, Any] = {
            "@type": "MessageCard",
            "@context": "https://schema.org/extensions",
            "summary": self.summary(request),
            "themeColor": _THEME_COLORS[request.notify_type],
            "sections": [section],
        }
        if request.url:
            payload["potentialAction"] = [
                {
                    "@type": "OpenUri",
                    "name": "Open",
                    "targets": [{"os": "default", "uri": request.url}],
                }
            ]
        return payload

    async def send(self, request: NotificationRequest) -> None:
        response = await self._http.post_json(self.webhook_url, self.build_payload(request))
        if response.text.strip() != "1":
            raise self._http.fail(response, "Teams webhook rejected the message")


__all__ = ["MSTeamsService"]
