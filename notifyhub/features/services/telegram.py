"""Telegram bot adapter.

URL: ``tgram://bot_token/chat_id[/chat_id...]``

Query parameters: ``format`` (markdown, markdownv2, html, text),
``silent``, ``preview``, ``thread``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from notifyhub.core.exceptions import URLParseError
from notifyhub.core.types import clamp_body
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL, deliver_all
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

API_URL = "https://api.telegram.org/bot{token}/sendMessage"

_PARSE_MODES = {
    "markdown": "Markdown",
    "md": "Markdown",
    "markdownv2": "MarkdownV2",
    "mdv2": "MarkdownV2",
    "html": "HTML",
}

_MARKDOWN_V2_SPECIAL = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")


def escape_markdown_v2(text: str) -> str:
    """Backslash-escape the characters MarkdownV2 reserves."""
    return _MARKDOWN_V2_SPECIAL.sub(r"\\\1", text)


class TelegramService:
    service_id = "telegram"
    friendly_name = "Telegram"
    schemes = ("tgram", "telegram")
    default_port = 443
    supports_attachments = False
    attachment_mode = AttachmentMode.NONE
    max_body_length = 4096
    secret_fields = ("bot_token",)

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.DEFAULT, pool)
        self.bot_token = ""
        self.chat_ids: tuple[str, ...] = ()
        self.parse_mode: str | None = "Markdown"
        self.silent = False
        self.preview = True
        self.thread_id: str | None = None

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes, keep_host=True)
        self.bot_token = parsed.host or parsed.user or ""
        if not self.bot_token:
            raise URLParseError("telegram bot token is required", url=url)
        self.chat_ids = parsed.path_segments
        if not self.chat_ids:
            raise URLParseError("at least one Telegram chat ID is required", url=url)

        fmt = parsed.param("format")
        if fmt is not None:
            self.parse_mode = _PARSE_MODES.get(fmt.lower())
        self.silent = parsed.bool_param("silent", False)
        self.preview = parsed.bool_param("preview", True)
        self.thread_id = parsed.param("thread")

    def format_message(self, request: NotificationRequest) -> str:
        title, body = request.title, request.body
        if self.parse_mode == "MarkdownV2":
            title, body = escape_markdown_v2(title), escape_markdown_v2(body)

        parts = [request.notify_type.emoji + " "]
        if title:
            if self.parse_mode == "HTML":
                parts.append(f"<b>{title}</b>\n")
            elif self.parse_mode in ("Markdown", "MarkdownV2"):
                parts.append(f"*{title}*\n")
            else:
                parts.append(f"{title}\n")
        parts.append(body)
        return clamp_body("".join(parts), self.max_body_length)

    def build_payload(self, chat_id: str, text: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": not self.preview,
            "disable_notification": self.silent,
        }
        if self.parse_mode:
            payload["parse_mode"] = self.parse_mode
        if self.thread_id:
            payload["message_thread_id"] = self.thread_id
        return payload

    async def send(self, request: NotificationRequest) -> None:
        text = self.format_message(request)

        async def send_to_chat(chat_id: str) -> None:
            response = await self._http.post_json(
                API_URL.format(token=self.bot_token),
                self.build_payload(chat_id, text),
            )
            result = self._http.json(response)
            if not result.get("ok"):
                raise self._http.fail(
                    response,
                    f"telegram API error ({result.get('error_code')}): {result.get('description')}",
                )

        await deliver_all(self.chat_ids, send_to_chat, service_id=self.service_id)


__all__ = ["TelegramService", "escape_markdown_v2"]
