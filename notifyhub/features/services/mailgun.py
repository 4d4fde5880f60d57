"""Mailgun email adapter (HTTP API).

URL: ``mailgun://api_key@domain/to@example.com[/to2@...]``

Query parameters: ``from`` (default ``noreply@domain``), ``name``,
``region`` (``us`` or ``eu``), ``to``, ``format`` (text or html).

One API call is made per recipient so addresses are not disclosed to each
other. Attachments are uploaded as multipart files.
"""

from __future__ import annotations

from email.utils import formataddr
from typing import TYPE_CHECKING, Any

from notifyhub.core.exceptions import URLParseError
from notifyhub.core.types import BodyFormat
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL, deliver_all
from notifyhub.features.services.email import is_valid_email
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

API_URLS = {
    "us": "https://api.mailgun.net/v3",
    "eu": "https://api.eu.mailgun.net/v3",
}


class MailgunService:
    service_id = "mailgun"
    friendly_name = "Mailgun"
    schemes = ("mailgun",)
    default_port = 443
    supports_attachments = True
    attachment_mode = AttachmentMode.CONTENT
    max_body_length = 0
    secret_fields = ("api_key",)

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.DEFAULT, pool)
        self.api_key = ""
        self.domain = ""
        self.region = "us"
        self.from_email = ""
        self.from_name: str | None = None
        self.to: tuple[str, ...] = ()
        self.body_format: BodyFormat | None = None

    @property
    def messages_url(self) -> str:
        return f"{API_URLS[self.region]}/{self.domain}/messages"

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        self.api_key = parsed.user or ""
        if not self.api_key:
            raise URLParseError("Mailgun API key is required", url=url)
        self.domain = parsed.require_host("Mailgun sending domain")

        self.to = tuple(segment for segment in parsed.path_segments if is_valid_email(segment))
        self.to += tuple(address for address in parsed.list_param("to") if is_valid_email(address))
        if not self.to:
            raise URLParseError("at least one recipient email is required", url=url)

        self.region = (parsed.param("region") or "us").lower()
        if self.region not in API_URLS:
            raise URLParseError(f"invalid Mailgun region: must be 'us' or 'eu', got '{self.region}'", url=url)

        sender = parsed.param("from")
        if sender and not is_valid_email(sender):
            raise URLParseError(f"invalid from address: {sender}", url=url)
        self.from_email = sender or f"noreply@{self.domain}"
        self.from_name = parsed.param("name")
        self.body_format = BodyFormat.parse(parsed.param("format"))

    def build_form(self, request: NotificationRequest, recipient: str) -> dict[str, Any]:
        form: dict[str, Any] = {
            "from": formataddr((self.from_name, self.from_email)) if self.from_name else self.from_email,
            "to": recipient,
            "subject": request.title or f"Notification ({request.notify_type.label})",
        }
        if (request.body_format or self.body_format) is BodyFormat.HTML:
            form["html"] = request.body
        else:
            form["text"] = request.body
        if request.tags:
            # Mailgun accepts at most three tags per message
            form["o:tag"] = sorted(request.tags)[:3]
        return form

    async def send(self, request: NotificationRequest) -> None:
        files = [
            ("attachment", (attachment.name, await attachment.read(), attachment.mime_type))
            for attachment in request.attachments
        ]

        async def send_to(recipient: str) -> None:
            await self._http.post(
                self.messages_url,
                data=self.build_form(request, recipient),
                files=files or None,
                auth=("api", self.api_key),
            )

        await deliver_all(self.to, send_to, service_id=self.service_id)


__all__ = ["MailgunService"]
