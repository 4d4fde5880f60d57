"""Generic HTTP webhook adapter.

URLs:
    ``webhook://host[:port]/path``: plain http
    ``webhooks://host[:port]/path`` or ``json://...``: https

Query parameters:
    method: HTTP method (default POST)
    content_type: application/json (default), application/x-www-form-urlencoded
        or text/plain
    template: Jinja2 body template with ``title``, ``message``/``body``,
        ``type``, ``timestamp``, ``format`` and ``tags`` variables
    header_<name>: extra request header

Userinfo ``user:pass@`` sends HTTP basic auth, ``token@`` a bearer token.
"""

from __future__ import annotations

import base64
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from jinja2 import TemplateError
from jinja2.sandbox import SandboxedEnvironment

from notifyhub.core.exceptions import URLParseError
from notifyhub.features.attachments import describe
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from jinja2 import Template

    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_template_env = SandboxedEnvironment(autoescape=False)


class WebhookService:
    service_id = "webhook"
    friendly_name = "Webhook"
    schemes = ("webhook", "webhooks", "json")
    default_port = 443
    supports_attachments = True
    attachment_mode = AttachmentMode.METADATA
    max_body_length = 0
    secret_fields = ("credentials",)

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP("webhook", PoolClass.WEBHOOK, pool)
        self.url = ""
        self.method = "POST"
        self.content_type = "application/json"
        self.headers: dict[str, str] = {}
        self.credentials: tuple[str, ...] = ()
        self.template: Template | None = None

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        if parsed.scheme == "json":
            self.service_id = "json"
        host = parsed.require_host()
        scheme = "http" if parsed.scheme == "webhook" else "https"
        netloc = f"{host}:{parsed.port}" if parsed.port else host
        self.url = f"{scheme}://{netloc}{parsed.path}"

        self.method = (parsed.param("method") or "POST").upper()
        self.content_type = parsed.param("content_type", "application/json")
        template = parsed.param("template")
        if template:
            try:
                self.template = _template_env.from_string(template)
            except TemplateError as e:
                raise URLParseError(f"invalid webhook template: {e}", url=url) from e

        headers = dict(parsed.prefixed_params("header_"))
        bearer = parsed.user if parsed.password is None else None
        self.credentials = tuple(value for value in (parsed.password, bearer, *headers.values()) if value)
        if parsed.user and parsed.password is not None:
            credentials = base64.b64encode(f"{parsed.user}:{parsed.password}".encode()).decode()
            headers["Authorization"] = f"Basic {credentials}"
        elif parsed.user:
            headers["Authorization"] = f"Bearer {parsed.user}"
        self.headers = headers

    def _fields(self, request: NotificationRequest) -> dict[str, Any]:
        return {
            "title": request.title,
            "message": request.body,
            "body": request.body,
            "type": request.notify_type.label,
            "timestamp": datetime.now(UTC).isoformat(timespec="seconds"),
            "format": request.format_name,
            "tags": sorted(request.tags),
        }

    def build_request(self, request: NotificationRequest) -> dict[str, Any]:
        """Return the httpx keyword arguments carrying the body."""
        fields = self._fields(request)
        if self.template is not None:
            fields["tags"] = ",".join(fields["tags"])
            return {"content": self.template.render(**fields).encode()}

        if self.content_type == FORM_CONTENT_TYPE:
            form = {key: fields[key] for key in ("title", "message", "type", "timestamp", "format")}
            if request.tags:
                form["tags"] = ",".join(fields["tags"])
            return {"data": form}

        if self.content_type == "text/plain":
            lines = []
            if request.title:
                lines.append(f"Title: {request.title}")
            lines.append(f"Message: {request.body}")
            lines.append(f"Type: {fields['type']}")
            lines.append(f"Timestamp: {fields['timestamp']}")
            if request.tags:
                lines.append("Tags: " + ", ".join(fields["tags"]))
            return {"content": ("\n".join(lines) + "\n").encode()}

        payload: dict[str, Any] = {
            "title": request.title or None,
            "message": request.body,
            "type": fields["type"],
            "timestamp": fields["timestamp"],
            "tags": fields["tags"] or None,
            "url": request.url,
            "metadata": {"service": self.service_id, "format": fields["format"]},
        }
        if request.attachments:
            payload["attachments"] = [describe(a) for a in request.attachments]
        return {"json": {k: v for k, v in payload.items() if v is not None}}

    async def send(self, request: NotificationRequest) -> None:
        headers = {"Content-Type": self.content_type, **self.headers}
        await self._http.request(self.method, self.url, headers=headers, **self.build_request(request))


__all__ = ["WebhookService"]
