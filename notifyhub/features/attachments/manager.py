"""Attachment manager shared by a dispatcher."""

from __future__ import annotations

import base64
import binascii
import logging
import threading
from typing import TYPE_CHECKING
from urllib.parse import unquote_to_bytes

from notifyhub.core.exceptions import AttachmentError, AttachmentTooLargeError
from notifyhub.features.attachments.models import (
    Attachment,
    FileAttachment,
    HTTPAttachment,
    InlineAttachment,
)

if TYPE_CHECKING:
    import os

    from notifyhub.core.settings import AttachmentSettings
    from notifyhub.infra.http.pool import HTTPClientPool

logger = logging.getLogger(__name__)


class AttachmentManager:
    """Ordered, lock-guarded list of attachments with size policy.

    Sources accepted by ``add``: ``http(s)://`` URLs (fetched lazily),
    ``data:`` URLs, and local paths. Additions whose known size exceeds
    ``max_size`` are rejected and leave the list unchanged.

    Example:
        manager = AttachmentManager(max_size=10 * 1024 * 1024)
        manager.add("/tmp/report.pdf")
        manager.add("https://example.com/graph.png")
        manager.add_data(b"hello", "hello.txt", "text/plain")
    """

    def __init__(
        self,
        *,
        max_size: int | None = None,
        fetch_timeout: float | None = None,
        sniff_bytes: int | None = None,
        pool: HTTPClientPool | None = None,
        settings: AttachmentSettings | None = None,
    ) -> None:
        if settings is None:
            from notifyhub.core.settings import get_attachment_settings

            settings = get_attachment_settings()
        self.max_size = max_size if max_size is not None else settings.max_size
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else settings.fetch_timeout
        self.sniff_bytes = sniff_bytes if sniff_bytes is not None else settings.sniff_bytes
        self._pool = pool
        self._items: list[Attachment] = []
        self._lock = threading.Lock()

    def add(self, source: str | os.PathLike[str], name: str | None = None) -> Attachment:
        """Add an attachment from a URL, data URL or local path."""
        text = str(source)
        lowered = text[:8].lower()
        if lowered.startswith(("http://", "https://")):
            return self.add_from_url(text, name)
        if lowered.startswith("data:"):
            data, mime_type = _decode_data_url(text)
            return self.add_data(data, name or "attachment", mime_type)
        return self.add_file(source, name)

    def add_file(self, path: str | os.PathLike[str], name: str | None = None) -> Attachment:
        attachment = FileAttachment(path, name, sniff_bytes=self.sniff_bytes)
        if not attachment.path.is_file():
            raise AttachmentError(f"attachment not found: {attachment.path}", extra={"path": str(attachment.path)})
        return self._append(attachment)

    def add_from_url(self, url: str, name: str | None = None) -> Attachment:
        attachment = HTTPAttachment(
            url,
            name,
            max_size=self.max_size,
            timeout=self.fetch_timeout,
            pool=self._pool,
        )
        return self._append(attachment)

    def add_data(self, data: bytes, name: str, mime_type: str | None = None) -> Attachment:
        return self._append(InlineAttachment(data, name, mime_type))

    def _append(self, attachment: Attachment) -> Attachment:
        size = attachment.size
        if size > self.max_size:
            raise AttachmentTooLargeError(size, self.max_size)
        with self._lock:
            self._items.append(attachment)
        logger.debug("Attachment added", extra={"attachment": attachment.name, "size": size})
        return attachment

    def all(self) -> list[Attachment]:
        """Return a copy of the attachment list."""
        with self._lock:
            return list(self._items)

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def total_size(self) -> int:
        """Sum of known sizes (unfetched HTTP attachments count as 0)."""
        with self._lock:
            return sum(item.size for item in self._items)

    def __len__(self) -> int:
        return self.count()


def _decode_data_url(url: str) -> tuple[bytes, str | None]:
    """Decode ``data:[<mime>][;base64],<payload>``."""
    header, sep, payload = url[5:].partition(",")
    if not sep:
        raise AttachmentError("invalid data URL: missing ','")
    params = header.split(";")
    mime_type = params[0].strip() or None
    if "base64" in (p.strip().lower() for p in params[1:]):
        try:
            return base64.b64decode(payload, validate=False), mime_type
        except (binascii.Error, ValueError) as e:
            raise AttachmentError("invalid data URL: bad base64 payload") from e
    return unquote_to_bytes(payload), mime_type


__all__ = ["AttachmentManager"]
