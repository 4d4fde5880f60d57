"""Attachment variants: local file, lazily fetched HTTP resource, inline bytes.

All variants expose the same surface (``name``, ``mime_type``, ``size``,
``exists()``, ``read()``, ``iter_bytes()``) and are re-readable: every
``read`` or ``iter_bytes`` call starts from the beginning.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

import httpx

from notifyhub.core.exceptions import AttachmentError, AttachmentTooLargeError
from notifyhub.features.attachments import mime

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from notifyhub.infra.http.pool import HTTPClientPool

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_SIZE = 100 * 1024 * 1024


@runtime_checkable
class Attachment(Protocol):
    """Capability set shared by every attachment variant."""

    @property
    def name(self) -> str: ...

    @property
    def mime_type(self) -> str: ...

    @property
    def size(self) -> int: ...

    async def exists(self) -> bool: ...

    async def read(self) -> bytes: ...

    def iter_bytes(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]: ...


async def encode_base64(attachment: Attachment) -> str:
    """Return the attachment content as a base64 string."""
    return base64.b64encode(await attachment.read()).decode("ascii")


async def md5_hex(attachment: Attachment) -> str:
    return hashlib.md5(await attachment.read(), usedforsecurity=False).hexdigest()


def describe(attachment: Attachment) -> dict[str, str | int]:
    """Metadata enumeration used by adapters that do not send content."""
    return {"name": attachment.name, "mime_type": attachment.mime_type, "size": attachment.size}


class FileAttachment:
    """Attachment backed by a local file.

    Example:
        attachment = FileAttachment("/var/log/report.pdf")
        data = await attachment.read()
    """

    def __init__(self, path: str | os.PathLike[str], name: str | None = None, sniff_bytes: int = 512) -> None:
        self.path = Path(path).expanduser()
        self._name = name or self.path.name
        self._sniff_bytes = sniff_bytes
        self._size: int | None = None
        self._mime_type: str | None = None

    def __repr__(self) -> str:
        return f"FileAttachment(path={str(self.path)!r}, name={self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def size(self) -> int:
        if self._size is None:
            try:
                self._size = self.path.stat().st_size
            except OSError as e:
                raise AttachmentError(f"attachment not accessible: {self.path}", extra={"path": str(self.path)}) from e
        return self._size

    @property
    def mime_type(self) -> str:
        if self._mime_type is None:
            head: bytes | None = None
            if mime.guess_from_name(self._name) is None:
                try:
                    with self.path.open("rb") as fh:
                        head = fh.read(self._sniff_bytes)
                except OSError:
                    head = None
            self._mime_type = mime.detect(self._name, head)
        return self._mime_type

    async def exists(self) -> bool:
        return self.path.is_file()

    async def read(self) -> bytes:
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as e:
            raise AttachmentError(f"failed to read attachment: {self.path}", extra={"path": str(self.path)}) from e

    async def iter_bytes(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        try:
            fh = await asyncio.to_thread(self.path.open, "rb")
        except OSError as e:
            raise AttachmentError(f"failed to open attachment: {self.path}", extra={"path": str(self.path)}) from e
        try:
            while chunk := await asyncio.to_thread(fh.read, chunk_size):
                yield chunk
        finally:
            fh.close()

    async def base64(self) -> str:
        return await encode_base64(self)

    async def md5(self) -> str:
        return await md5_hex(self)


class HTTPAttachment:
    """Attachment fetched lazily from an HTTP(S) URL.

    The body is streamed on first read and aborted with
    ``AttachmentTooLargeError`` as soon as it exceeds ``max_size``; nothing
    partial is kept. A successful download is memoized so later reads are
    served from memory.

    Example:
        attachment = HTTPAttachment("https://example.com/chart.png", max_size=5_000_000)
        data = await attachment.read()
        attachment.mime_type  # "image/png"
    """

    def __init__(
        self,
        url: str,
        name: str | None = None,
        *,
        max_size: int = DEFAULT_MAX_SIZE,
        timeout: float = 30.0,
        pool: HTTPClientPool | None = None,
    ) -> None:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise AttachmentError(f"invalid attachment URL: {url}", extra={"url": url})
        self.url = url
        self.max_size = max_size
        self.timeout = timeout
        self._pool = pool
        self._explicit_name = name
        self._path_name = unquote(parsed.path.rstrip("/").rsplit("/", 1)[-1])
        self._disposition_name: str | None = None
        self._declared_size: int | None = None
        self._content_type: str | None = None
        self._content: bytes | None = None
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"HTTPAttachment(url={self.url!r})"

    @property
    def name(self) -> str:
        return self._explicit_name or self._path_name or self._disposition_name or "attachment"

    @property
    def size(self) -> int:
        """Byte size; the declared Content-Length until fetched, 0 if unknown."""
        if self._content is not None:
            return len(self._content)
        return self._declared_size or 0

    @property
    def mime_type(self) -> str:
        if self._content_type:
            return self._content_type
        if self._content is not None:
            return mime.sniff(self._content[:512])
        return mime.detect(self.name)

    @property
    def fetched(self) -> bool:
        return self._content is not None

    def _client(self) -> httpx.AsyncClient:
        from notifyhub.infra.http.pool import PoolClass, get_http_pool

        pool = self._pool or get_http_pool()
        return pool.get(PoolClass.DEFAULT, "attachments")

    async def exists(self) -> bool:
        if self._content is not None:
            return True
        try:
            response = await self._client().head(self.url, timeout=self.timeout)
        except httpx.HTTPError:
            return False
        return response.status_code < 400

    async def read(self) -> bytes:
        if self._content is not None:
            return self._content
        async with self._lock:
            if self._content is None:
                self._content = await self._fetch()
        return self._content

    async def _fetch(self) -> bytes:
        try:
            async with self._client().stream("GET", self.url, timeout=self.timeout) as response:
                if response.status_code >= 400:
                    raise AttachmentError(
                        f"failed to fetch attachment: status {response.status_code}",
                        extra={"url": self.url, "status_code": response.status_code},
                    )
                declared = response.headers.get("Content-Length")
                if declared and declared.isdigit():
                    self._declared_size = int(declared)
                    if self._declared_size > self.max_size:
                        raise AttachmentTooLargeError(self._declared_size, self.max_size)
                self._content_type = mime.base_type(response.headers.get("Content-Type"))
                self._disposition_name = _disposition_filename(response.headers.get("Content-Disposition"))

                buffer = bytearray()
                async for chunk in response.aiter_bytes():
                    buffer.extend(chunk)
                    if len(buffer) > self.max_size:
                        raise AttachmentTooLargeError(len(buffer), self.max_size)
        except httpx.HTTPError as e:
            raise AttachmentError(f"failed to fetch attachment: {e}", extra={"url": self.url}) from e

        logger.debug("Fetched HTTP attachment", extra={"url": self.url, "size": len(buffer)})
        return bytes(buffer)

    async def iter_bytes(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        data = await self.read()
        for offset in range(0, len(data), chunk_size):
            yield data[offset : offset + chunk_size]

    async def base64(self) -> str:
        return await encode_base64(self)

    async def md5(self) -> str:
        return await md5_hex(self)


class InlineAttachment:
    """Attachment holding explicit bytes."""

    def __init__(self, data: bytes, name: str, mime_type: str | None = None) -> None:
        self.data = bytes(data)
        self._name = name or "attachment"
        self._mime_type = mime_type or mime.detect(self._name, self.data[:512])

    def __repr__(self) -> str:
        return f"InlineAttachment(name={self._name!r}, size={len(self.data)})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def mime_type(self) -> str:
        return self._mime_type

    @property
    def size(self) -> int:
        return len(self.data)

    async def exists(self) -> bool:
        return True

    async def read(self) -> bytes:
        return self.data

    async def iter_bytes(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        for offset in range(0, len(self.data), chunk_size):
            yield self.data[offset : offset + chunk_size]

    async def base64(self) -> str:
        return await encode_base64(self)

    async def md5(self) -> str:
        return await md5_hex(self)


def _disposition_filename(header: str | None) -> str | None:
    if not header:
        return None
    for part in header.split(";"):
        key, _, value = part.strip().partition("=")
        if key.lower() == "filename*" and "''" in value:
            return unquote(value.split("''", 1)[1]) or None
        if key.lower() == "filename":
            return value.strip().strip('"') or None
    return None


__all__ = [
    "Attachment",
    "FileAttachment",
    "HTTPAttachment",
    "InlineAttachment",
    "describe",
]
