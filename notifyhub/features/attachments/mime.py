"""MIME type detection from file names and leading content bytes."""

from __future__ import annotations

import json
import mimetypes

DEFAULT_MIME_TYPE = "application/octet-stream"

# (offset, signature, mime type); checked in order
_SIGNATURES: tuple[tuple[int, bytes, str], ...] = (
    (0, b"\x89PNG\r\n\x1a\n", "image/png"),
    (0, b"\xff\xd8\xff", "image/jpeg"),
    (0, b"GIF87a", "image/gif"),
    (0, b"GIF89a", "image/gif"),
    (0, b"%PDF-", "application/pdf"),
    (0, b"PK\x03\x04", "application/zip"),
    (0, b"\x1f\x8b", "application/gzip"),
    (0, b"BM", "image/bmp"),
    (0, b"OggS", "audio/ogg"),
    (0, b"ID3", "audio/mpeg"),
    (4, b"ftyp", "video/mp4"),
)


def guess_from_name(name: str | None) -> str | None:
    """Guess a MIME type from a file name's extension."""
    if not name:
        return None
    mime_type, _ = mimetypes.guess_type(name, strict=False)
    return mime_type


def sniff(head: bytes) -> str:
    """Detect a MIME type from the first bytes of content.

    Falls back to ``text/plain`` for decodable UTF-8 without control bytes and
    to ``application/octet-stream`` otherwise.

    Example:
        >>> sniff(b"%PDF-1.7 ...")
        'application/pdf'
    """
    if not head:
        return "text/plain; charset=utf-8"
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    for offset, signature, mime_type in _SIGNATURES:
        if head[offset : offset + len(signature)] == signature:
            return mime_type

    stripped = head.lstrip()
    if stripped[:5].lower() in (b"<!doc", b"<html"):
        return "text/html; charset=utf-8"
    if stripped[:5] == b"<?xml":
        return "text/xml; charset=utf-8"
    if stripped[:4] == b"<svg":
        return "image/svg+xml"

    try:
        text = head.decode("utf-8")
    except UnicodeDecodeError:
        # The cut may have split a multi-byte sequence
        try:
            text = head[:-3].decode("utf-8")
        except UnicodeDecodeError:
            return DEFAULT_MIME_TYPE
    if any(ord(ch) < 32 and ch not in "\t\n\r\f" for ch in text):
        return DEFAULT_MIME_TYPE
    if stripped[:1] in (b"{", b"["):
        try:
            json.loads(text)
        except ValueError:
            pass
        else:
            return "application/json"
    return "text/plain; charset=utf-8"


def detect(name: str | None, head: bytes | None = None) -> str:
    """Extension lookup first, then content sniffing."""
    mime_type = guess_from_name(name)
    if mime_type:
        return mime_type
    if head is None:
        return DEFAULT_MIME_TYPE
    return sniff(head)


def base_type(content_type: str | None) -> str | None:
    """Strip parameters from a Content-Type header value."""
    if not content_type:
        return None
    value = content_type.split(";", 1)[0].strip().lower()
    return value or None


__all__ = ["DEFAULT_MIME_TYPE", "base_type", "detect", "guess_from_name", "sniff"]
