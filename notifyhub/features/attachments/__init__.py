"""Attachment model: file, HTTP and inline variants plus a manager."""

from notifyhub.features.attachments.manager import AttachmentManager
from notifyhub.features.attachments.models import (
    Attachment,
    FileAttachment,
    HTTPAttachment,
    InlineAttachment,
    describe,
)

__all__ = [
    "Attachment",
    "AttachmentManager",
    "FileAttachment",
    "HTTPAttachment",
    "InlineAttachment",
    "describe",
]
