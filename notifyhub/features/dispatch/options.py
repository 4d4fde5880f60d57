"""Per-call options accepted by ``Dispatcher.notify``.

Usage:
    await dispatcher.notify(
        "Deploy finished",
        "v1.4.2 is live",
        NotifyType.SUCCESS,
        with_tags("ops"),
        with_url("https://ci.example.com/runs/812"),
    )
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from notifyhub.core.types import BodyFormat

if TYPE_CHECKING:
    from notifyhub.features.attachments import Attachment


@dataclass
class NotifyOptions:
    """Accumulated option values for one ``notify`` call.

    ``attachments`` stays None unless ``with_attachments`` was given, in which
    case the dispatcher's attachment manager is not consulted.
    """

    tags: set[str] = field(default_factory=set)
    body_format: BodyFormat | None = None
    url: str | None = None
    attachments: tuple[Attachment, ...] | None = None


NotifyOption = Callable[[NotifyOptions], None]


def with_tags(*tags: str) -> NotifyOption:
    """Only send to destinations sharing at least one of ``tags``.

    Calling it without tags is a no-op.
    """
    cleaned = {tag.strip() for tag in tags if tag and tag.strip()}

    def apply(options: NotifyOptions) -> None:
        options.tags.update(cleaned)

    return apply


def with_body_format(body_format: BodyFormat | str) -> NotifyOption:
    """Mark the body as text, markdown or html.

    Raises:
        ValueError: Unknown format name.
    """
    parsed = BodyFormat.parse(body_format)
    if parsed is None:
        msg = f"Unknown body format: {body_format!r}"
        raise ValueError(msg)

    def apply(options: NotifyOptions) -> None:
        options.body_format = parsed

    return apply


def with_url(url: str) -> NotifyOption:
    def apply(options: NotifyOptions) -> None:
        options.url = url or None

    return apply


def with_attachments(*attachments: Attachment) -> NotifyOption:
    """Send exactly ``attachments`` instead of the dispatcher's list."""

    def apply(options: NotifyOptions) -> None:
        options.attachments = tuple(attachments)

    return apply


def resolve_options(options: tuple[NotifyOption, ...]) -> NotifyOptions:
    resolved = NotifyOptions()
    for option in options:
        option(resolved)
    return resolved


__all__ = [
    "NotifyOption",
    "NotifyOptions",
    "resolve_options",
    "with_attachments",
    "with_body_format",
    "with_tags",
    "with_url",
]
