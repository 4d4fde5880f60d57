"""Notification value types and severity helpers.

``NotifyType`` carries the severity of a message along with the conventional
emoji and colour that rich adapters use. ``NotificationRequest`` is the
immutable message handed to every adapter during a dispatch.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from notifyhub.features.attachments.models import Attachment


class SeverityColor(NamedTuple):
    """Colour triple for rich-card adapters."""

    hex: str
    rgb: tuple[int, int, int]
    value: int


class NotifyType(str, Enum):
    """Severity class of a notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    @property
    def label(self) -> str:
        return self.value

    @property
    def code(self) -> int:
        """Stable integer code used by the metrics table."""
        return _TYPE_CODES[self]

    @property
    def emoji(self) -> str:
        return _TYPE_EMOJI[self]

    @property
    def color(self) -> SeverityColor:
        return _TYPE_COLORS[self]

    @classmethod
    def from_value(cls, value: NotifyType | str | int | None) -> NotifyType:
        """Parse a label, integer code or member into a ``NotifyType``.

        Unknown values fall back to ``INFO``.

        Example:
            >>> NotifyType.from_value("Warning")
            <NotifyType.WARNING: 'warning'>
            >>> NotifyType.from_value(3)
            <NotifyType.ERROR: 'error'>
        """
        if isinstance(value, NotifyType):
            return value
        if isinstance(value, int):
            for member, code in _TYPE_CODES.items():
                if code == value:
                    return member
            return cls.INFO
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.INFO
        return cls.INFO


_TYPE_CODES = {
    NotifyType.INFO: 0,
    NotifyType.SUCCESS: 1,
    NotifyType.WARNING: 2,
    NotifyType.ERROR: 3,
}

_TYPE_EMOJI = {
    NotifyType.INFO: "ℹ️",
    NotifyType.SUCCESS: "✅",
    NotifyType.WARNING: "⚠️",
    NotifyType.ERROR: "❌",
}

_TYPE_COLORS = {
    NotifyType.INFO: SeverityColor("#0099FF", (0, 153, 255), 0x0099FF),
    NotifyType.SUCCESS: SeverityColor("#00FF00", (0, 255, 0), 0x00FF00),
    NotifyType.WARNING: SeverityColor("#FFFF00", (255, 255, 0), 0xFFFF00),
    NotifyType.ERROR: SeverityColor("#FF0000", (255, 0, 0), 0xFF0000),
}


class BodyFormat(str, Enum):
    """Advisory body format; adapters that cannot honour it degrade to text."""

    TEXT = "text"
    MARKDOWN = "markdown"
    HTML = "html"

    @classmethod
    def parse(cls, value: BodyFormat | str | None) -> BodyFormat | None:
        """Parse a format name, accepting common aliases.

        Returns:
            Matching member, or None for empty/unknown input.
        """
        if value is None or isinstance(value, BodyFormat):
            return value
        normalized = value.strip().lower()
        if not normalized:
            return None
        return _FORMAT_ALIASES.get(normalized)


_FORMAT_ALIASES = {
    "text": BodyFormat.TEXT,
    "txt": BodyFormat.TEXT,
    "plain": BodyFormat.TEXT,
    "markdown": BodyFormat.MARKDOWN,
    "md": BodyFormat.MARKDOWN,
    "html": BodyFormat.HTML,
}


@dataclass(frozen=True)
class NotificationRequest:
    """Message dispatched to every selected destination.

    Attributes:
        title: Short title, may be empty.
        body: Free-form body; adapters clamp to their own limits.
        notify_type: Severity class.
        body_format: Optional advisory format.
        tags: Labels used for filtering and adapter metadata.
        url: Optional canonical link the notification refers to.
        attachments: Ordered attachments shared by all adapters.
    """

    title: str = ""
    body: str = ""
    notify_type: NotifyType = NotifyType.INFO
    body_format: BodyFormat | None = None
    tags: frozenset[str] = field(default_factory=frozenset)
    url: str | None = None
    attachments: tuple[Attachment, ...] = ()

    def evolve(self, **changes: Any) -> NotificationRequest:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @property
    def format_name(self) -> str:
        return self.body_format.value if self.body_format else BodyFormat.TEXT.value


def clamp_body(text: str, limit: int, ellipsis: str = "...") -> str:
    """Cut ``text`` to at most ``limit`` characters.

    A ``limit`` of 0 or less means unlimited.

    Example:
        >>> clamp_body("abcdef", 5)
        'ab...'
    """
    if limit <= 0 or len(text) <= limit:
        return text
    if limit <= len(ellipsis):
        return text[:limit]
    return text[: limit - len(ellipsis)] + ellipsis


def title_body(title: str, body: str, separator: str = "\n") -> str:
    """Join title and body, skipping whichever is empty."""
    if title and body:
        return f"{title}{separator}{body}"
    return title or body


__all__ = [
    "BodyFormat",
    "NotificationRequest",
    "NotifyType",
    "SeverityColor",
    "clamp_body",
    "title_body",
]
