"""Tests for notification value types."""

from __future__ import annotations

import pytest

from notifyhub.core.types import BodyFormat, NotificationRequest, NotifyType, clamp_body, title_body


@pytest.mark.unit
class TestNotifyType:
    """Tests for severity parsing and presentation helpers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("warning", NotifyType.WARNING),
            (" Error ", NotifyType.ERROR),
            (1, NotifyType.SUCCESS),
            (NotifyType.ERROR, NotifyType.ERROR),
            ("nonsense", NotifyType.INFO),
            (42, NotifyType.INFO),
            (None, NotifyType.INFO),
        ],
    )
    def test_from_value(self, value, expected):
        """Labels, codes and members parse; anything else falls back to info."""
        assert NotifyType.from_value(value) is expected

    def test_codes_are_stable(self):
        """Metric rows store these integers."""
        assert [t.code for t in NotifyType] == [0, 1, 2, 3]

    def test_color_and_emoji(self):
        """Each severity carries a colour and an emoji."""
        assert NotifyType.ERROR.color.value == 0xFF0000
        assert NotifyType.SUCCESS.color.hex == "#00FF00"
        assert NotifyType.WARNING.emoji == "⚠️"
        assert NotifyType.INFO.label == "info"


@pytest.mark.unit
class TestBodyFormat:
    """Tests for body format parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("md", BodyFormat.MARKDOWN),
            ("HTML", BodyFormat.HTML),
            ("plain", BodyFormat.TEXT),
            (BodyFormat.TEXT, BodyFormat.TEXT),
            ("", None),
            ("rtf", None),
            (None, None),
        ],
    )
    def test_parse(self, value, expected):
        """Aliases resolve and unknown names give None."""
        assert BodyFormat.parse(value) is expected


@pytest.mark.unit
class TestNotificationRequest:
    """Tests for the immutable request."""

    def test_defaults(self):
        """A bare request is an info message without format or attachments."""
        request = NotificationRequest()

        assert request.notify_type is NotifyType.INFO
        assert request.format_name == "text"
        assert request.tags == frozenset()
        assert request.attachments == ()

    def test_evolve_returns_copy(self):
        """evolve replaces fields without touching the original."""
        request = NotificationRequest(title="a", body="b")

        changed = request.evolve(title="c", body_format=BodyFormat.HTML)

        assert request.title == "a"
        assert changed.title == "c"
        assert changed.format_name == "html"

    def test_frozen(self):
        """Requests are shared by concurrent adapters and cannot change."""
        request = NotificationRequest(title="a")

        with pytest.raises(AttributeError):
            request.title = "b"  # type: ignore[misc]


@pytest.mark.unit
class TestTextHelpers:
    """Tests for clamp_body and title_body."""

    def test_clamp_keeps_short_text(self):
        assert clamp_body("short", 10) == "short"

    def test_clamp_adds_ellipsis_within_limit(self):
        """The result including the ellipsis never exceeds the limit."""
        clamped = clamp_body("abcdefghij", 8)

        assert clamped == "abcde..."
        assert len(clamped) == 8

    def test_clamp_unlimited(self):
        """A limit of 0 disables clamping."""
        assert clamp_body("x" * 5000, 0) == "x" * 5000

    def test_title_body(self):
        assert title_body("T", "B") == "T\nB"
        assert title_body("T", "B", " - ") == "T - B"
        assert title_body("", "B") == "B"
        assert title_body("T", "") == "T"
