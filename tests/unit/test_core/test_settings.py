"""Tests for environment-backed settings."""

from __future__ import annotations

from pydantic import ValidationError
import pytest

from notifyhub.core.settings import (
    DispatchSettings,
    SchedulerSettings,
    get_dispatch_settings,
    get_logging_settings,
)


@pytest.mark.unit
class TestDispatchSettings:
    """Tests for NOTIFY_ settings."""

    def test_defaults(self):
        """Default deadline is 30 seconds with TLS verification on."""
        settings = DispatchSettings()

        assert settings.timeout == 30.0
        assert settings.verify_tls is True
        assert settings.default_tags == []

    def test_env_overrides(self, monkeypatch):
        """Comma-separated default tags are split."""
        monkeypatch.setenv("NOTIFY_TIMEOUT", "12.5")
        monkeypatch.setenv("NOTIFY_DEFAULT_TAGS", "ops, oncall ,")

        settings = get_dispatch_settings()

        assert settings.timeout == 12.5
        assert settings.default_tags == ["ops", "oncall"]

    def test_loader_is_cached(self):
        assert get_dispatch_settings() is get_dispatch_settings()

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            DispatchSettings(timeout=0)


@pytest.mark.unit
class TestSchedulerSettings:
    """Tests for SCHEDULER_ settings."""

    def test_backoff_cap_must_cover_base(self):
        """retry_max_delay below retry_base_delay is rejected."""
        with pytest.raises(ValidationError):
            SchedulerSettings(retry_base_delay=60, retry_max_delay=10)

    def test_frozen(self):
        settings = SchedulerSettings()

        with pytest.raises(ValidationError):
            settings.batch_size = 5  # type: ignore[misc]


@pytest.mark.unit
def test_logging_level_is_normalized(monkeypatch):
    """LOG_LEVEL accepts any case."""
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_logging_settings()

    assert settings.level == "DEBUG"
    assert settings.to_logging_kwargs()["log_level"] == "DEBUG"
