"""Scheme to adapter-factory registry.

Usage:
    registry = get_service_registry()

    # Build an unconfigured adapter for a scheme
    adapter = registry.create("discord")
    adapter.parse_url("discord://id/token")

    # Plug in a custom adapter
    registry.register(EchoService, "echo", name="Echo")
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
from typing import TYPE_CHECKING, Any

from notifyhub.core.exceptions import UnknownSchemeError
from notifyhub.features.services.base import check_url

if TYPE_CHECKING:
    from collections.abc import Callable

    from notifyhub.features.services.base import ServiceAdapter
    from notifyhub.infra.http.pool import HTTPClientPool

    AdapterFactory = Callable[[HTTPClientPool | None], ServiceAdapter]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Registration:
    """One registered scheme."""

    scheme: str
    factory: AdapterFactory
    name: str


class ServiceRegistry:
    """Maps URL schemes to adapter factories.

    Factories are called with the HTTP pool to use, so each ``create`` returns
    an independent adapter. All access is guarded by a re-entrant lock so
    adapters may be registered while dispatchers are being built on other
    threads.

    Example:
        registry = ServiceRegistry()
        registry.register(DiscordService)  # schemes from DiscordService.schemes
        "discord" in registry.schemes()  # True
    """

    def __init__(self) -> None:
        self._registrations: dict[str, Registration] = {}
        self._lock = threading.RLock()

    @staticmethod
    def normalize(scheme: str) -> str:
        """Lower-case ``scheme`` and drop leading whitespace and ``://``."""
        return scheme.lstrip().split("://", 1)[0].lower()

    def register(self, factory: AdapterFactory, *schemes: str, name: str | None = None) -> None:
        """Register ``factory`` for ``schemes``.

        Args:
            factory: Callable ``(pool) -> adapter``, usually an adapter class.
            *schemes: Schemes to claim. Defaults to ``factory.schemes``.
            name: Display name. Defaults to ``factory.friendly_name``.

        Raises:
            ValueError: No scheme was given and the factory declares none.
        """
        claimed = schemes or tuple(getattr(factory, "schemes", ()))
        if not claimed:
            msg = f"No schemes given for {factory!r}"
            raise ValueError(msg)
        display = name or getattr(factory, "friendly_name", None) or self.normalize(claimed[0])

        with self._lock:
            for scheme in claimed:
                key = self.normalize(scheme)
                previous = self._registrations.get(key)
                if previous is not None and previous.factory is not factory:
                    logger.info("Replacing adapter for scheme", extra={"scheme": key, "previous": previous.name})
                self._registrations[key] = Registration(scheme=key, factory=factory, name=display)
        logger.debug("Registered service adapter", extra={"schemes": list(claimed), "service_name": display})

    def unregister(self, scheme: str) -> bool:
        """Remove ``scheme``; returns True if it was registered."""
        with self._lock:
            return self._registrations.pop(self.normalize(scheme), None) is not None

    def is_supported(self, scheme: str) -> bool:
        with self._lock:
            return self.normalize(scheme) in self._registrations

    def create(self, scheme: str, pool: HTTPClientPool | None = None) -> ServiceAdapter:
        """Build a fresh, unconfigured adapter for ``scheme``.

        Raises:
            UnknownSchemeError: No adapter is registered for the scheme.
        """
        key = self.normalize(scheme)
        with self._lock:
            registration = self._registrations.get(key)
        if registration is None:
            raise UnknownSchemeError(key)
        return registration.factory(pool)

    def schemes(self) -> list[str]:
        with self._lock:
            return sorted(self._registrations)

    def friendly_name(self, scheme: str) -> str | None:
        with self._lock:
            registration = self._registrations.get(self.normalize(scheme))
        return registration.name if registration else None

    def check_url(self, url: str) -> None:
        """Parse ``url`` with a throwaway adapter.

        Raises:
            UnknownSchemeError, URLParseError, ConfigurationError
        """
        scheme, sep, _ = url.strip().partition("://")
        if not sep:
            raise UnknownSchemeError(url.strip())
        check_url(lambda: self.create(scheme), url)

    def describe(self) -> list[dict[str, Any]]:
        """One entry per scheme with its display name and adapter capabilities."""
        with self._lock:
            registrations = sorted(self._registrations.values(), key=lambda r: r.scheme)
        described = []
        for registration in registrations:
            factory = registration.factory
            mode = getattr(factory, "attachment_mode", None)
            described.append(
                {
                    "scheme": registration.scheme,
                    "name": registration.name,
                    "service_id": getattr(factory, "service_id", registration.scheme),
                    "attachments": getattr(mode, "value", None),
                    "max_body_length": getattr(factory, "max_body_length", None),
                }
            )
        return described

    def __contains__(self, scheme: object) -> bool:
        return isinstance(scheme, str) and self.is_supported(scheme)

    def __len__(self) -> int:
        with self._lock:
            return len(self._registrations)


def _register_builtin_services(registry: ServiceRegistry) -> None:
    from notifyhub.features.services.aws_sns import SNSService, SNSSMSService
    from notifyhub.features.services.datadog import DatadogService
    from notifyhub.features.services.discord import DiscordService
    from notifyhub.features.services.email import EmailService
    from notifyhub.features.services.gotify import GotifyService
    from notifyhub.features.services.mailgun import MailgunService
    from notifyhub.features.services.matrix import MatrixService
    from notifyhub.features.services.mattermost import MattermostService
    from notifyhub.features.services.msteams import MSTeamsService
    from notifyhub.features.services.ntfy import NtfyService
    from notifyhub.features.services.opsgenie import OpsgenieService
    from notifyhub.features.services.pagerduty import PagerDutyService
    from notifyhub.features.services.pushbullet import PushbulletService
    from notifyhub.features.services.pushover import PushoverService
    from notifyhub.features.services.reddit import RedditService
    from notifyhub.features.services.slack import SlackService
    from notifyhub.features.services.telegram import TelegramService
    from notifyhub.features.services.twilio import TwilioService
    from notifyhub.features.services.twitter import TwitterService
    from notifyhub.features.services.webhook import WebhookService

    for factory in (
        DiscordService,
        SlackService,
        TelegramService,
        EmailService,
        MailgunService,
        WebhookService,
        PushoverService,
        PushbulletService,
        MSTeamsService,
        NtfyService,
        GotifyService,
        MatrixService,
        MattermostService,
        TwilioService,
        SNSService,
        SNSSMSService,
        TwitterService,
        RedditService,
        PagerDutyService,
        OpsgenieService,
        DatadogService,
    ):
        registry.register(factory)


def build_default_registry() -> ServiceRegistry:
    """Return a new registry holding every builtin adapter."""
    registry = ServiceRegistry()
    _register_builtin_services(registry)
    return registry


_registry: ServiceRegistry | None = None
_registry_lock = threading.Lock()


def get_service_registry() -> ServiceRegistry:
    """Process-wide registry, built with the builtin adapters on first use."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = build_default_registry()
                logger.info("Service registry initialized", extra={"schemes": len(_registry)})
    return _registry


def reset_service_registry() -> None:
    """Drop the process-wide registry (tests)."""
    global _registry
    with _registry_lock:
        _registry = None


__all__ = [
    "Registration",
    "ServiceRegistry",
    "build_default_registry",
    "get_service_registry",
    "reset_service_registry",
]
