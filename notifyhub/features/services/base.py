"""Adapter contract and URL parsing helper shared by every service.

Every destination adapter satisfies the ``ServiceAdapter`` protocol. Shared
behaviour comes from composition: adapters hold a ``ParsedServiceURL`` while
parsing, a ``ServiceHTTP`` for requests, and optionally a ``WebhookProxy``,
``TokenBucket`` or ``OAuthTokenCache``.

Usage:
    class EchoService:
        service_id = "echo"
        ...

        def parse_url(self, url: str) -> None:
            parsed = ParsedServiceURL.parse(url, schemes=("echo",))
            self._target = parsed.require_token(0, "target")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import re
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable
from urllib.parse import parse_qsl, unquote

from notifyhub.core.exceptions import URLParseError
from notifyhub.utils.redact import redact_url

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from notifyhub.core.types import NotificationRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AttachmentMode(str, Enum):
    """What an adapter does with request attachments."""

    CONTENT = "content"
    """Attachment bytes are transmitted."""

    METADATA = "metadata"
    """Only names, MIME types and sizes are included in the payload."""

    NONE = "none"
    """Attachments are ignored."""


@runtime_checkable
class ServiceAdapter(Protocol):
    """Capability surface every destination adapter implements.

    ``parse_url`` is called exactly once, at registration. Configuration is
    read-only afterwards so ``send`` may run concurrently on one instance.
    """

    @property
    def service_id(self) -> str:
        """Canonical scheme of the service."""
        ...

    @property
    def default_port(self) -> int:
        ...

    @property
    def supports_attachments(self) -> bool:
        """True for both CONTENT and METADATA attachment modes."""
        ...

    @property
    def attachment_mode(self) -> AttachmentMode:
        ...

    @property
    def max_body_length(self) -> int:
        """Maximum body length in characters; 0 means unlimited."""
        ...

    @property
    def secret_fields(self) -> tuple[str, ...]:
        """Attributes holding credentials parsed from the URL.

        Their values are masked wherever the destination URL is logged or
        stored; see ``redacted_url``.
        """
        ...

    def parse_url(self, url: str) -> None:
        """Populate configuration from ``url``.

        Raises:
            URLParseError: Malformed URL or missing required field.
            ConfigurationError: Forbidden combination of settings.
        """
        ...

    async def send(self, request: NotificationRequest) -> None:
        """Deliver ``request``; raises a ``DeliveryError`` on failure."""
        ...


_PHONE_PUNCTUATION = re.compile(r"[\s\-().]")

_TRUE = frozenset({"1", "true", "yes", "y", "on", "enable", "enabled"})
_FALSE = frozenset({"0", "false", "no", "n", "off", "disable", "disabled"})


@dataclass(frozen=True)
class ParsedServiceURL:
    """Components of ``scheme://[user[:secret]@]host[:port][/path][?query][#fragment]``.

    Unlike ``urllib.parse`` results, the host keeps its case (many services
    put case-sensitive tokens there) and user, password and path segments are
    percent-decoded. Query keys are lower-cased; the last value wins.

    Attributes:
        tokens: Host followed by the non-empty path segments. Services such as
            ``discord://id/token`` read their positional fields from here.
    """

    raw: str
    scheme: str
    user: str | None = None
    password: str | None = None
    host: str = ""
    port: int | None = None
    path_segments: tuple[str, ...] = ()
    query: dict[str, str] = field(default_factory=dict)
    fragment: str = ""

    @classmethod
    def parse(
        cls,
        url: str,
        schemes: Iterable[str] | None = None,
        *,
        keep_host: bool = False,
    ) -> ParsedServiceURL:
        """Split ``url`` into its components.

        Args:
            url: Destination URL.
            schemes: Accepted schemes; any scheme if omitted.
            keep_host: Treat everything after the userinfo as the host, for
                services whose host slot holds a token containing ``:``.

        Raises:
            URLParseError: The URL has no scheme, a bad port, or a scheme
                outside ``schemes``.
        """
        text = url.strip()
        scheme, sep, rest = text.partition("://")
        if not sep or not scheme:
            raise URLParseError("invalid URL: missing scheme", url=url)
        scheme = scheme.lower()
        if schemes is not None and scheme not in {s.lower() for s in schemes}:
            raise URLParseError(f"unexpected scheme: {scheme}", url=url)

        rest, _, fragment = rest.partition("#")
        rest, _, query_string = rest.partition("?")
        netloc, slash, path = rest.partition("/")

        user = password = None
        userinfo, at, hostport = netloc.rpartition("@")
        if at:
            raw_user, colon, raw_password = userinfo.partition(":")
            user = unquote(raw_user) or None
            password = unquote(raw_password) if colon else None
        else:
            hostport = netloc

        if keep_host:
            host, port = hostport, None
        else:
            host, port = _split_host_port(hostport, url)
        segments = tuple(unquote(seg) for seg in path.split("/") if seg) if slash else ()
        query = {key.lower(): value for key, value in parse_qsl(query_string, keep_blank_values=True)}

        return cls(
            raw=url,
            scheme=scheme,
            user=user,
            password=password,
            host=unquote(host),
            port=port,
            path_segments=segments,
            query=query,
            fragment=unquote(fragment),
        )

    @property
    def tokens(self) -> tuple[str, ...]:
        return ((self.host,) if self.host else ()) + self.path_segments

    @property
    def path(self) -> str:
        return "/" + "/".join(self.path_segments) if self.path_segments else ""

    def require_host(self, what: str = "host") -> str:
        if not self.host:
            raise URLParseError(f"missing {what}", url=self.raw)
        return self.host

    def require_token(self, index: int, what: str) -> str:
        """Return positional token ``index`` or fail naming the field."""
        tokens = self.tokens
        if index >= len(tokens) or not tokens[index]:
            raise URLParseError(f"missing {what}", url=self.raw)
        return tokens[index]

    def param(self, name: str, default: str | None = None) -> str | None:
        value = self.query.get(name.lower())
        if value is None or value == "":
            return default
        return value

    def first_param(self, *names: str, default: str | None = None) -> str | None:
        """Value of the first present parameter among ``names`` (aliases)."""
        for name in names:
            value = self.param(name)
            if value is not None:
                return value
        return default

    def bool_param(self, name: str, default: bool = False) -> bool:
        value = self.param(name)
        if value is None:
            return default
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise URLParseError(f"invalid boolean for {name}: {value}", url=self.raw)

    def int_param(
        self,
        name: str,
        default: int | None = None,
        *,
        minimum: int | None = None,
        maximum: int | None = None,
    ) -> int | None:
        """Parse an integer parameter, enforcing optional bounds."""
        value = self.param(name)
        if value is None:
            return default
        try:
            number = int(value.strip())
        except ValueError as e:
            raise URLParseError(f"invalid {name}: {value}", url=self.raw) from e
        if (minimum is not None and number < minimum) or (maximum is not None and number > maximum):
            raise URLParseError(f"{name} must be between {minimum} and {maximum}: {number}", url=self.raw)
        return number

    def list_param(self, name: str) -> list[str]:
        """Split a comma/space separated parameter into its items."""
        value = self.param(name)
        if not value:
            return []
        return [item for item in value.replace(" ", ",").split(",") if item]

    def prefixed_params(self, prefix: str) -> dict[str, str]:
        """Parameters starting with ``prefix``, keyed by the remainder.

        Example:
            ``?header_x-token=abc`` with prefix ``header_`` gives
            ``{"x-token": "abc"}``.
        """
        return {
            key[len(prefix) :]: value
            for key, value in self.query.items()
            if key.startswith(prefix) and len(key) > len(prefix)
        }


def _split_host_port(hostport: str, url: str) -> tuple[str, int | None]:
    if hostport.startswith("["):
        host, bracket, remainder = hostport[1:].partition("]")
        if not bracket:
            raise URLParseError("invalid IPv6 host", url=url)
        port_text = remainder[1:] if remainder.startswith(":") else ""
    else:
        host, colon, port_text = hostport.rpartition(":")
        if not colon:
            return hostport, None
    if not port_text:
        return host, None
    if not port_text.isdigit():
        raise URLParseError(f"invalid port: {port_text}", url=url)
    port = int(port_text)
    if not 0 < port < 65536:
        raise URLParseError(f"invalid port: {port}", url=url)
    return host, port


async def deliver_all(
    recipients: Iterable[T],
    send_one: Callable[[T], Awaitable[None]],
    *,
    service_id: str,
) -> None:
    """Send to every recipient in order; succeed only if all of them did.

    Every recipient is attempted even after a failure. The first failure is
    raised once the loop finishes.
    """
    first_error: Exception | None = None
    for recipient in recipients:
        try:
            await send_one(recipient)
        except Exception as e:
            logger.warning(
                "Recipient delivery failed",
                extra={"service_id": service_id, "recipient": str(recipient), "error": str(e)},
            )
            if first_error is None:
                first_error = e
    if first_error is not None:
        raise first_error


def normalize_phone(phone: str) -> str:
    """Strip punctuation and prefix ``+`` (``+1`` for 10-digit numbers)."""
    phone = _PHONE_PUNCTUATION.sub("", phone)
    if not phone or phone.startswith("+"):
        return phone
    if len(phone) == 10:
        return "+1" + phone
    return "+" + phone


def secret_values(adapter: object) -> list[str]:
    """Credential values held in the attributes an adapter lists in ``secret_fields``.

    Attributes may hold a string, a sequence of strings or a mapping whose
    values are secrets.
    """
    values: list[str] = []
    for name in getattr(adapter, "secret_fields", ()):
        value = getattr(adapter, name, None)
        if not value:
            continue
        if isinstance(value, str):
            values.append(value)
        elif isinstance(value, dict):
            values.extend(str(item) for item in value.values())
        else:
            values.extend(str(item) for item in value)
    return [value for value in values if value]


def redacted_url(adapter: object, url: str) -> str:
    """``url`` with the adapter's credentials and token-like parts masked."""
    return redact_url(url, secret_values(adapter))


def check_url(factory: Callable[[], ServiceAdapter], url: str) -> None:
    """Validate ``url`` against a throwaway adapter instance.

    Raises:
        URLParseError, ConfigurationError: As raised by ``parse_url``.
    """
    factory().parse_url(url)


__all__ = [
    "AttachmentMode",
    "ParsedServiceURL",
    "ServiceAdapter",
    "check_url",
    "deliver_all",
    "normalize_phone",
    "redacted_url",
    "secret_values",
]
