"""Twitter/X adapter.

URLs:
    ``twitter://bearer_token`` (API v2, app bearer token)
    ``twitter://api_key:api_secret:access_token:access_secret@`` (OAuth 1.0a)
    ``twitter://[proxy_key@]proxy_host[:port]/path?api_key=...&api_secret=...``
    ``&access_token=...&access_secret=...|bearer_token=...`` (webhook proxy)

A URL is routed to the webhook proxy when ``webhook`` appears in its host or
path, or its path contains ``/twitter``. Tweets are posted to the v2
``/2/tweets`` endpoint with either a bearer token or an OAuth 1.0a
HMAC-SHA1 signature.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notifyhub.core.exceptions import URLParseError
from notifyhub.core.types import title_body
from notifyhub.features.services.base import AttachmentMode, ParsedServiceURL
from notifyhub.features.services.http import ServiceHTTP
from notifyhub.features.services.proxy import WebhookProxy, WebhookProxyConfig
from notifyhub.features.services.signing import oauth1_auth
from notifyhub.infra.http.pool import PoolClass

if TYPE_CHECKING:
    from notifyhub.core.types import NotificationRequest
    from notifyhub.infra.http.pool import HTTPClientPool

TWEETS_URL = "https://api.twitter.com/2/tweets"
MAX_TWEET_LENGTH = 280

_TYPE_PREFIX = {"error": "🚨", "warning": "⚠️", "success": "✅", "info": "ℹ️"}
_TAG_STRIP = str.maketrans("", "", " -.")


def is_proxy_url(parsed: ParsedServiceURL) -> bool:
    path = parsed.path
    return "webhook" in parsed.host.lower() or "webhook" in path.lower() or "/twitter" in path.lower()


class TwitterService:
    service_id = "twitter"
    friendly_name = "Twitter"
    schemes = ("twitter",)
    default_port = 443
    supports_attachments = True
    attachment_mode = AttachmentMode.METADATA
    max_body_length = MAX_TWEET_LENGTH
    secret_fields = ("api_secret", "access_token", "access_secret", "bearer_token")

    def __init__(self, pool: HTTPClientPool | None = None) -> None:
        self._http = ServiceHTTP(self.service_id, PoolClass.CLOUD, pool)
        self._proxy: WebhookProxy | None = None
        self.api_key = ""
        self.api_secret = ""
        self.access_token = ""
        self.access_secret = ""
        self.bearer_token = ""

    @property
    def uses_proxy(self) -> bool:
        return self._proxy is not None

    def parse_url(self, url: str) -> None:
        parsed = ParsedServiceURL.parse(url, self.schemes)
        if parsed.host and is_proxy_url(parsed):
            self._parse_proxy(parsed)
        else:
            self._parse_direct(parsed)

    def _parse_proxy(self, parsed: ParsedServiceURL) -> None:
        config = WebhookProxyConfig.build(parsed.host, parsed.port, parsed.path, api_key=parsed.user)
        self.api_key = parsed.param("api_key") or ""
        self.api_secret = parsed.param("api_secret") or ""
        if not self.api_key:
            raise URLParseError("api_key parameter is required for webhook mode", url=parsed.raw)
        if not self.api_secret:
            raise URLParseError("api_secret parameter is required for webhook mode", url=parsed.raw)
        self.access_token = parsed.param("access_token") or ""
        self.access_secret = parsed.param("access_secret") or ""
        self.bearer_token = parsed.param("bearer_token") or ""
        if not self.access_token and not self.bearer_token:
            raise URLParseError("either access_token or bearer_token must be provided", url=parsed.raw)
        self._proxy = WebhookProxy(config, self._http)

    def _parse_direct(self, parsed: ParsedServiceURL) -> None:
        if not parsed.user:
            if not parsed.host:
                raise URLParseError("Twitter API credentials must be provided", url=parsed.raw)
            self.bearer_token = parsed.host
            return

        if parsed.password is None:
            self.bearer_token = parsed.user
            return

        secrets = parsed.password.split(":")
        if len(secrets) != 3 or not all(secrets):
            raise URLParseError(
                "OAuth 1.0a requires api_key:api_secret:access_token:access_secret",
                url=parsed.raw,
            )
        self.api_key = parsed.user
        self.api_secret, self.access_token, self.access_secret = secrets

    def format_text(self, request: NotificationRequest) -> str:
        """Compose the tweet text within the 280 character limit.

        Hashtags, the request URL and an attachment count are appended in that
        order, each only if it still fits.
        """
        text = f"{_TYPE_PREFIX[request.notify_type.value]} {title_body(request.title, request.body, ': ')}"

        suffixes = []
        hashtags = [f"#{clean}" for tag in sorted(request.tags) if (clean := tag.translate(_TAG_STRIP))]
        if hashtags:
            suffixes.append(" " + " ".join(hashtags))
        if request.url:
            suffixes.append(" " + request.url)
        if request.attachments:
            suffixes.append(f" [{len(request.attachments)} attachments]")

        if len(text) > MAX_TWEET_LENGTH:
            return text[: MAX_TWEET_LENGTH - 3] + "..."
        for suffix in suffixes:
            if len(text) + len(suffix) <= MAX_TWEET_LENGTH:
                text += suffix
        return text

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        return {"text": self.format_text(request)}

    def _auth(self) -> dict[str, Any]:
        """Request options carrying either the bearer token or OAuth 1.0a auth."""
        if self.bearer_token:
            return {"headers": {"Authorization": f"Bearer {self.bearer_token}"}}
        auth = oauth1_auth(
            consumer_key=self.api_key,
            consumer_secret=self.api_secret,
            token=self.access_token,
            token_secret=self.access_secret,
        )
        return {"auth": auth}

    async def send(self, request: NotificationRequest) -> None:
        message = self.build_payload(request)
        if self._proxy is not None:
            credentials = {
                "api_key": self.api_key,
                "api_key_secret": self.api_secret,
                "access_token": self.access_token,
                "access_secret": self.access_secret,
                "bearer_token": self.bearer_token,
            }
            await self._proxy.forward(
                credentials,
                message,
                **credentials,
                twitter_message=message,
                message_type="tweet",
            )
            return

        await self._http.post_json(TWEETS_URL, message, **self._auth())


__all__ = ["TwitterService", "is_proxy_url"]
