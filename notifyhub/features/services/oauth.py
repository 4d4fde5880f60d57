"""Cached access tokens with single-flight refresh."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

# Tokens are refreshed this many seconds before they expire
REFRESH_MARGIN = 60.0


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REAUTHENTICATING = "reauthenticating"


@dataclass(frozen=True)
class AccessToken:
    """Token value and absolute expiry on the monotonic clock (None: never)."""

    value: str
    expires_at: float | None = None

    @classmethod
    def expiring_in(cls, value: str, seconds: float | None) -> AccessToken:
        return cls(value, None if seconds is None else time.monotonic() + seconds)

    def usable(self, margin: float = REFRESH_MARGIN) -> bool:
        return self.expires_at is None or time.monotonic() < self.expires_at - margin


class OAuthTokenCache:
    """Per-adapter token cache.

    ``get_token`` returns the cached token while it is usable. Otherwise the
    first caller runs ``fetch`` under a lock and concurrent callers wait for
    and reuse its result. A failed fetch leaves the cache unauthenticated.
    Also used for session tokens from login handshakes (no expiry).

    Example:
        cache = OAuthTokenCache()
        token = await cache.get_token(self._login)
    """

    def __init__(self, refresh_margin: float = REFRESH_MARGIN) -> None:
        self.refresh_margin = refresh_margin
        self._state = AuthState.UNAUTHENTICATED
        self._token: AccessToken | None = None
        self._authenticated_once = False
        self._lock = asyncio.Lock()

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def token(self) -> AccessToken | None:
        return self._token

    def _current(self) -> str | None:
        token = self._token
        if token is not None and token.usable(self.refresh_margin):
            return token.value
        return None

    async def get_token(self, fetch: Callable[[], Awaitable[AccessToken]]) -> str:
        current = self._current()
        if current is not None:
            return current

        async with self._lock:
            current = self._current()
            if current is not None:
                return current

            self._state = (
                AuthState.REAUTHENTICATING if self._authenticated_once else AuthState.AUTHENTICATING
            )
            try:
                token = await fetch()
            except BaseException:
                self._token = None
                self._state = AuthState.UNAUTHENTICATED
                raise

            self._token = token
            self._authenticated_once = True
            self._state = AuthState.AUTHENTICATED
            logger.debug("Access token acquired", extra={"expires_at": token.expires_at})
            return token.value

    def invalidate(self) -> None:
        """Drop the token so the next ``get_token`` authenticates again."""
        self._token = None
        self._state = AuthState.UNAUTHENTICATED


__all__ = ["REFRESH_MARGIN", "AccessToken", "AuthState", "OAuthTokenCache"]
