"""In-process token bucket for adapters with provider-side rate limits."""

from __future__ import annotations

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class TokenBucket:
    """Async token bucket scoped to one adapter instance.

    Tokens refill continuously at ``rate`` per second up to ``capacity``.
    ``acquire`` waits until a token is available, so concurrent senders are
    spaced out instead of rejected.

    Attributes:
        rate: Tokens added per second.
        capacity: Maximum burst size.

    Example:
        bucket = TokenBucket(rate=0.2, capacity=1)  # one request every 5s
        await bucket.acquire()
    """

    def __init__(self, rate: float, capacity: float = 1.0) -> None:
        if rate <= 0:
            msg = "rate must be positive"
            raise ValueError(msg)
        if capacity < 1:
            msg = "capacity must be at least 1"
            raise ValueError(msg)
        self.rate = rate
        self.capacity = capacity
        self._tokens = capacity
        self._updated = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self.capacity, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    def try_acquire(self, tokens: float = 1.0) -> bool:
        """Take tokens without waiting; False if not enough are available."""
        self._refill()
        if self._tokens >= tokens:
            self._tokens -= tokens
            return True
        return False

    async def acquire(self, tokens: float = 1.0) -> float:
        """Wait for and take ``tokens``.

        Returns:
            Seconds spent waiting.
        """
        waited = 0.0
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    break
                delay = (tokens - self._tokens) / self.rate
                logger.debug("Rate limited, waiting", extra={"delay": delay})
                await asyncio.sleep(delay)
                waited += delay
        return waited

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens


__all__ = ["TokenBucket"]
