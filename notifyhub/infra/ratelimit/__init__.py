"""Client-side rate limiting."""

from notifyhub.infra.ratelimit.bucket import TokenBucket

__all__ = ["TokenBucket"]
