"""``@retry`` decorator for coroutine functions."""

from __future__ import annotations

import asyncio
from functools import wraps
import logging
import time
from typing import TYPE_CHECKING, ParamSpec, TypeVar

from notifyhub.infra.metrics.tracking import (
    track_retry_attempt,
    track_retry_exhausted,
    track_retry_success,
)

from .exceptions import RetryError, RetryStatistics
from .strategies import RetryStrategy

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def retry(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    retry_if: Callable[[Exception], bool] | None = None,
    stop_after_delay: float | None = None,
    strategy: RetryStrategy | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Retry a coroutine function with exponential backoff.

    Args:
        max_attempts: Total attempts including the first call.
        initial_delay: Delay before the first retry, in seconds.
        max_delay: Upper bound for a single delay.
        exponential_base: Growth factor between delays.
        jitter: Randomize delays within ``(0.5, 1.5)``.
        exceptions: Exception types that trigger a retry.
        retry_if: Predicate overriding ``exceptions``.
        stop_after_delay: Give up once this many seconds have elapsed.
        strategy: Prebuilt strategy; overrides the individual arguments.

    Raises:
        RetryError: Every attempt failed with a retryable exception.

    Example:
        @retry(max_attempts=3, exceptions=(OperationalError,))
        async def claim_jobs(session): ...
    """
    policy = strategy or RetryStrategy(
        max_attempts=max_attempts,
        initial_delay=initial_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
        exceptions=exceptions,
        retry_if=retry_if,
        stop_after_delay=stop_after_delay,
    )

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        name = func.__qualname__

        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            statistics = RetryStatistics()
            attempt = 0
            while True:
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    if not policy.should_retry(e):
                        raise

                    statistics.failed(e)
                    out_of_time = (
                        policy.stop_after_delay is not None and statistics.elapsed >= policy.stop_after_delay
                    )
                    if out_of_time or attempt >= policy.max_attempts - 1:
                        statistics.end_time = time.monotonic()
                        track_retry_exhausted(name)
                        logger.error(
                            "Retries exhausted for %s",
                            name,
                            extra={
                                "function": name,
                                "attempts": attempt + 1,
                                "last_exception": str(e),
                                "total_delay": statistics.total_delay,
                            },
                        )
                        raise RetryError(e, attempt + 1, statistics) from e

                    delay = policy.calculate_delay(attempt)
                    statistics.waited(delay)
                    track_retry_attempt(name, attempt + 2)
                    logger.warning(
                        "Retrying %s after %.2fs (attempt %d/%d)",
                        name,
                        delay,
                        attempt + 1,
                        policy.max_attempts,
                        extra={"function": name, "delay": delay, "exception": str(e)},
                    )
                    await asyncio.sleep(delay)
                    attempt += 1
                else:
                    if statistics.attempts:
                        track_retry_success(name, statistics.attempts + 1)
                    return result

        return async_wrapper

    return decorator
