"""Run coroutines from synchronous click commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TypeVar

T = TypeVar("T")


def coro(f: Callable[..., Awaitable[T]]) -> Callable[..., T]:
    """Make an async function callable from a click command.

    Usage:
        @click.command()
        @coro
        async def send():
            await dispatcher.notify("title", "body")
    """

    @wraps(f)
    def wrapper(*args: object, **kwargs: object) -> T:
        return asyncio.run(f(*args, **kwargs))

    return wrapper
