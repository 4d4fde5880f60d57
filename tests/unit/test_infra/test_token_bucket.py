"""Tests for the adapter token bucket."""

from __future__ import annotations

import asyncio

import pytest

from notifyhub.infra.ratelimit import TokenBucket


@pytest.mark.unit
class TestTokenBucket:
    @pytest.mark.parametrize(
        ("rate", "capacity", "message"),
        [(0, 1, "rate must be positive"), (-1, 1, "rate must be positive"), (1, 0.5, "capacity must be at least 1")],
    )
    def test_invalid_arguments(self, rate, capacity, message):
        with pytest.raises(ValueError, match=message):
            TokenBucket(rate=rate, capacity=capacity)

    def test_burst_up_to_capacity(self):
        bucket = TokenBucket(rate=0.001, capacity=2)

        assert bucket.try_acquire()
        assert bucket.try_acquire()
        assert not bucket.try_acquire()
        assert bucket.available < 1

    async def test_acquire_waits_for_refill(self):
        bucket = TokenBucket(rate=50, capacity=1)

        first = await bucket.acquire()
        second = await bucket.acquire()

        assert first == 0.0
        assert second > 0.0

    async def test_concurrent_acquires_are_spaced(self):
        bucket = TokenBucket(rate=100, capacity=1)
        loop = asyncio.get_running_loop()
        started = loop.time()

        await asyncio.gather(*(bucket.acquire() for _ in range(3)))

        # two refills of 10ms each
        assert loop.time() - started >= 0.015
