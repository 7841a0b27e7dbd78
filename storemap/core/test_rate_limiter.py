"""
Tests for outbound rate limiting.

Run with: pytest storemap/core/test_rate_limiter.py -v
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from .rate_limiter import BatchLimiter, TokenBucket


async def collect(limiter, items):
    return [batch async for batch in limiter.batches(items)]


def test_batch_limiter_rejects_empty_batches():
    with pytest.raises(ValueError):
        BatchLimiter(batch_size=0)


@pytest.mark.asyncio
class TestBatchLimiter:

    async def test_splits_into_bounded_batches(self):
        batches = await collect(BatchLimiter(batch_size=5), list(range(12)))

        assert batches == [[0, 1, 2, 3, 4], [5, 6, 7, 8, 9], [10, 11]]

    async def test_sleeps_between_batches_only(self):
        sleep = AsyncMock()
        with patch('storemap.core.rate_limiter.asyncio.sleep', sleep):
            await collect(BatchLimiter(batch_size=5, interval=1.0), list(range(12)))

        # 3 batches -> 2 pauses, none before the first
        assert sleep.await_count == 2
        sleep.assert_awaited_with(1.0)

    async def test_single_batch_never_sleeps(self):
        sleep = AsyncMock()
        with patch('storemap.core.rate_limiter.asyncio.sleep', sleep):
            await collect(BatchLimiter(batch_size=5, interval=1.0), [1, 2, 3])

        sleep.assert_not_awaited()

    async def test_empty_input_yields_nothing(self):
        assert await collect(BatchLimiter(batch_size=5, interval=1.0), []) == []


@pytest.mark.asyncio
class TestTokenBucket:

    async def test_capacity_one_spaces_requests(self):
        bucket = TokenBucket(rate=20, capacity=1)
        loop = asyncio.get_running_loop()

        start = loop.time()
        for _ in range(3):
            await bucket.acquire()
        elapsed = loop.time() - start

        # First token is free, the next two wait ~50ms each
        assert elapsed >= 0.09

    async def test_burst_within_capacity_never_sleeps(self):
        bucket = TokenBucket(rate=1, capacity=3)
        sleep = AsyncMock()
        with patch('storemap.core.rate_limiter.asyncio.sleep', sleep):
            for _ in range(3):
                await bucket.acquire()

        sleep.assert_not_awaited()
        assert bucket.tokens < 1
