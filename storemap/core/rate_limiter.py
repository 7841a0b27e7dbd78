"""
Rate limiting for outbound calls.

Provides:
- TokenBucket: request spacing for the cijene.dev inventory API
- BatchLimiter: bounded batches with a pause between them, for the geocoder
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Optional, Sequence, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class TokenBucket:
    """
    Spaces out calls to one upstream API.

    `rate` tokens are added per second up to `capacity`; each call spends one.
    With capacity=1 consecutive calls are at least 1/rate seconds apart.
    """

    def __init__(self, rate: float, capacity: Optional[float] = None):
        self.rate = rate
        self.capacity = capacity if capacity is not None else rate
        self.tokens = self.capacity
        self.last_update = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.last_update) * self.rate)
        self.last_update = now

    async def acquire(self, tokens: float = 1.0) -> None:
        """Spend `tokens`, sleeping until the bucket holds enough"""
        while True:
            async with self._lock:
                self._refill()
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return
                wait_time = (tokens - self.tokens) / self.rate

            # Sleep outside the lock so other callers can refill and check
            await asyncio.sleep(wait_time)


class BatchLimiter:
    """
    Splits work into batches of at most `batch_size` items and sleeps
    `interval` seconds between consecutive batches.

    The caller runs each batch concurrently and awaits it before asking for
    the next one, so at most `batch_size` calls are ever outstanding.

    Usage:
        limiter = BatchLimiter(batch_size=5, interval=1.0)
        async for batch in limiter.batches(stores):
            await asyncio.gather(*(geocode(s) for s in batch))
    """

    def __init__(self, batch_size: int, interval: float = 0.0):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.interval = interval

    async def batches(self, items: Sequence[T]) -> AsyncIterator[list[T]]:
        for start in range(0, len(items), self.batch_size):
            if start and self.interval > 0:
                await asyncio.sleep(self.interval)
            yield list(items[start:start + self.batch_size])


# ============================================================================
# Shared limiters
# ============================================================================

_cijene_rate_limiter: Optional[TokenBucket] = None


def get_cijene_rate_limiter() -> TokenBucket:
    """
    Get rate limiter for the cijene.dev inventory API.

    capacity=1 prevents bursts, so consecutive calls are spaced 1/rps apart.
    """
    global _cijene_rate_limiter
    if _cijene_rate_limiter is None:
        from ..config import settings
        _cijene_rate_limiter = TokenBucket(rate=settings.cijene_rps, capacity=1)
    return _cijene_rate_limiter


def get_geocode_batch_limiter() -> BatchLimiter:
    """Batches used for new stores and coordinate backfill (5 per batch, 1s apart)"""
    from ..config import settings
    return BatchLimiter(
        batch_size=settings.geocode_batch_size,
        interval=settings.geocode_batch_delay_seconds,
    )


def get_geocode_update_limiter() -> BatchLimiter:
    """One geocode at a time for changed addresses (200ms apart)"""
    from ..config import settings
    return BatchLimiter(batch_size=1, interval=settings.geocode_update_delay_seconds)
