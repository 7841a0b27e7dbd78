import asyncio
import redis.asyncio as redis
from redis.exceptions import RedisError
from typing import Optional
import logging

from ..config import settings

logger = logging.getLogger(__name__)

# Global Redis client
_redis_client: Optional[redis.Redis] = None


async def create_redis_client() -> redis.Redis:
    """Create and return Redis client"""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    try:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
        )
        # Test connection
        await _redis_client.ping()
        logger.info(f"Redis client connected: {settings.redis_host}:{settings.redis_port}")
        return _redis_client
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        _redis_client = None
        raise


async def close_redis_client():
    """Close Redis connection"""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("Redis client closed")
        _redis_client = None


class RedisKeyspace:
    """Redis key namespaces for different data types"""

    SYNC_LOCK_PREFIX = "sync:stores:"
    SYNC_LOCK_ALL = "sync:stores:all"

    @staticmethod
    def sync_lock(scope: str) -> str:
        return f"sync:stores:{scope}"


class SyncLock:
    """
    Mutual exclusion for store syncs, one lock per scope.

    The scope is either "all" or a chain code. A chain sync is refused while
    the "all" lock is held, and an "all" sync is refused while any chain lock
    is held. The own key is taken first and the conflict check runs after it,
    so of two overlapping syncs starting together at most one proceeds.
    Locks expire after `ttl` seconds unless kept alive, so a crashed run
    cannot block syncing forever.
    """

    def __init__(self, client: redis.Redis, scope: str, ttl: Optional[int] = None):
        self.client = client
        self.scope = scope
        self.key = RedisKeyspace.sync_lock(scope)
        self.ttl = ttl or settings.sync_lock_ttl_seconds
        self._lock = client.lock(self.key, timeout=self.ttl, blocking=False)
        self._owned = False

    async def _conflicting_lock_held(self) -> bool:
        if self.scope == "all":
            async for key in self.client.scan_iter(match=RedisKeyspace.SYNC_LOCK_PREFIX + "*"):
                if key != self.key:
                    return True
            return False
        return bool(await self.client.exists(RedisKeyspace.SYNC_LOCK_ALL))

    async def acquire(self) -> bool:
        """Try to take the lock without waiting. Returns False if it is held."""
        if not await self._lock.acquire():
            return False
        self._owned = True
        try:
            conflict = await self._conflicting_lock_held()
        except RedisError:
            await self.release()
            raise
        if conflict:
            await self.release()
            return False
        return True

    async def extend(self) -> None:
        """Reset the TTL to the full `ttl`"""
        if self._owned:
            await self._lock.extend(self.ttl, replace_ttl=True)

    async def keep_alive(self, interval: float) -> None:
        """Extend the lock every `interval` seconds until cancelled or lost"""
        while self._owned:
            await asyncio.sleep(interval)
            try:
                await self.extend()
            except RedisError as e:
                logger.warning(f"[SYNC_LOCK] Could not extend {self.key}: {e}")
                return

    async def release(self) -> None:
        """Release the lock if this instance still owns it"""
        if not self._owned:
            return
        self._owned = False
        try:
            await self._lock.release()
        except RedisError as e:
            logger.warning(f"[SYNC_LOCK] Failed to release {self.key}: {e}")
