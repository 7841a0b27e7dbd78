"""
Store sync service - serves the local store mirror and keeps it current.

Every read backfills coordinates for stores that have none. A read with
sync=True additionally pulls the remote listing and reconciles the mirror
against it, under a Redis lock so two syncs of overlapping scope never run
at once.

The periodic task runs the same full sync in the background when
STORE_SYNC_INTERVAL_MINUTES is set.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Sequence, Union

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..config import settings
from ..core.database import Database
from ..core.exceptions import SyncInProgressError
from ..core.rate_limiter import BatchLimiter, get_geocode_batch_limiter
from ..core.redis import SyncLock
from ..models.results import BackfillResult, StoreStats, SyncResult
from ..models.store import StoreCoordinates, StoreKey, StoreRecord
from .cijene_api import ALL_CHAINS, CijeneClient
from .geocoding import GeocoderClient
from .reconciliation import StoreReconciler
from .store_repository import StoreRepository

logger = logging.getLogger(__name__)

# Initial delay before the first background sync (let the app fully start)
INITIAL_DELAY = 60


@dataclass(frozen=True)
class DeleteByKey:
    chain_code: str
    code: str


@dataclass(frozen=True)
class DeleteByChain:
    chain_code: str


@dataclass(frozen=True)
class DeleteByKeys:
    keys: tuple[StoreKey, ...]


DeleteCriteria = Union[DeleteByKey, DeleteByChain, DeleteByKeys]


class StoreSyncService:
    """Composes the inventory source, geocoder, repository and reconciler"""

    def __init__(
        self,
        repository: StoreRepository,
        geocoder: GeocoderClient,
        source: CijeneClient,
        reconciler: Optional[StoreReconciler] = None,
        redis_client: Optional[redis.Redis] = None,
        batch_limiter: Optional[BatchLimiter] = None,
    ):
        self.repository = repository
        self.geocoder = geocoder
        self.source = source
        self.reconciler = reconciler or StoreReconciler(repository, geocoder)
        self.redis = redis_client
        self.batch_limiter = batch_limiter or get_geocode_batch_limiter()

    async def get_stores(self, chain: str = ALL_CHAINS, sync: bool = False) -> SyncResult:
        """
        Load stores for `chain` ("all" or a chain code), backfill missing
        coordinates and, if `sync`, reconcile against the remote listing.

        Raises:
            SyncInProgressError: If a sync of an overlapping scope is running
            UpstreamError: If the remote listing cannot be fetched (nothing
                has been mutated by the sync step in that case)
            PersistenceError: If the database fails
        """
        chain_code = None if chain == ALL_CHAINS else chain

        records = await self.repository.list_all(chain_code)
        backfill = await self.backfill_coordinates(records)

        reconcile = None
        failed_chains: list[str] = []
        if sync:
            async with self._exclusive_sync(chain):
                listing = await self.source.fetch_listing(chain)
                local = await self.repository.list_all(chain_code)
                reconcile = await self.reconciler.reconcile(
                    listing.stores, local, skip_chains=listing.failed_chains
                )
            failed_chains = listing.failed_chains

        stores = await self.repository.list_all(chain_code)
        stats = StoreStats.from_records(stores)
        logger.info(
            f"[STORE_SYNC] chain={chain} sync={sync}: {stats.total} stores, "
            f"{stats.geocoded} geocoded, {stats.missing_coordinates} missing coordinates"
        )
        return SyncResult(
            stores=stores,
            stats=stats,
            backfill=backfill,
            reconcile=reconcile,
            failed_chains=failed_chains,
        )

    async def backfill_coordinates(self, records: Sequence[StoreRecord]) -> BackfillResult:
        """Geocode records without coordinates in batches and persist the hits"""
        missing = [record for record in records if not record.has_coordinates]
        result = BackfillResult(attempted=len(missing))
        if not missing:
            return result

        logger.info(f"[STORE_SYNC] Backfilling coordinates for {len(missing)} stores")

        async for batch in self.batch_limiter.batches(missing):
            found = []
            for record, outcome in await self.geocoder.geocode_batch(batch):
                if outcome.ok:
                    coordinate = outcome.coordinate
                    found.append(StoreCoordinates(record.chain_code, record.code, coordinate.lat, coordinate.lon))
                else:
                    result.geocode_failures += 1
            if found:
                result.updated += await self.repository.bulk_update_coordinates(found)

        logger.info(
            f"[STORE_SYNC] Backfill done: {result.updated}/{result.attempted} updated, "
            f"{result.geocode_failures} not geocoded"
        )
        return result

    async def delete_stores(self, criteria: DeleteCriteria) -> Union[bool, int]:
        """
        Delete by key (returns bool), by chain or by key list (return a count).
        """
        if isinstance(criteria, DeleteByKey):
            deleted = await self.repository.delete_by_key(criteria.chain_code, criteria.code)
            logger.info(f"[STORE_SYNC] Delete {criteria.chain_code}/{criteria.code}: {deleted}")
            return deleted
        if isinstance(criteria, DeleteByChain):
            count = await self.repository.delete_by_chain(criteria.chain_code)
            logger.info(f"[STORE_SYNC] Deleted {count} stores of chain {criteria.chain_code}")
            return count
        if isinstance(criteria, DeleteByKeys):
            count = await self.repository.delete_by_keys(criteria.keys)
            logger.info(f"[STORE_SYNC] Deleted {count}/{len(criteria.keys)} stores by key")
            return count
        raise TypeError(f"Unsupported delete criteria: {type(criteria).__name__}")

    @asynccontextmanager
    async def _exclusive_sync(self, scope: str) -> AsyncIterator[None]:
        if self.redis is None:
            logger.warning(f"[STORE_SYNC] Redis unavailable, syncing '{scope}' without a lock")
            yield
            return

        lock: Optional[SyncLock] = SyncLock(self.redis, scope)
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            logger.warning(f"[STORE_SYNC] Could not take sync lock for '{scope}' ({e}), continuing unlocked")
            lock, acquired = None, True

        if not acquired:
            raise SyncInProgressError(f"A store sync overlapping '{scope}' is already running")

        heartbeat = None
        if lock is not None:
            heartbeat = asyncio.create_task(lock.keep_alive(lock.ttl / 3))
        try:
            yield
        finally:
            if heartbeat is not None:
                heartbeat.cancel()
                await asyncio.gather(heartbeat, return_exceptions=True)
            if lock is not None:
                await lock.release()


def build_store_sync_service(db: Database, redis_client: Optional[redis.Redis] = None) -> StoreSyncService:
    """Wire a StoreSyncService with the default clients and limiters"""
    repository = StoreRepository(db)
    geocoder = GeocoderClient()
    return StoreSyncService(
        repository=repository,
        geocoder=geocoder,
        source=CijeneClient(),
        reconciler=StoreReconciler(repository, geocoder),
        redis_client=redis_client,
    )


async def periodic_store_sync(
    service: StoreSyncService,
    interval_minutes: Optional[int] = None,
    initial_delay: float = INITIAL_DELAY,
):
    """
    Background task that periodically runs a full sync.

    Runs until cancelled. A failed cycle is logged and the next one runs on
    schedule.
    """
    interval = (interval_minutes or settings.store_sync_interval_minutes) * 60
    logger.info(f"[STORE_SYNC] Starting periodic store sync (interval: {interval}s)")

    await asyncio.sleep(initial_delay)

    while True:
        try:
            result = await service.get_stores(ALL_CHAINS, sync=True)
            if result.reconcile:
                logger.info(f"[STORE_SYNC] Periodic sync: {result.reconcile.to_dict()}")
        except SyncInProgressError:
            logger.info("[STORE_SYNC] Another sync is running, skipping this cycle")
        except Exception as e:
            logger.error(f"[STORE_SYNC] Periodic sync failed: {e}", exc_info=True)

        logger.info(f"[STORE_SYNC] Next cycle in {interval}s")
        await asyncio.sleep(interval)
