"""
Store reconciliation - converge the local mirror onto the remote listing.

The diff is keyed by (chain_code, code) and computed in linear time:
- to_add:    remote keys absent locally
- to_remove: local keys absent remotely
- to_update: keys on both sides whose address, city or zipcode differ

Coordinates never take part in the comparison. Applying a diff removes
first, then geocodes and inserts new stores in batches, then re-geocodes and
updates changed stores one at a time. A failure on one store is recorded and
the run continues; the returned counts are rows actually written.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from ..core.exceptions import PersistenceError
from ..core.rate_limiter import BatchLimiter, get_geocode_batch_limiter, get_geocode_update_limiter
from ..models.results import ErrorKind, ReconcileResult, StoreError
from ..models.store import Store, StoreKey, StoreRecord
from ..models.updates import AddressUpdate, CoordinateUpdate
from .geocoding import GeocoderClient
from .store_repository import StoreRepository

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("address", "city", "zipcode")


@dataclass
class StoreDiff:
    to_add: list[Store] = field(default_factory=list)
    to_update: list[tuple[Store, StoreRecord]] = field(default_factory=list)  # (remote, local)
    to_remove: list[StoreKey] = field(default_factory=list)
    unchanged: list[StoreKey] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_add or self.to_update or self.to_remove)


def address_changed(remote: Store, local: Store) -> bool:
    return any(getattr(remote, name) != getattr(local, name) for name in ADDRESS_FIELDS)


def diff_stores(api_stores: Iterable[Store], db_stores: Iterable[StoreRecord]) -> StoreDiff:
    """
    Split remote and local stores into add / update / remove / unchanged sets.

    If the remote listing repeats a key, the last occurrence wins.
    """
    remote_by_key = {store.key: store for store in api_stores}
    local_by_key = {store.key: store for store in db_stores}

    diff = StoreDiff()
    for key, remote in remote_by_key.items():
        local = local_by_key.get(key)
        if local is None:
            diff.to_add.append(remote)
        elif address_changed(remote, local):
            diff.to_update.append((remote, local))
        else:
            diff.unchanged.append(key)

    diff.to_remove = [key for key in local_by_key if key not in remote_by_key]
    return diff


class StoreReconciler:
    """Applies a StoreDiff through the repository. Holds no state between runs."""

    def __init__(
        self,
        repository: StoreRepository,
        geocoder: GeocoderClient,
        batch_limiter: Optional[BatchLimiter] = None,
        update_limiter: Optional[BatchLimiter] = None,
    ):
        self.repository = repository
        self.geocoder = geocoder
        self.batch_limiter = batch_limiter or get_geocode_batch_limiter()
        self.update_limiter = update_limiter or get_geocode_update_limiter()

    async def reconcile(
        self,
        api_stores: Sequence[Store],
        db_stores: Sequence[StoreRecord],
        skip_chains: Iterable[str] = (),
    ) -> ReconcileResult:
        """
        Diff and apply.

        Args:
            api_stores: Remote listing (source of truth)
            db_stores: Local records in the same scope as the listing
            skip_chains: Chains whose remote listing failed; their local
                stores are not removed

        Raises:
            PersistenceError: If the bulk delete or bulk insert fails
        """
        diff = diff_stores(api_stores, db_stores)
        result = ReconcileResult()

        logger.info(
            f"[RECONCILE] remote={len(api_stores)} local={len(db_stores)}: "
            f"{len(diff.to_add)} to add, {len(diff.to_update)} to update, "
            f"{len(diff.to_remove)} to remove, {len(diff.unchanged)} unchanged"
        )

        result.removed = await self._apply_removals(diff.to_remove, set(skip_chains))
        result.added = await self._apply_additions(diff.to_add, result)
        result.updated = await self._apply_updates(diff.to_update, result)

        logger.info(
            f"[RECONCILE] Done: {result.added} added, {result.updated} updated, "
            f"{result.removed} removed, {result.geocode_failures} geocode failures, "
            f"{len(result.errors)} errors"
        )
        return result

    async def _apply_removals(self, keys: list[StoreKey], skip_chains: set[str]) -> int:
        if skip_chains:
            kept = [key for key in keys if key.chain_code in skip_chains]
            if kept:
                logger.warning(
                    f"[RECONCILE] Keeping {len(kept)} stores of unreachable chains: {sorted(skip_chains)}"
                )
            keys = [key for key in keys if key.chain_code not in skip_chains]
        if not keys:
            return 0
        return await self.repository.delete_by_keys(keys)

    async def _apply_additions(self, stores: list[Store], result: ReconcileResult) -> int:
        if not stores:
            return 0

        geocoded: list[Store] = []
        async for batch in self.batch_limiter.batches(stores):
            for store, outcome in await self.geocoder.geocode_batch(batch):
                if not outcome.ok:
                    result.geocode_failures += 1
                geocoded.append(store)

        return await self.repository.bulk_create(geocoded)

    async def _apply_updates(self, pairs: list[tuple[Store, StoreRecord]], result: ReconcileResult) -> int:
        updated = 0
        async for batch in self.update_limiter.batches(pairs):
            for remote, local in batch:
                if await self._update_one(remote, local, result):
                    updated += 1
        return updated

    async def _update_one(self, remote: Store, local: StoreRecord, result: ReconcileResult) -> bool:
        key = remote.key
        try:
            outcome = await self.geocoder.geocode(remote.address, remote.city)
            if not outcome.ok:
                result.geocode_failures += 1

            record = await self.repository.update(
                key.chain_code,
                key.code,
                AddressUpdate(address=remote.address, city=remote.city, zipcode=remote.zipcode, type=remote.type),
                CoordinateUpdate(outcome.coordinate),
            )
            if record is None:
                logger.warning(f"[RECONCILE] {key.chain_code}/{key.code} vanished before update")
                result.errors.append(StoreError(key, ErrorKind.PERSISTENCE, "store not found"))
                return False

            logger.debug(
                f"[RECONCILE] Updated {key.chain_code}/{key.code}: "
                f"'{local.address}, {local.city}' -> '{remote.address}, {remote.city}'"
            )
            return True

        except PersistenceError as e:
            logger.warning(f"[RECONCILE] Failed to update {key.chain_code}/{key.code}: {e}")
            result.errors.append(StoreError(key, ErrorKind.PERSISTENCE, str(e)))
            return False
        except Exception as e:
            logger.error(f"[RECONCILE] Unexpected error updating {key.chain_code}/{key.code}: {e}", exc_info=True)
            result.errors.append(StoreError(key, ErrorKind.PERSISTENCE, str(e)))
            return False
