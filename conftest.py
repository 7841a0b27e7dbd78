"""
Shared pytest fixtures.

Settings are read at import time, so the environment is prepared here before
any storemap module is imported.
"""
import asyncio
import fnmatch
import os
import tempfile
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest-only-0123456789")
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "storemap-test.log"))
os.environ.setdefault("CIJENE_API_TOKEN", "test-token")

import pytest
from redis.exceptions import LockError, LockNotOwnedError

from storemap.core.exceptions import PersistenceError, UpstreamError
from storemap.core.rate_limiter import BatchLimiter
from storemap.models.results import ErrorKind, GeocodeResult, RemoteListing
from storemap.models.store import Coordinate, Store, StoreKey, StoreRecord
from storemap.models.updates import merge_columns
from storemap.services.geocoding import GeocoderClient


def make_store(chain_code="konzum", code="1", address="Ilica 1", city="Zagreb", zipcode="10000",
               type="supermarket", lat=None, lon=None) -> Store:
    return Store(chain_code=chain_code, code=code, type=type, address=address,
                 city=city, zipcode=zipcode, lat=lat, lon=lon)


def make_record(chain_code="konzum", code="1", address="Ilica 1", city="Zagreb", zipcode="10000",
                type="supermarket", lat=None, lon=None) -> StoreRecord:
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return StoreRecord(chain_code=chain_code, code=code, type=type, address=address, city=city,
                       zipcode=zipcode, lat=lat, lon=lon, created_at=now, updated_at=now)


class FakeStoreRepository:
    """In-memory StoreRepository with the same counting semantics"""

    def __init__(self, records: Iterable[StoreRecord] = ()):
        self.rows: dict[StoreKey, StoreRecord] = {r.key: r for r in records}
        self.calls: list[str] = []
        self.fail_updates: set[StoreKey] = set()

    async def find_by_key(self, chain_code, code) -> Optional[StoreRecord]:
        return self.rows.get(StoreKey(chain_code, code))

    async def list_all(self, chain_code=None) -> list[StoreRecord]:
        self.calls.append("list_all")
        return sorted(
            (r for r in self.rows.values() if chain_code is None or r.chain_code == chain_code),
            key=lambda r: r.key,
        )

    async def list_geocoded(self, chain_code=None) -> list[StoreRecord]:
        return [r for r in await self.list_all(chain_code) if r.has_coordinates]

    async def create(self, store: Store) -> StoreRecord:
        record = make_record(**store.to_dict())
        self.rows[record.key] = record
        return record

    async def update(self, chain_code, code, *updates) -> Optional[StoreRecord]:
        self.calls.append("update")
        key = StoreKey(chain_code, code)
        if key in self.fail_updates:
            raise PersistenceError("connection reset")
        current = self.rows.get(key)
        if current is None:
            return None
        values = {**current.to_dict(), **merge_columns(updates)}
        values.pop("created_at", None)
        values.pop("updated_at", None)
        record = make_record(**values)
        self.rows[key] = record
        return record

    async def bulk_create(self, stores) -> int:
        self.calls.append("bulk_create")
        inserted = 0
        for store in stores:
            if store.key not in self.rows:
                self.rows[store.key] = make_record(**store.to_dict())
                inserted += 1
        return inserted

    async def bulk_update_coordinates(self, updates) -> int:
        self.calls.append("bulk_update_coordinates")
        modified = 0
        for u in updates:
            current = self.rows.get(u.key)
            if current is None or (current.lat, current.lon) == (u.lat, u.lon):
                continue
            self.rows[u.key] = current.with_coordinate(Coordinate(u.lat, u.lon))
            modified += 1
        return modified

    async def delete_by_key(self, chain_code, code) -> bool:
        self.calls.append("delete_by_key")
        return self.rows.pop(StoreKey(chain_code, code), None) is not None

    async def delete_by_chain(self, chain_code) -> int:
        self.calls.append("delete_by_chain")
        keys = [k for k in self.rows if k.chain_code == chain_code]
        for key in keys:
            del self.rows[key]
        return len(keys)

    async def delete_by_keys(self, keys) -> int:
        self.calls.append("delete_by_keys")
        return sum(1 for key in list(keys) if self.rows.pop(key, None) is not None)


class FakeGeocoder(GeocoderClient):
    """
    Geocoder answering from a dict keyed by (address, city).

    Unknown addresses get NO_RESULT. Tracks calls and peak concurrency.
    """

    def __init__(self, coordinates: Optional[dict] = None, failing: Iterable[tuple] = ()):
        super().__init__(client=object(), base_url="http://geocoder.test/api/", country="Croatia")
        self.coordinates = coordinates or {}
        self.failing = set(failing)
        self.calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def geocode(self, address: str, city: str) -> GeocodeResult:
        self.calls.append((address, city))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if (address, city) in self.failing:
                return GeocodeResult.failed(ErrorKind.NETWORK, "boom")
            coordinate = self.coordinates.get((address, city))
            if coordinate is None:
                return GeocodeResult.failed(ErrorKind.NO_RESULT)
            return GeocodeResult.found(coordinate)
        finally:
            self.in_flight -= 1


class FakeSource:
    """Remote store source returning a fixed listing"""

    def __init__(self, stores: Iterable[Store] = (), failed_chains: Iterable[str] = (), error: Optional[Exception] = None):
        self.stores = list(stores)
        self.failed_chains = list(failed_chains)
        self.error = error
        self.requested: list[str] = []

    async def fetch_listing(self, chain="all") -> RemoteListing:
        self.requested.append(chain)
        if self.error is not None:
            raise self.error
        stores = [s for s in self.stores if chain == "all" or s.chain_code == chain]
        return RemoteListing(stores=stores, failed_chains=list(self.failed_chains))

    async def list_chains(self) -> list[str]:
        if self.error is not None:
            raise self.error
        return sorted({s.chain_code for s in self.stores})


class FakeRedisLock:
    """Mirrors redis.asyncio.lock.Lock: token-owned SET NX key, non-blocking"""

    def __init__(self, client, name, timeout):
        self.client = client
        self.name = name
        self.timeout = timeout
        self.token = None

    async def acquire(self):
        token = uuid.uuid4().hex
        if await self.client.set(self.name, token, nx=True, ex=self.timeout):
            self.token = token
            return True
        return False

    async def extend(self, additional_time, replace_ttl=False):
        await asyncio.sleep(0)
        if self.token is None or self.client.data.get(self.name) != self.token:
            raise LockNotOwnedError("Cannot extend a lock that's no longer owned")
        self.client.ttls[self.name] = additional_time
        self.client.extensions += 1

    async def release(self):
        token, self.token = self.token, None
        if token is None:
            raise LockError("Cannot release an unlocked lock")
        await asyncio.sleep(0)
        if self.client.data.get(self.name) != token:
            raise LockNotOwnedError("Cannot release a lock that's no longer owned")
        del self.client.data[self.name]


class FakeRedis:
    """
    Just enough of redis.asyncio.Redis for SyncLock. Every call yields to the
    event loop once, so concurrent lock attempts interleave like real I/O.
    """

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.extensions = 0

    def lock(self, name, timeout=None, blocking=True):
        return FakeRedisLock(self, name, timeout)

    async def set(self, key, value, nx=False, ex=None):
        await asyncio.sleep(0)
        if nx and key in self.data:
            return None
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def exists(self, key):
        await asyncio.sleep(0)
        return int(key in self.data)

    async def scan_iter(self, match=None):
        await asyncio.sleep(0)
        for key in list(self.data):
            if match is None or fnmatch.fnmatch(key, match):
                yield key


@pytest.fixture
def batch_limiter():
    return BatchLimiter(batch_size=5, interval=0)


@pytest.fixture
def update_limiter():
    return BatchLimiter(batch_size=1, interval=0)


@pytest.fixture
def upstream_down():
    return UpstreamError("HTTP 503: unavailable")
