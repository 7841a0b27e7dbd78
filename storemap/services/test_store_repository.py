"""
Tests for the asyncpg store repository and the Database wrapper.

Run with: pytest storemap/services/test_store_repository.py -v
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

from conftest import make_store
from ..core.database import Database, affected_rows
from ..core.exceptions import PersistenceError
from ..models.store import Coordinate, StoreCoordinates, StoreKey
from ..models.updates import AddressUpdate, CoordinateUpdate
from .store_repository import StoreRepository


NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def store_row(**overrides):
    row = {
        "chain_code": "konzum", "code": "1", "type": "supermarket", "address": "Ilica 1",
        "city": "Zagreb", "zipcode": "10000", "lat": None, "lon": None,
        "created_at": NOW, "updated_at": NOW,
    }
    row.update(overrides)
    return row


class FakeDatabase:
    def __init__(self):
        self.conn = AsyncMock()
        self.acquired = 0

    @asynccontextmanager
    async def acquire(self):
        self.acquired += 1
        yield self.conn


class TestAffectedRows:

    @pytest.mark.parametrize("status,expected", [
        ("UPDATE 3", 3),
        ("DELETE 0", 0),
        ("INSERT 0 5", 5),
        ("", 0),
        (None, 0),
        ("garbage", 0),
    ])
    def test_parse(self, status, expected):
        assert affected_rows(status) == expected


@pytest.mark.asyncio
class TestStoreRepository:

    async def test_find_by_key_returns_record(self):
        db = FakeDatabase()
        db.conn.fetchrow.return_value = store_row(lat=45.8, lon=15.9)

        record = await StoreRepository(db).find_by_key("konzum", "1")

        assert record.key == StoreKey("konzum", "1")
        assert record.coordinate == Coordinate(45.8, 15.9)
        assert db.conn.fetchrow.await_args.args[1:] == ("konzum", "1")

    async def test_find_by_key_missing(self):
        db = FakeDatabase()
        db.conn.fetchrow.return_value = None

        assert await StoreRepository(db).find_by_key("konzum", "404") is None

    async def test_list_all_filters_by_chain(self):
        db = FakeDatabase()
        db.conn.fetch.return_value = [store_row()]

        records = await StoreRepository(db).list_all("konzum")

        assert len(records) == 1
        query, chain = db.conn.fetch.await_args.args
        assert "WHERE chain_code = $1" in query
        assert chain == "konzum"

    async def test_create_stamps_both_timestamps(self):
        db = FakeDatabase()
        db.conn.fetchrow.return_value = store_row()

        record = await StoreRepository(db).create(make_store(code="1"))

        query, *params = db.conn.fetchrow.await_args.args
        assert "VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $9)" in query
        assert params[:8] == ["konzum", "1", "supermarket", "Ilica 1", "Zagreb", "10000", None, None]
        assert params[8].tzinfo is not None
        assert record.key == StoreKey("konzum", "1")

    async def test_update_writes_only_given_columns(self):
        db = FakeDatabase()
        db.conn.fetchrow.return_value = store_row(address="Ilica 2", lat=1.0, lon=2.0)

        record = await StoreRepository(db).update(
            "konzum", "1",
            AddressUpdate(address="Ilica 2", city="Zagreb", zipcode="10000"),
            CoordinateUpdate(Coordinate(1.0, 2.0)),
        )

        query, *params = db.conn.fetchrow.await_args.args
        assert "address = $3, city = $4, zipcode = $5, lat = $6, lon = $7, updated_at = $8" in query
        assert params[:7] == ["konzum", "1", "Ilica 2", "Zagreb", "10000", 1.0, 2.0]
        assert "INSERT" not in query
        assert record.address == "Ilica 2"

    async def test_update_clearing_coordinates_sets_both_null(self):
        db = FakeDatabase()
        db.conn.fetchrow.return_value = store_row()

        await StoreRepository(db).update("konzum", "1", CoordinateUpdate(None))

        query, *params = db.conn.fetchrow.await_args.args
        assert "lat = $3, lon = $4" in query
        assert params[2:4] == [None, None]

    async def test_update_missing_store_returns_none(self):
        db = FakeDatabase()
        db.conn.fetchrow.return_value = None

        assert await StoreRepository(db).update("konzum", "404", CoordinateUpdate(None)) is None

    async def test_update_rejects_identity_columns(self):
        class RenameCode:
            def columns(self):
                return {"code": "2"}

        db = FakeDatabase()
        with pytest.raises(ValueError):
            await StoreRepository(db).update("konzum", "1", RenameCode())
        assert db.acquired == 0

    async def test_bulk_create_counts_inserted_rows(self):
        db = FakeDatabase()
        db.conn.fetch.return_value = [{"?column?": 1}]

        inserted = await StoreRepository(db).bulk_create([make_store(code="1"), make_store(code="2")])

        assert inserted == 1
        query, *params = db.conn.fetch.await_args.args
        assert "ON CONFLICT (chain_code, code) DO NOTHING" in query
        assert params[1] == ["1", "2"]

    async def test_bulk_update_coordinates_counts_modified_rows(self):
        db = FakeDatabase()
        db.conn.execute.return_value = "UPDATE 1"

        modified = await StoreRepository(db).bulk_update_coordinates([
            StoreCoordinates("konzum", "1", 45.8, 15.9),
            StoreCoordinates("konzum", "does-not-exist", 45.0, 16.0),
        ])

        assert modified == 1
        query, *params = db.conn.execute.await_args.args
        normalized = " ".join(query.split())
        # Joined on the identity key, so unknown keys match no row and are never inserted
        assert normalized.startswith("UPDATE stores AS s")
        assert "WHERE s.chain_code = u.chain_code AND s.code = u.code" in normalized
        assert "(s.lat IS DISTINCT FROM u.lat OR s.lon IS DISTINCT FROM u.lon)" in normalized
        assert "INSERT" not in normalized and "ON CONFLICT" not in normalized
        assert params[:4] == [["konzum", "konzum"], ["1", "does-not-exist"], [45.8, 45.0], [15.9, 16.0]]

    async def test_empty_bulk_operations_skip_the_database(self):
        db = FakeDatabase()
        repository = StoreRepository(db)

        assert await repository.bulk_create([]) == 0
        assert await repository.bulk_update_coordinates([]) == 0
        assert await repository.delete_by_keys([]) == 0
        assert db.acquired == 0

    async def test_delete_by_key(self):
        db = FakeDatabase()
        db.conn.execute.side_effect = ["DELETE 1", "DELETE 0"]
        repository = StoreRepository(db)

        assert await repository.delete_by_key("konzum", "1") is True
        assert await repository.delete_by_key("konzum", "1") is False

    async def test_delete_by_chain_and_keys_return_counts(self):
        db = FakeDatabase()
        db.conn.execute.side_effect = ["DELETE 4", "DELETE 2"]
        repository = StoreRepository(db)

        assert await repository.delete_by_chain("konzum") == 4
        assert await repository.delete_by_keys([StoreKey("konzum", "1"), StoreKey("spar", "1")]) == 2
        _, chain_codes, codes = db.conn.execute.await_args.args
        assert chain_codes == ["konzum", "spar"]
        assert codes == ["1", "1"]


@pytest.mark.asyncio
class TestDatabase:

    async def test_acquire_before_connect_raises(self):
        db = Database(dsn="postgresql://unused")

        with pytest.raises(PersistenceError):
            async with db.acquire():
                pass

    async def test_driver_errors_become_persistence_errors(self):
        conn = AsyncMock()
        conn.fetchval.side_effect = asyncpg.InterfaceError("connection is closed")

        @asynccontextmanager
        async def pool_acquire():
            yield conn

        db = Database(dsn="postgresql://unused")
        db._pool = MagicMock()
        db._pool.acquire = pool_acquire

        with pytest.raises(PersistenceError):
            async with db.acquire() as connection:
                await connection.fetchval("SELECT 1")
