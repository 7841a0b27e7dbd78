"""
Store repository - persistence for the stores table.

The only component that writes stores. Every operation targets one identity
key or an explicit key set; (chain_code, code) is unique in the table.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from ..core.database import Database, affected_rows
from ..models.store import Store, StoreCoordinates, StoreKey, StoreRecord
from ..models.updates import StoreUpdate, merge_columns

logger = logging.getLogger(__name__)

STORE_COLUMNS = "chain_code, code, type, address, city, zipcode, lat, lon, created_at, updated_at"

# Columns a StoreUpdate may write
UPDATABLE_COLUMNS = frozenset({"type", "address", "city", "zipcode", "lat", "lon"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreRepository:
    """asyncpg-backed access to the stores table"""

    def __init__(self, db: Database):
        self.db = db

    async def find_by_key(self, chain_code: str, code: str) -> Optional[StoreRecord]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {STORE_COLUMNS} FROM stores WHERE chain_code = $1 AND code = $2",
                chain_code, code
            )
        return StoreRecord.from_row(row) if row else None

    async def list_all(self, chain_code: Optional[str] = None) -> list[StoreRecord]:
        """Every store, or only one chain's stores"""
        async with self.db.acquire() as conn:
            if chain_code:
                rows = await conn.fetch(
                    f"SELECT {STORE_COLUMNS} FROM stores WHERE chain_code = $1 ORDER BY chain_code, code",
                    chain_code
                )
            else:
                rows = await conn.fetch(
                    f"SELECT {STORE_COLUMNS} FROM stores ORDER BY chain_code, code"
                )
        return [StoreRecord.from_row(row) for row in rows]

    async def list_geocoded(self, chain_code: Optional[str] = None) -> list[StoreRecord]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {STORE_COLUMNS} FROM stores
                WHERE lat IS NOT NULL AND lon IS NOT NULL
                  AND ($1::text IS NULL OR chain_code = $1)
                ORDER BY chain_code, code
                """,
                chain_code
            )
        return [StoreRecord.from_row(row) for row in rows]

    async def create(self, store: Store) -> StoreRecord:
        """Insert one store; created_at and updated_at are set to now"""
        now = utcnow()
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO stores (chain_code, code, type, address, city, zipcode, lat, lon, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $9)
                RETURNING {STORE_COLUMNS}
                """,
                store.chain_code, store.code, store.type, store.address,
                store.city, store.zipcode, store.lat, store.lon, now
            )
        return StoreRecord.from_row(row)

    async def update(self, chain_code: str, code: str, *updates: StoreUpdate) -> Optional[StoreRecord]:
        """
        Apply typed updates to one store and bump updated_at.

        Returns:
            The updated record, or None if no store has this key (nothing is inserted)
        """
        values = merge_columns(updates)
        unknown = set(values) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update store columns: {sorted(unknown)}")

        columns = list(values)
        assignments = [f"{column} = ${index}" for index, column in enumerate(columns, start=3)]
        assignments.append(f"updated_at = ${len(columns) + 3}")

        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE stores SET {', '.join(assignments)}
                WHERE chain_code = $1 AND code = $2
                RETURNING {STORE_COLUMNS}
                """,
                chain_code, code, *[values[c] for c in columns], utcnow()
            )
        return StoreRecord.from_row(row) if row else None

    async def bulk_create(self, stores: Sequence[Store]) -> int:
        """
        Insert many stores with one shared timestamp.

        Stores whose key already exists are skipped.

        Returns:
            Number of rows actually inserted
        """
        if not stores:
            return 0

        now = utcnow()
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                """
                INSERT INTO stores (chain_code, code, type, address, city, zipcode, lat, lon, created_at, updated_at)
                SELECT s.chain_code, s.code, s.type, s.address, s.city, s.zipcode, s.lat, s.lon, $9, $9
                FROM unnest($1::text[], $2::text[], $3::text[], $4::text[], $5::text[], $6::text[],
                            $7::float8[], $8::float8[])
                     AS s(chain_code, code, type, address, city, zipcode, lat, lon)
                ON CONFLICT (chain_code, code) DO NOTHING
                RETURNING 1
                """,
                [s.chain_code for s in stores],
                [s.code for s in stores],
                [s.type for s in stores],
                [s.address for s in stores],
                [s.city for s in stores],
                [s.zipcode for s in stores],
                [s.lat for s in stores],
                [s.lon for s in stores],
                now
            )
        inserted = len(rows)
        if inserted < len(stores):
            logger.warning(f"[STORES] bulk_create skipped {len(stores) - inserted} existing stores")
        return inserted

    async def bulk_update_coordinates(self, updates: Sequence[StoreCoordinates]) -> int:
        """
        Write coordinates for many stores.

        Returns:
            Number of rows modified. Unknown keys and rows that already hold
            the same coordinates are not counted.
        """
        if not updates:
            return 0

        async with self.db.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE stores AS s
                SET lat = u.lat, lon = u.lon, updated_at = $5
                FROM unnest($1::text[], $2::text[], $3::float8[], $4::float8[])
                     AS u(chain_code, code, lat, lon)
                WHERE s.chain_code = u.chain_code
                  AND s.code = u.code
                  AND (s.lat IS DISTINCT FROM u.lat OR s.lon IS DISTINCT FROM u.lon)
                """,
                [u.chain_code for u in updates],
                [u.code for u in updates],
                [u.lat for u in updates],
                [u.lon for u in updates],
                utcnow()
            )
        return affected_rows(result)

    async def delete_by_key(self, chain_code: str, code: str) -> bool:
        async with self.db.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM stores WHERE chain_code = $1 AND code = $2",
                chain_code, code
            )
        return affected_rows(result) > 0

    async def delete_by_chain(self, chain_code: str) -> int:
        async with self.db.acquire() as conn:
            result = await conn.execute("DELETE FROM stores WHERE chain_code = $1", chain_code)
        return affected_rows(result)

    async def delete_by_keys(self, keys: Iterable[StoreKey]) -> int:
        keys = list(keys)
        if not keys:
            return 0

        async with self.db.acquire() as conn:
            result = await conn.execute(
                """
                DELETE FROM stores AS s
                USING unnest($1::text[], $2::text[]) AS k(chain_code, code)
                WHERE s.chain_code = k.chain_code AND s.code = k.code
                """,
                [key.chain_code for key in keys],
                [key.code for key in keys]
            )
        return affected_rows(result)
