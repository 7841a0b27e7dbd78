import asyncio
import asyncpg
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import logging

from fastapi import Request

from ..config import settings
from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the asyncpg connection pool.

    Constructed once by the application lifespan (or a script), opened with
    connect() and released with close(). Repositories receive it explicitly.

    Usage:
        db = Database()
        await db.connect()
        try:
            async with db.acquire() as conn:
                await conn.fetch("SELECT 1")
        finally:
            await db.close()
    """

    def __init__(
        self,
        dsn: Optional[str] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        command_timeout: Optional[float] = None,
    ):
        self.dsn = dsn or settings.database_url
        self.min_size = min_size if min_size is not None else settings.db_pool_min_size
        self.max_size = max_size if max_size is not None else settings.db_pool_max_size
        self.command_timeout = command_timeout if command_timeout is not None else settings.db_command_timeout
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> asyncpg.Pool:
        """Create the connection pool (idempotent)"""
        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncio.wait_for(
                asyncpg.create_pool(
                    dsn=self.dsn,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    command_timeout=self.command_timeout,
                ),
                timeout=30.0  # 30 second timeout for pool creation
            )
            logger.info(
                f"Database pool created: {settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db} "
                f"(min={self.min_size}, max={self.max_size})"
            )
            return self._pool
        except asyncio.TimeoutError:
            logger.error("Database pool creation timed out after 30 seconds")
            raise
        except Exception as e:
            logger.error(f"Failed to create database pool: {e}")
            raise

    async def close(self) -> None:
        """Close the connection pool"""
        if self._pool is not None:
            await self._pool.close()
            logger.info("Database pool closed")
            self._pool = None

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Acquire a connection for the duration of the block.

        The connection is always released. Driver and network failures are
        re-raised as PersistenceError.
        """
        if self._pool is None:
            raise PersistenceError("Database is not connected")

        try:
            async with self._pool.acquire() as connection:
                yield connection
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Database operation failed: {type(e).__name__}: {e}")
            raise PersistenceError(str(e)) from e


def get_database(request: Request) -> Database:
    """Dependency for getting the application's Database"""
    return request.app.state.db


def affected_rows(status: Optional[str]) -> int:
    """Parse the row count from an asyncpg command status such as 'UPDATE 3'"""
    if not status:
        return 0
    try:
        return int(status.split()[-1])
    except (ValueError, IndexError):
        return 0
