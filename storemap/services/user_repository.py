"""
User repository - persistence for the users table.

Accounts are created by the identity provider; this service only reads them,
edits profile fields and removes them.
"""
import logging
import uuid
from typing import Optional, Sequence

from ..core.database import Database, affected_rows
from ..models.updates import UserUpdate, merge_columns
from ..models.user import User
from .store_repository import utcnow

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, email, name, image, image_blob, role, created_at, updated_at, last_login"

UPDATABLE_COLUMNS = frozenset({"name", "image", "image_blob"})


class UserRepository:
    def __init__(self, db: Database):
        self.db = db

    async def list_users(self) -> list[User]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch(f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC")
        return [User.from_row(row) for row in rows]

    async def get_profile(self, user_id: uuid.UUID) -> Optional[User]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(f"SELECT {USER_COLUMNS} FROM users WHERE id = $1", user_id)
        return User.from_row(row) if row else None

    async def update_profile(self, user_id: uuid.UUID, *updates: UserUpdate) -> Optional[User]:
        """
        Apply profile updates in order and bump updated_at.

        Returns:
            The updated user, or None if the user does not exist
        """
        values = merge_columns(updates)
        unknown = set(values) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update user columns: {sorted(unknown)}")

        columns = list(values)
        assignments = [f"{column} = ${index}" for index, column in enumerate(columns, start=2)]
        assignments.append(f"updated_at = ${len(columns) + 2}")

        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE users SET {', '.join(assignments)}
                WHERE id = $1
                RETURNING {USER_COLUMNS}
                """,
                user_id, *[values[c] for c in columns], utcnow()
            )
        return User.from_row(row) if row else None

    async def touch_last_login(self, user_id: uuid.UUID) -> bool:
        now = utcnow()
        async with self.db.acquire() as conn:
            result = await conn.execute(
                "UPDATE users SET last_login = $2, updated_at = $2 WHERE id = $1",
                user_id, now
            )
        return affected_rows(result) > 0

    async def delete_users(self, ids: Sequence[uuid.UUID]) -> int:
        if not ids:
            return 0
        async with self.db.acquire() as conn:
            result = await conn.execute("DELETE FROM users WHERE id = ANY($1::uuid[])", list(ids))
        deleted = affected_rows(result)
        logger.info(f"[USERS] Deleted {deleted}/{len(ids)} users")
        return deleted
