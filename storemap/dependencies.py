from fastapi import Depends, Header, Request  # pyright: ignore[reportMissingImports]
from typing import Optional
import uuid

from .core.database import Database, get_database
from .core.security import decode_access_token
from .core.exceptions import AuthenticationError, DatabaseUnavailableError, PersistenceError
from .models.user import User
from .services.cijene_api import CijeneClient
from .services.geocoding import GeocoderClient
from .services.reconciliation import StoreReconciler
from .services.store_repository import StoreRepository
from .services.store_sync_service import StoreSyncService
from .services.user_repository import UserRepository
import redis.asyncio as redis  # pyright: ignore[reportMissingImports]


def get_store_repository(db: Database = Depends(get_database)) -> StoreRepository:
    return StoreRepository(db)


def get_user_repository(db: Database = Depends(get_database)) -> UserRepository:
    return UserRepository(db)


def get_geocoder() -> GeocoderClient:
    return GeocoderClient()


def get_cijene_client() -> CijeneClient:
    return CijeneClient()


def get_redis_client(request: Request) -> Optional[redis.Redis]:
    """Redis client opened at startup, or None if Redis was unreachable"""
    return getattr(request.app.state, "redis", None)


def get_sync_service(
    repository: StoreRepository = Depends(get_store_repository),
    geocoder: GeocoderClient = Depends(get_geocoder),
    source: CijeneClient = Depends(get_cijene_client),
    redis_client: Optional[redis.Redis] = Depends(get_redis_client),
) -> StoreSyncService:
    return StoreSyncService(
        repository=repository,
        geocoder=geocoder,
        source=source,
        reconciler=StoreReconciler(repository, geocoder),
        redis_client=redis_client,
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
    users: UserRepository = Depends(get_user_repository)
) -> User:
    """Dependency to get current authenticated user"""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid authorization header")

    token = authorization.replace("Bearer ", "")
    payload = decode_access_token(token)

    if not payload:
        raise AuthenticationError("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    # Parse UUID with error handling
    try:
        user_uuid = uuid.UUID(user_id)
    except (ValueError, TypeError):
        raise AuthenticationError("Invalid user ID format in token")

    try:
        user = await users.get_profile(user_uuid)
    except PersistenceError as e:
        raise DatabaseUnavailableError(e)
    if not user:
        raise AuthenticationError("User not found")

    return user
