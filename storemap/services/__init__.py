"""Services - business logic layer"""

from .geocoding import GeocoderClient
from .cijene_api import ALL_CHAINS, CijeneClient
from .store_repository import StoreRepository
from .reconciliation import StoreDiff, StoreReconciler, diff_stores
from .store_sync_service import (
    StoreSyncService,
    DeleteByKey,
    DeleteByChain,
    DeleteByKeys,
    DeleteCriteria,
    build_store_sync_service,
    periodic_store_sync,
)
from .user_repository import UserRepository

__all__ = [
    # Upstream clients
    "GeocoderClient",
    "ALL_CHAINS",
    "CijeneClient",
    # Stores
    "StoreRepository",
    "StoreDiff",
    "StoreReconciler",
    "diff_stores",
    "StoreSyncService",
    "DeleteByKey",
    "DeleteByChain",
    "DeleteByKeys",
    "DeleteCriteria",
    "build_store_sync_service",
    "periodic_store_sync",
    # Users
    "UserRepository",
]
