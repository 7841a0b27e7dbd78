"""API schemas - Pydantic models for request/response validation"""

from .stores import (
    StoreKeySchema,
    StoreResponse,
    RemoteStoreResponse,
    StoreStatsResponse,
    BackfillSummary,
    StoreErrorResponse,
    SyncSummary,
    StoreListResponse,
    RemoteStoreListResponse,
    ChainListResponse,
    DeleteStoresRequest,
    DeleteStoresResponse,
    GeoJSONGeometry,
    GeoJSONFeature,
    GeoJSONFeatureCollection,
)
from .users import (
    UserResponse,
    UserListResponse,
    DeleteUsersRequest,
    DeleteUsersResponse,
    ProfileUpdateRequest,
    SuccessResponse,
)

__all__ = [
    # Stores
    "StoreKeySchema",
    "StoreResponse",
    "RemoteStoreResponse",
    "StoreStatsResponse",
    "BackfillSummary",
    "StoreErrorResponse",
    "SyncSummary",
    "StoreListResponse",
    "RemoteStoreListResponse",
    "ChainListResponse",
    "DeleteStoresRequest",
    "DeleteStoresResponse",
    "GeoJSONGeometry",
    "GeoJSONFeature",
    "GeoJSONFeatureCollection",
    # Users
    "UserResponse",
    "UserListResponse",
    "DeleteUsersRequest",
    "DeleteUsersResponse",
    "ProfileUpdateRequest",
    "SuccessResponse",
]
