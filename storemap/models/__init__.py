"""Domain models - dataclasses for stores, users and sync results"""

from .store import Coordinate, Store, StoreCoordinates, StoreKey, StoreRecord
from .user import User
from .updates import (
    AddressUpdate,
    CoordinateUpdate,
    StoreUpdate,
    UsernameUpdate,
    SetImageUrl,
    SetImageBlob,
    ClearImage,
    ImageUpdate,
    UserUpdate,
)
from .results import (
    ErrorKind,
    GeocodeResult,
    RemoteListing,
    StoreError,
    ReconcileResult,
    BackfillResult,
    StoreStats,
    SyncResult,
)

__all__ = [
    "Coordinate",
    "Store",
    "StoreKey",
    "StoreCoordinates",
    "StoreRecord",
    "User",
    "AddressUpdate",
    "CoordinateUpdate",
    "StoreUpdate",
    "UsernameUpdate",
    "SetImageUrl",
    "SetImageBlob",
    "ClearImage",
    "ImageUpdate",
    "UserUpdate",
    "ErrorKind",
    "GeocodeResult",
    "RemoteListing",
    "StoreError",
    "ReconcileResult",
    "BackfillResult",
    "StoreStats",
    "SyncResult",
]
