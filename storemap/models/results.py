"""Result values returned by best-effort operations and sync runs"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .store import Coordinate, Store, StoreKey, StoreRecord


class ErrorKind(str, Enum):
    """Why a best-effort sub-operation produced no value"""
    NO_RESULT = "no_result"
    NETWORK = "network"
    UPSTREAM_STATUS = "upstream_status"
    MALFORMED = "malformed"
    PERSISTENCE = "persistence"


@dataclass(frozen=True)
class GeocodeResult:
    """Outcome of one geocoder lookup"""
    coordinate: Optional[Coordinate] = None
    error: Optional[ErrorKind] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.coordinate is not None

    @classmethod
    def found(cls, coordinate: Coordinate) -> "GeocodeResult":
        return cls(coordinate=coordinate)

    @classmethod
    def failed(cls, error: ErrorKind, detail: Optional[str] = None) -> "GeocodeResult":
        return cls(error=error, detail=detail)


@dataclass
class RemoteListing:
    """Stores fetched from the inventory API, with the chains that failed"""
    stores: list[Store] = field(default_factory=list)
    failed_chains: list[str] = field(default_factory=list)


@dataclass
class StoreError:
    """A per-store failure recorded during a run"""
    key: StoreKey
    kind: ErrorKind
    detail: Optional[str] = None

    def to_dict(self) -> dict:
        return {**self.key.to_dict(), 'kind': self.kind.value, 'detail': self.detail}


@dataclass
class ReconcileResult:
    """Counts of rows actually persisted by a reconciliation run"""
    added: int = 0
    removed: int = 0
    updated: int = 0
    geocode_failures: int = 0
    errors: list[StoreError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'added': self.added,
            'removed': self.removed,
            'updated': self.updated,
            'geocode_failures': self.geocode_failures,
            'errors': [e.to_dict() for e in self.errors],
        }


@dataclass
class BackfillResult:
    attempted: int = 0
    updated: int = 0
    geocode_failures: int = 0

    def to_dict(self) -> dict:
        return {
            'attempted': self.attempted,
            'updated': self.updated,
            'geocode_failures': self.geocode_failures,
        }


@dataclass(frozen=True)
class StoreStats:
    total: int
    geocoded: int
    missing_coordinates: int

    @classmethod
    def from_records(cls, records: list[StoreRecord]) -> "StoreStats":
        geocoded = sum(1 for r in records if r.has_coordinates)
        return cls(total=len(records), geocoded=geocoded, missing_coordinates=len(records) - geocoded)

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'geocoded': self.geocoded,
            'missing_coordinates': self.missing_coordinates,
        }


@dataclass
class SyncResult:
    """What get_stores returns: the final records plus how they got there"""
    stores: list[StoreRecord]
    stats: StoreStats
    backfill: BackfillResult
    reconcile: Optional[ReconcileResult] = None
    failed_chains: list[str] = field(default_factory=list)
