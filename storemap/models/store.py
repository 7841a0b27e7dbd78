from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Mapping, NamedTuple, Optional


class StoreKey(NamedTuple):
    """Identity of a physical store: unique across all chains"""
    chain_code: str
    code: str

    def to_dict(self) -> dict:
        return {'chain_code': self.chain_code, 'code': self.code}


@dataclass(frozen=True)
class Coordinate:
    """WGS84 decimal degrees as returned by the geocoder"""
    lat: float
    lon: float


def _coordinate_fields(lat: Optional[float], lon: Optional[float]) -> tuple[Optional[float], Optional[float]]:
    """Both-or-neither: a half coordinate is dropped entirely"""
    if lat is None or lon is None:
        return None, None
    return float(lat), float(lon)


@dataclass(frozen=True)
class Store:
    """Store as listed by the inventory API"""
    chain_code: str
    code: str
    type: str
    address: str
    city: str
    zipcode: str
    lat: Optional[float] = None
    lon: Optional[float] = None

    def __post_init__(self):
        lat, lon = _coordinate_fields(self.lat, self.lon)
        object.__setattr__(self, 'lat', lat)
        object.__setattr__(self, 'lon', lon)

    @property
    def key(self) -> StoreKey:
        return StoreKey(self.chain_code, self.code)

    @property
    def coordinate(self) -> Optional[Coordinate]:
        if self.lat is None:
            return None
        return Coordinate(self.lat, self.lon)

    def with_coordinate(self, coordinate: Optional[Coordinate]) -> "Store":
        if coordinate is None:
            return replace(self, lat=None, lon=None)
        return replace(self, lat=coordinate.lat, lon=coordinate.lon)

    @classmethod
    def from_api(cls, data: Mapping[str, Any], chain_code: Optional[str] = None) -> "Store":
        """Create Store from an inventory API payload item"""
        return cls(
            chain_code=str(data.get('chain_code') or chain_code or ''),
            code=str(data['code']),
            type=data.get('type') or '',
            address=data.get('address') or '',
            city=data.get('city') or '',
            zipcode=str(data.get('zipcode') or ''),
            lat=data.get('lat'),
            lon=data.get('lon'),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'chain_code': self.chain_code,
            'code': self.code,
            'type': self.type,
            'address': self.address,
            'city': self.city,
            'zipcode': self.zipcode,
            'lat': self.lat,
            'lon': self.lon,
        }


@dataclass(frozen=True)
class StoreRecord(Store):
    """Store as persisted in the stores table"""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "StoreRecord":
        """Create StoreRecord from database row"""
        return cls(
            chain_code=row['chain_code'],
            code=row['code'],
            type=row['type'] or '',
            address=row['address'] or '',
            city=row['city'] or '',
            zipcode=row['zipcode'] or '',
            lat=row['lat'],
            lon=row['lon'],
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['created_at'] = self.created_at.isoformat() if self.created_at else None
        data['updated_at'] = self.updated_at.isoformat() if self.updated_at else None
        return data


class StoreCoordinates(NamedTuple):
    """Coordinates to write for one store in a bulk update"""
    chain_code: str
    code: str
    lat: float
    lon: float

    @property
    def key(self) -> StoreKey:
        return StoreKey(self.chain_code, self.code)
