"""
Typed update payloads.

Each update knows which columns it writes. Repositories translate a sequence
of updates into a single SET clause, so callers never pass raw dicts.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .store import Coordinate


@dataclass(frozen=True)
class AddressUpdate:
    """New address fields from the inventory API"""
    address: str
    city: str
    zipcode: str
    type: Optional[str] = None

    def columns(self) -> dict:
        values = {'address': self.address, 'city': self.city, 'zipcode': self.zipcode}
        if self.type is not None:
            values['type'] = self.type
        return values


@dataclass(frozen=True)
class CoordinateUpdate:
    """Coordinates after a geocode attempt; None clears both columns"""
    coordinate: Optional[Coordinate]

    def columns(self) -> dict:
        if self.coordinate is None:
            return {'lat': None, 'lon': None}
        return {'lat': self.coordinate.lat, 'lon': self.coordinate.lon}


StoreUpdate = Union[AddressUpdate, CoordinateUpdate]


@dataclass(frozen=True)
class UsernameUpdate:
    name: str

    def columns(self) -> dict:
        return {'name': self.name}


@dataclass(frozen=True)
class SetImageUrl:
    """External avatar URL; replaces any uploaded blob"""
    url: Optional[str]

    def columns(self) -> dict:
        return {'image': self.url or None, 'image_blob': None}


@dataclass(frozen=True)
class SetImageBlob:
    """Uploaded avatar bytes; replaces any URL"""
    blob: bytes

    def columns(self) -> dict:
        return {'image': None, 'image_blob': self.blob}


@dataclass(frozen=True)
class ClearImage:
    def columns(self) -> dict:
        return {'image': None, 'image_blob': None}


ImageUpdate = Union[SetImageUrl, SetImageBlob, ClearImage]
UserUpdate = Union[UsernameUpdate, SetImageUrl, SetImageBlob, ClearImage]


def merge_columns(updates) -> dict:
    """Merge update payloads in order; later updates win on shared columns"""
    values: dict = {}
    for update in updates:
        values.update(update.columns())
    return values
