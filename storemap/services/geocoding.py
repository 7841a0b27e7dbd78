"""
Photon geocoder client.

Resolves "{address}, {city}, {country}" to a coordinate. Geocoding is
best-effort: lookups never raise, they return a GeocodeResult describing
either the coordinate or why there is none.
"""
import asyncio
import dataclasses
import logging
from typing import Optional, Sequence, TypeVar

import httpx

from ..config import settings
from ..core.http_client import get_http_client
from ..models.results import ErrorKind, GeocodeResult
from ..models.store import Coordinate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GeocoderClient:
    """Thin async wrapper around the Photon search endpoint"""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        country: Optional[str] = None,
    ):
        self._client = client
        self.base_url = base_url or settings.geocoder_url
        self.country = country or settings.geocoder_country

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_http_client()

    def build_query(self, address: str, city: str) -> str:
        return f"{address}, {city}, {self.country}"

    async def geocode(self, address: str, city: str) -> GeocodeResult:
        """
        Look up one address.

        Returns:
            GeocodeResult with the first feature's coordinate, or an error kind
        """
        query = self.build_query(address, city)
        client = await self._get_client()

        try:
            response = await client.get(self.base_url, params={"q": query, "limit": 1})
        except httpx.TimeoutException:
            logger.warning(f"[GEOCODE] Timeout geocoding '{query}'")
            return GeocodeResult.failed(ErrorKind.NETWORK, "timeout")
        except httpx.RequestError as e:
            logger.warning(f"[GEOCODE] Network error geocoding '{query}': {e}")
            return GeocodeResult.failed(ErrorKind.NETWORK, str(e))

        if response.status_code != 200:
            logger.warning(f"[GEOCODE] HTTP {response.status_code} geocoding '{query}'")
            return GeocodeResult.failed(ErrorKind.UPSTREAM_STATUS, f"HTTP {response.status_code}")

        try:
            features = response.json().get("features") or []
            if not features:
                logger.debug(f"[GEOCODE] No result for '{query}'")
                return GeocodeResult.failed(ErrorKind.NO_RESULT)

            # GeoJSON order is [lon, lat]
            lon, lat = features[0]["geometry"]["coordinates"][:2]
            return GeocodeResult.found(Coordinate(lat=float(lat), lon=float(lon)))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"[GEOCODE] Malformed response for '{query}': {e}")
            return GeocodeResult.failed(ErrorKind.MALFORMED, str(e))

    async def geocode_address(self, address: str, city: str) -> Optional[Coordinate]:
        """Coordinate for the address, or None if it could not be resolved"""
        result = await self.geocode(address, city)
        return result.coordinate

    async def geocode_batch(self, entities: Sequence[T]) -> list[tuple[T, GeocodeResult]]:
        """
        Geocode a batch concurrently.

        Entities must be dataclasses with address, city, lat and lon fields.
        Each is returned with coordinates attached (or cleared on failure),
        paired with its lookup result. A failed lookup never affects siblings.
        """
        results = await asyncio.gather(
            *(self.geocode(entity.address, entity.city) for entity in entities)
        )
        geocoded = []
        for entity, result in zip(entities, results):
            coordinate = result.coordinate
            updated = dataclasses.replace(
                entity,
                lat=coordinate.lat if coordinate else None,
                lon=coordinate.lon if coordinate else None,
            )
            geocoded.append((updated, result))
        return geocoded
