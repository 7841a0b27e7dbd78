"""
Tests for the Photon geocoder client.

Run with: pytest storemap/services/test_geocoding.py -v
"""

import httpx
import pytest

from conftest import make_store
from ..models.results import ErrorKind
from ..models.store import Coordinate
from .geocoding import GeocoderClient


def photon_response(*coordinates):
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "geometry": {"type": "Point", "coordinates": list(c)}, "properties": {}}
            for c in coordinates
        ],
    }


def make_client(handler) -> GeocoderClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeocoderClient(client=http, base_url="https://photon.test/api/", country="Croatia")


@pytest.mark.asyncio
class TestGeocoderClient:

    async def test_query_and_coordinate_order(self):
        """Photon returns [lon, lat]; we hand back lat/lon"""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["q"] = request.url.params["q"]
            seen["limit"] = request.url.params["limit"]
            return httpx.Response(200, json=photon_response((15.9819, 45.8150)))

        geocoder = make_client(handler)
        result = await geocoder.geocode("Ilica 1", "Zagreb")

        assert seen == {"q": "Ilica 1, Zagreb, Croatia", "limit": "1"}
        assert result.ok
        assert result.coordinate == Coordinate(lat=45.8150, lon=15.9819)

    async def test_no_features_is_no_result(self):
        geocoder = make_client(lambda request: httpx.Response(200, json=photon_response()))

        result = await geocoder.geocode("Nowhere", "Zagreb")

        assert not result.ok
        assert result.error == ErrorKind.NO_RESULT
        assert await geocoder.geocode_address("Nowhere", "Zagreb") is None

    async def test_http_error_status(self):
        geocoder = make_client(lambda request: httpx.Response(503, text="busy"))

        result = await geocoder.geocode("Ilica 1", "Zagreb")

        assert result.error == ErrorKind.UPSTREAM_STATUS
        assert result.coordinate is None

    async def test_network_error_never_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await make_client(handler).geocode("Ilica 1", "Zagreb")

        assert result.error == ErrorKind.NETWORK

    async def test_timeout_is_a_network_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = await make_client(handler).geocode("Ilica 1", "Zagreb")

        assert result.error == ErrorKind.NETWORK
        assert result.detail == "timeout"

    async def test_malformed_payload(self):
        geocoder = make_client(lambda request: httpx.Response(200, json={"features": [{"geometry": {}}]}))

        result = await geocoder.geocode("Ilica 1", "Zagreb")

        assert result.error == ErrorKind.MALFORMED

    async def test_batch_failures_are_independent(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["q"].startswith("Bad"):
                return httpx.Response(500)
            return httpx.Response(200, json=photon_response((16.44, 43.51)))

        stores = [make_store(code="1", address="Good 1"), make_store(code="2", address="Bad 2")]

        results = await make_client(handler).geocode_batch(stores)

        (good, good_result), (bad, bad_result) = results
        assert (good.lat, good.lon) == (43.51, 16.44)
        assert good_result.ok
        assert bad.lat is None and bad.lon is None
        assert bad_result.error == ErrorKind.UPSTREAM_STATUS
        assert [s.code for s, _ in results] == ["1", "2"]
