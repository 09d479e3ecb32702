"""Unit tests for the geocoding service."""

import asyncio

import httpx
import pytest

from tripsearch.models import GeocodeResult
from tripsearch.services.geocoding import GeocodingService, decode_geocode_feature
from tripsearch.services.lookup import LookupSession, SessionState
from tests.helpers import mock_client


def geojson(*features: dict) -> dict:
    return {"type": "FeatureCollection", "features": list(features)}


class TestDecodeGeocodeFeature:

    def test_properties_coordinates(self) -> None:
        result = decode_geocode_feature({"properties": {"lat": 48.8566, "lon": 2.3522}})
        assert result == GeocodeResult(lat=48.8566, lon=2.3522)

    def test_geometry_fallback_is_lon_lat(self) -> None:
        result = decode_geocode_feature(
            {"properties": {}, "geometry": {"type": "Point", "coordinates": [2.3522, 48.8566]}}
        )
        assert result == GeocodeResult(lat=48.8566, lon=2.3522)

    def test_properties_win_over_geometry(self) -> None:
        result = decode_geocode_feature(
            {"properties": {"lat": 1.0, "lon": 2.0}, "geometry": {"coordinates": [50.0, 60.0]}}
        )
        assert result == GeocodeResult(lat=1.0, lon=2.0)

    def test_partial_coordinates_rejected(self) -> None:
        assert decode_geocode_feature({"properties": {"lat": 48.8}}) is None
        assert decode_geocode_feature({"geometry": {"coordinates": [2.35]}}) is None

    def test_out_of_range_rejected(self) -> None:
        assert decode_geocode_feature({"properties": {"lat": 95.0, "lon": 0.0}}) is None

    def test_non_dict_rejected(self) -> None:
        assert decode_geocode_feature([1, 2]) is None

    @pytest.mark.parametrize(
        "malformed",
        [
            {"properties": [1, 2]},
            {"properties": "paris"},
            {"properties": {}, "geometry": "oops"},
            {"properties": {}, "geometry": [2.35, 48.85]},
            {"properties": {}, "geometry": {"coordinates": ["a", "b"]}},
        ],
    )
    def test_malformed_shapes_rejected(self, malformed) -> None:
        assert decode_geocode_feature(malformed) is None


class TestGeocodingService:

    def setup_method(self) -> None:
        self.requests: list[httpx.Request] = []

    def service(self, responses: dict[str, httpx.Response]) -> GeocodingService:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return responses.get(
                request.url.params["text"], httpx.Response(200, json=geojson())
            )

        return GeocodingService(api_key="test-key", client=mock_client(handler))

    @pytest.mark.asyncio
    async def test_geocode_address(self) -> None:
        service = self.service({
            "10 Downing Street, London": httpx.Response(
                200, json=geojson({"properties": {"lat": 51.5034, "lon": -0.1276}})
            ),
        })
        result = await service.lookup(" 10 Downing Street, London ")

        assert result == GeocodeResult(lat=51.5034, lon=-0.1276)
        params = self.requests[0].url.params
        assert params["limit"] == "1"
        assert params["apiKey"] == "test-key"
        assert self.requests[0].url.path == "/v1/geocode/search"

    @pytest.mark.asyncio
    async def test_cached_for_repeat_lookups(self) -> None:
        service = self.service({
            "Gare du Nord": httpx.Response(
                200, json=geojson({"properties": {"lat": 48.8809, "lon": 2.3553}})
            ),
        })
        first = await service.lookup("Gare du Nord")
        second = await service.lookup("gare du nord")
        assert first == second
        assert len(self.requests) == 1

    @pytest.mark.asyncio
    async def test_no_match_is_not_cached(self) -> None:
        service = self.service({})
        assert await service.lookup("Nowhere Lane") is None
        assert await service.lookup("Nowhere Lane") is None
        assert len(self.requests) == 2
        assert len(service.cache) == 0

    @pytest.mark.asyncio
    async def test_single_character_is_allowed(self) -> None:
        service = self.service({})
        await service.lookup("X")
        assert len(self.requests) == 1

    @pytest.mark.asyncio
    async def test_blank_address_makes_no_request(self) -> None:
        service = self.service({})
        assert await service.lookup("   ") is None
        assert self.requests == []

    @pytest.mark.asyncio
    async def test_server_error_returns_none(self) -> None:
        service = self.service({"Rome": httpx.Response(502, text="Bad Gateway")})
        assert await service.lookup("Rome") is None
        assert len(service.cache) == 0

    @pytest.mark.asyncio
    async def test_geocode_many_keeps_order(self) -> None:
        service = self.service({
            "Paris": httpx.Response(200, json=geojson({"properties": {"lat": 48.85, "lon": 2.35}})),
            "Rome": httpx.Response(200, json=geojson({"properties": {"lat": 41.9, "lon": 12.5}})),
        })
        results = await service.geocode_many(["Rome", "", "Nowhere", "Paris"])
        assert results == [
            GeocodeResult(lat=41.9, lon=12.5),
            None,
            None,
            GeocodeResult(lat=48.85, lon=2.35),
        ]

    @pytest.mark.asyncio
    async def test_malformed_feature_returns_none(self) -> None:
        service = self.service({
            "paris": httpx.Response(
                200, json=geojson({"properties": {}, "geometry": "oops"})
            ),
            "rome": httpx.Response(200, json=geojson({"properties": [1, 2]})),
        })
        assert await service.lookup("paris") is None
        assert await service.lookup("rome") is None
        assert len(service.cache) == 0

    @pytest.mark.asyncio
    async def test_session_over_malformed_feature_delivers_none(self) -> None:
        service = self.service({
            "paris": httpx.Response(
                200, json=geojson({"properties": {}, "geometry": "oops"})
            ),
        })
        session = LookupSession(service, debounce_seconds=0.01)
        deliveries: list = []

        session.submit("paris", deliveries.append)
        await asyncio.sleep(0.1)

        assert deliveries == [None]
        assert session.state == SessionState.IDLE
