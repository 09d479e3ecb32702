"""Geoapify forward geocoding (address text -> coordinates).

Used to place trip stops (hotels, stations, venues) on a map. Coordinates
for an address rarely change, so results are cached for 24 hours. A query
with no match returns None and is not cached.
"""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from tripsearch.models import GeocodeResult
from tripsearch.services.lookup import LookupService
from tripsearch.utils import CacheStore

logger = logging.getLogger(__name__)

GEOAPIFY_GEOCODE_URL = "https://api.geoapify.com/v1/geocode/search"

GEOCODE_CACHE_TTL = 24 * 60 * 60  # 24 hours
GEOCODE_CACHE_CAPACITY = 200


def decode_geocode_feature(feature: Any) -> GeocodeResult | None:
    """Coordinates from a feature, or None if it has none usable.

    ``properties.lat``/``properties.lon`` win; ``geometry.coordinates``
    (GeoJSON order: ``[lon, lat]``) is the fallback.
    """
    if not isinstance(feature, dict):
        return None

    props = feature.get("properties") or {}
    if not isinstance(props, dict):
        return None
    lat = props.get("lat")
    lon = props.get("lon")

    if lat is None or lon is None:
        geometry = feature.get("geometry") or {}
        if not isinstance(geometry, dict):
            return None
        coords = geometry.get("coordinates")
        if isinstance(coords, list) and len(coords) >= 2:
            lon, lat = coords[0], coords[1]

    if lat is None or lon is None:
        return None

    try:
        return GeocodeResult(lat=lat, lon=lon)
    except ValidationError:
        return None


class GeocodingService(LookupService[GeocodeResult | None]):
    """Address geocoding via the Geoapify search endpoint."""

    log_tag = "GEOCODE"
    api_key_env = "GEOAPIFY_API_KEY"
    placeholder_key = "your_geoapify_api_key"
    min_length = 1

    def __init__(
        self,
        cache: CacheStore[GeocodeResult | None] | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            cache or CacheStore(GEOCODE_CACHE_CAPACITY, GEOCODE_CACHE_TTL),
            api_key=api_key,
            timeout=timeout,
            client=client,
        )

    @property
    def provider_name(self) -> str:
        return "Geoapify geocoding"

    def empty(self) -> GeocodeResult | None:
        return None

    async def _fetch(self, query: str) -> GeocodeResult | None:
        params = {"text": query, "apiKey": self._api_key, "limit": 1}
        data = await self._get_json(GEOAPIFY_GEOCODE_URL, params=params)

        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list) or not features:
            logger.info(f"[GEOCODE] No match for '{query}'")
            return None
        return decode_geocode_feature(features[0])

    async def geocode_many(self, addresses: list[str]) -> list[GeocodeResult | None]:
        """Geocode several addresses concurrently; results keep input order."""
        return list(await asyncio.gather(*(self.lookup(a) for a in addresses)))
