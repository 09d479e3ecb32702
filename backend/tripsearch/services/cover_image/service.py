"""Unsplash cover images for trips and lodging.

Fetches one destination-relevant landscape photo per query. Results are
cached in memory for 24 hours to stay inside Unsplash's hourly quota
(demo apps: 50 requests/hour, production: 5,000 requests/hour).
"""

import logging
from typing import Any

import httpx

from tripsearch.services.lookup import LookupService
from tripsearch.utils import CacheStore

logger = logging.getLogger(__name__)

UNSPLASH_SEARCH_URL = "https://api.unsplash.com/search/photos"

COVER_CACHE_TTL = 24 * 60 * 60  # 24 hours
COVER_CACHE_CAPACITY = 100
COVER_IMAGE_WIDTH = 800


def extract_city(destination: str) -> str:
    """First comma-separated part of a destination.

    Example:
        >>> extract_city("Paris, France")
        'Paris'
    """
    parts = [p.strip() for p in (destination or "").split(",") if p.strip()]
    return parts[0] if parts else ""


def _sized(url: str) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}w={COVER_IMAGE_WIDTH}"


def photo_url_from_response(data: Any) -> str | None:
    """URL of the first photo: ``regular`` size, else ``small``."""
    if not isinstance(data, dict):
        return None
    results = data.get("results")
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        return None
    urls = results[0].get("urls") or {}
    if not isinstance(urls, dict):
        return None
    url = urls.get("regular") or urls.get("small")
    return _sized(url) if isinstance(url, str) and url else None


class CoverImageService(LookupService[str | None]):
    """Unsplash photo search keyed by destination or property name."""

    log_tag = "COVER"
    api_key_env = "UNSPLASH_ACCESS_KEY"
    placeholder_key = "your_unsplash_access_key"
    min_length = 1

    def __init__(
        self,
        cache: CacheStore[str | None] | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            cache or CacheStore(COVER_CACHE_CAPACITY, COVER_CACHE_TTL),
            api_key=api_key,
            timeout=timeout,
            client=client,
        )

    @property
    def provider_name(self) -> str:
        return "Unsplash"

    def empty(self) -> str | None:
        return None

    async def _fetch(self, query: str) -> str | None:
        params = {"query": query, "orientation": "landscape", "per_page": 1}
        headers = {"Authorization": f"Client-ID {self._api_key}"}
        data = await self._get_json(UNSPLASH_SEARCH_URL, params=params, headers=headers)

        url = photo_url_from_response(data)
        if url is None:
            logger.info(f"[COVER] No photo for '{query}'")
        return url

    async def fetch_for_destination(self, destination: str) -> str | None:
        """Cover photo for a trip destination such as ``"Paris, France"``."""
        return await self.lookup(destination)

    async def fetch_for_property(
        self, property_name: str, trip_destination: str | None = None
    ) -> str | None:
        """Cover photo for a hotel or rental.

        Searches ``"<property> <city>"`` first, where the city comes from
        the trip destination, then falls back to the city alone.
        """
        city = extract_city(trip_destination) if trip_destination else ""
        primary = " ".join(p for p in (property_name.strip(), city) if p)
        if not primary:
            return None

        url = await self.lookup(primary)
        if url:
            return url
        if city and city != primary:
            return await self.lookup(city)
        return None
