"""Geoapify autocomplete for destinations (cities) and street addresses.

Destination autocomplete fans out to two sources per query:
1. Global: ``type=city``, no country filter
2. Priority region: the same query scoped to ``countrycode:us``

Both lists are merged with the scoped list first, deduplicated by display
label (so the scoped variant wins a tie), then stably re-ranked by the
provider's importance score. Only the merged list is cached.

Address autocomplete is a single unfiltered query.
"""

import asyncio
import logging
from typing import Any, Iterable, Optional
from uuid import uuid4

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from tripsearch.models import AddressSuggestion, PlaceSuggestion
from tripsearch.services.lookup import LookupService
from tripsearch.utils import CacheStore

logger = logging.getLogger(__name__)

GEOAPIFY_AUTOCOMPLETE_URL = "https://api.geoapify.com/v1/geocode/autocomplete"
GEOAPIFY_PLACEHOLDER_KEY = "your_geoapify_api_key"

AUTOCOMPLETE_CACHE_TTL = 5 * 60  # 5 minutes
AUTOCOMPLETE_CACHE_CAPACITY = 100

PRIORITY_COUNTRY = "us"
GLOBAL_LIMIT = 15
SCOPED_LIMIT = 12
ADDRESS_LIMIT = 8

# Countries where "City, State" reads more naturally than "City, Country"
SHOW_STATE = {"US", "CA", "AU"}


class _Rank(BaseModel):
    model_config = ConfigDict(extra="ignore")

    importance: Optional[float] = None


class FeatureProperties(BaseModel):
    """The property bag of one Geoapify feature (all fields optional)."""

    model_config = ConfigDict(extra="ignore")

    formatted: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    street: Optional[str] = None
    housenumber: Optional[str] = None
    postcode: Optional[str] = None
    place_id: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    rank: Optional[_Rank] = None

    @property
    def importance(self) -> float:
        if self.rank and self.rank.importance is not None:
            return self.rank.importance
        return 0.0


def decode_feature(feature: Any) -> FeatureProperties | None:
    """Decode one raw feature, or return None to skip it."""
    if not isinstance(feature, dict):
        return None
    try:
        return FeatureProperties.model_validate(feature.get("properties") or {})
    except ValidationError:
        return None


def _join(*parts: str | None) -> str:
    return ", ".join(p for p in parts if p)


def format_place_label(p: FeatureProperties) -> str:
    """Human display label for a city suggestion.

    Examples:
        Austin, TX (Texas)     -- allow-listed country with state code
        Toronto, Ontario, Canada
        Paris, France
    """
    if not p.city:
        return p.formatted or _join(p.state, p.country)

    use_state = (p.country_code or "").upper() in SHOW_STATE
    if use_state and p.state_code and p.state:
        return f"{p.city}, {p.state_code} ({p.state})"
    if use_state and p.state:
        return _join(p.city, p.state, p.country)
    if p.country:
        return f"{p.city}, {p.country}"
    return p.formatted or _join(p.city, p.country)


def _fallback_place_id(label: str) -> str:
    return f"{label}-{uuid4().hex[:8]}"


def features_to_place_suggestions(features: Iterable[Any]) -> list[PlaceSuggestion]:
    """Map raw features to suggestions, dropping unlabeled and duplicate items."""
    suggestions: list[PlaceSuggestion] = []
    seen: set[str] = set()

    for feature in features:
        props = decode_feature(feature)
        if props is None:
            continue
        label = format_place_label(props)
        if not label or label in seen:
            continue
        seen.add(label)
        suggestions.append(
            PlaceSuggestion(
                formatted=label,
                city=props.city,
                state=props.state,
                state_code=props.state_code,
                country=props.country,
                place_id=props.place_id or _fallback_place_id(label),
                importance=props.importance,
            )
        )
    return suggestions


def features_to_address_suggestions(features: Iterable[Any]) -> list[AddressSuggestion]:
    """Map raw features to address suggestions keyed by the provider's label."""
    suggestions: list[AddressSuggestion] = []
    seen: set[str] = set()

    for feature in features:
        props = decode_feature(feature)
        if props is None:
            continue
        label = props.formatted or ""
        if not label or label in seen:
            continue
        try:
            suggestion = AddressSuggestion(
                formatted=label,
                street=props.street,
                house_number=props.housenumber,
                city=props.city,
                state=props.state,
                postcode=props.postcode,
                country=props.country,
                place_id=props.place_id or _fallback_place_id(label),
                lat=props.lat,
                lon=props.lon,
            )
        except ValidationError:
            continue  # out-of-range coordinates
        seen.add(label)
        suggestions.append(suggestion)
    return suggestions


def merge_ranked(
    scoped: list[PlaceSuggestion], unscoped: list[PlaceSuggestion]
) -> list[PlaceSuggestion]:
    """Merge two source lists into one ranked list.

    The scoped list goes first so its entry wins a duplicate label. The
    sort is stable, so equal importance keeps merge order.
    """
    by_label: dict[str, PlaceSuggestion] = {}
    for suggestion in [*scoped, *unscoped]:
        by_label.setdefault(suggestion.formatted, suggestion)
    return sorted(by_label.values(), key=lambda s: s.importance, reverse=True)


def _features(data: Any) -> list:
    if not isinstance(data, dict):
        return []
    features = data.get("features")
    return features if isinstance(features, list) else []


class PlaceAutocompleteService(LookupService[list[PlaceSuggestion]]):
    """Destination (city) autocomplete with global + priority-region fan-out."""

    log_tag = "PLACES"
    api_key_env = "GEOAPIFY_API_KEY"
    placeholder_key = GEOAPIFY_PLACEHOLDER_KEY

    def __init__(
        self,
        cache: CacheStore[list[PlaceSuggestion]] | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            cache or CacheStore(AUTOCOMPLETE_CACHE_CAPACITY, AUTOCOMPLETE_CACHE_TTL),
            api_key=api_key,
            timeout=timeout,
            client=client,
        )

    @property
    def provider_name(self) -> str:
        return "Geoapify places"

    def empty(self) -> list[PlaceSuggestion]:
        return []

    def _is_cacheable(self, value: list[PlaceSuggestion]) -> bool:
        return True

    async def _fetch_source(self, text: str, country: str | None = None) -> list[PlaceSuggestion]:
        params = {
            "text": text,
            "apiKey": self._api_key,
            "type": "city",
            "limit": SCOPED_LIMIT if country else GLOBAL_LIMIT,
        }
        if country:
            params["filter"] = f"countrycode:{country}"

        data = await self._get_json(GEOAPIFY_AUTOCOMPLETE_URL, params=params)
        return features_to_place_suggestions(_features(data))

    async def _fetch(self, query: str) -> list[PlaceSuggestion]:
        unscoped, scoped = await asyncio.gather(
            self._fetch_source(query),
            self._fetch_source(query, country=PRIORITY_COUNTRY),
            return_exceptions=True,
        )
        for result in (unscoped, scoped):
            if isinstance(result, BaseException):
                raise result

        merged = merge_ranked(scoped, unscoped)
        logger.info(
            f"[PLACES] '{query}': {len(scoped)} scoped + {len(unscoped)} global -> {len(merged)}"
        )
        return merged


class AddressAutocompleteService(LookupService[list[AddressSuggestion]]):
    """Free-form address autocomplete (streets, buildings, POIs)."""

    log_tag = "ADDRESS"
    api_key_env = "GEOAPIFY_API_KEY"
    placeholder_key = GEOAPIFY_PLACEHOLDER_KEY

    def __init__(
        self,
        cache: CacheStore[list[AddressSuggestion]] | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            cache or CacheStore(AUTOCOMPLETE_CACHE_CAPACITY, AUTOCOMPLETE_CACHE_TTL),
            api_key=api_key,
            timeout=timeout,
            client=client,
        )

    @property
    def provider_name(self) -> str:
        return "Geoapify addresses"

    def empty(self) -> list[AddressSuggestion]:
        return []

    def _is_cacheable(self, value: list[AddressSuggestion]) -> bool:
        return True

    async def _fetch(self, query: str) -> list[AddressSuggestion]:
        params = {"text": query, "apiKey": self._api_key, "limit": ADDRESS_LIMIT}
        data = await self._get_json(GEOAPIFY_AUTOCOMPLETE_URL, params=params)
        return features_to_address_suggestions(_features(data))
