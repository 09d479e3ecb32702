"""API routes for Trip Search.

Two ways in:
- REST: one-shot cache-through lookups (autocomplete, geocoding, cover images)
- WebSocket: one debounced ``LookupSession`` per connection, for inputs that
  send every keystroke. Superseded queries never get a reply.

Lookups degrade to empty results instead of failing; an unconfigured
provider looks the same as "no results".
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from tripsearch.models import AddressSuggestion, GeocodeResult, PlaceSuggestion
from tripsearch.services import (
    AddressAutocompleteService,
    CoverImageService,
    GeocodingService,
    LookupService,
    LookupSession,
    PlaceAutocompleteService,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# Service instances (process-wide; their caches are shared by all callers)
_place_service: PlaceAutocompleteService | None = None
_address_service: AddressAutocompleteService | None = None
_geocoding_service: GeocodingService | None = None
_cover_image_service: CoverImageService | None = None


def get_place_service() -> PlaceAutocompleteService:
    global _place_service
    if _place_service is None:
        _place_service = PlaceAutocompleteService()
    return _place_service


def get_address_service() -> AddressAutocompleteService:
    global _address_service
    if _address_service is None:
        _address_service = AddressAutocompleteService()
    return _address_service


def get_geocoding_service() -> GeocodingService:
    global _geocoding_service
    if _geocoding_service is None:
        _geocoding_service = GeocodingService()
    return _geocoding_service


def get_cover_image_service() -> CoverImageService:
    global _cover_image_service
    if _cover_image_service is None:
        _cover_image_service = CoverImageService()
    return _cover_image_service


async def close_services() -> None:
    """Close shared HTTP clients. Called on application shutdown."""
    for service in (_place_service, _address_service, _geocoding_service, _cover_image_service):
        if service is not None:
            await service.close()


# ─── Request / response models ───


class PlaceAutocompleteResponse(BaseModel):
    """Response model for destination autocomplete."""
    success: bool
    query: str
    results: list[PlaceSuggestion] = Field(default_factory=list)


class AddressAutocompleteResponse(BaseModel):
    """Response model for address autocomplete."""
    success: bool
    query: str
    results: list[AddressSuggestion] = Field(default_factory=list)


class GeocodeResponse(BaseModel):
    """Response model for geocoding a single address."""
    success: bool
    lat: Optional[float] = None
    lon: Optional[float] = None
    error: Optional[str] = None


class BatchGeocodeRequest(BaseModel):
    """Request model for geocoding several addresses at once."""
    addresses: list[str] = Field(..., max_length=50, description="Addresses to geocode")


class BatchGeocodeResponse(BaseModel):
    """Response model for batch geocoding; results keep request order."""
    success: bool
    results: list[Optional[GeocodeResult]] = Field(default_factory=list)


class CoverImageResponse(BaseModel):
    """Response model for cover image lookups."""
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None


class ProvidersResponse(BaseModel):
    """Which lookup kinds have a provider credential configured."""
    places: bool
    addresses: bool
    geocoding: bool
    cover_images: bool


# ─── REST ───


@router.get("/places/autocomplete", response_model=PlaceAutocompleteResponse)
async def autocomplete_places(
    q: str = Query(..., max_length=200),
    service: PlaceAutocompleteService = Depends(get_place_service),
) -> PlaceAutocompleteResponse:
    """Destination suggestions, US-scoped matches ranked alongside global ones."""
    results = await service.lookup(q)
    return PlaceAutocompleteResponse(success=True, query=q, results=results)


@router.get("/addresses/autocomplete", response_model=AddressAutocompleteResponse)
async def autocomplete_addresses(
    q: str = Query(..., max_length=200),
    service: AddressAutocompleteService = Depends(get_address_service),
) -> AddressAutocompleteResponse:
    """Street address suggestions."""
    results = await service.lookup(q)
    return AddressAutocompleteResponse(success=True, query=q, results=results)


@router.get("/geocode", response_model=GeocodeResponse)
async def geocode_address(
    address: str = Query(..., max_length=300),
    service: GeocodingService = Depends(get_geocoding_service),
) -> GeocodeResponse:
    """Coordinates for a free-form address."""
    result = await service.lookup(address)
    if result is None:
        return GeocodeResponse(
            success=False,
            error=f"Could not find coordinates for '{address.strip()}'",
        )
    return GeocodeResponse(success=True, lat=result.lat, lon=result.lon)


@router.post("/geocode/batch", response_model=BatchGeocodeResponse)
async def batch_geocode_addresses(
    request: BatchGeocodeRequest,
    service: GeocodingService = Depends(get_geocoding_service),
) -> BatchGeocodeResponse:
    """Geocode several addresses in parallel, e.g. every stop of a trip."""
    results = await service.geocode_many(request.addresses)
    logger.info(
        f"[GEOCODE] Batch: {sum(r is not None for r in results)}/{len(results)} resolved"
    )
    return BatchGeocodeResponse(success=True, results=results)


@router.get("/cover-image", response_model=CoverImageResponse)
async def cover_image_for_destination(
    destination: str = Query(..., max_length=200),
    service: CoverImageService = Depends(get_cover_image_service),
) -> CoverImageResponse:
    """Cover photo for a trip destination."""
    url = await service.fetch_for_destination(destination)
    if url is None:
        return CoverImageResponse(success=False, error="No image found")
    return CoverImageResponse(success=True, url=url)


@router.get("/cover-image/property", response_model=CoverImageResponse)
async def cover_image_for_property(
    name: str = Query(..., max_length=200),
    destination: Optional[str] = Query(None, max_length=200),
    service: CoverImageService = Depends(get_cover_image_service),
) -> CoverImageResponse:
    """Cover photo for a hotel or rental, falling back to its city."""
    url = await service.fetch_for_property(name, destination)
    if url is None:
        return CoverImageResponse(success=False, error="No image found")
    return CoverImageResponse(success=True, url=url)


@router.get("/providers", response_model=ProvidersResponse)
async def provider_status(
    places: PlaceAutocompleteService = Depends(get_place_service),
    addresses: AddressAutocompleteService = Depends(get_address_service),
    geocoding: GeocodingService = Depends(get_geocoding_service),
    cover_images: CoverImageService = Depends(get_cover_image_service),
) -> ProvidersResponse:
    return ProvidersResponse(
        places=places.is_available(),
        addresses=addresses.is_available(),
        geocoding=geocoding.is_available(),
        cover_images=cover_images.is_available(),
    )


# ─── WebSocket autocomplete sessions ───


AUTOCOMPLETE_KINDS = ("places", "addresses")


@router.websocket("/ws/autocomplete/{kind}")
async def autocomplete_session(
    websocket: WebSocket,
    kind: str,
    places: PlaceAutocompleteService = Depends(get_place_service),
    addresses: AddressAutocompleteService = Depends(get_address_service),
) -> None:
    """Debounced autocomplete for one input widget.

    Client sends ``{"query": "..."}`` on every keystroke; the server replies
    ``{"query": ..., "results": [...]}`` only for queries that were not
    superseded. Closing the socket cancels any pending lookup.
    """
    if kind not in AUTOCOMPLETE_KINDS:
        await websocket.close(code=1008)
        return

    await websocket.accept()
    service: LookupService = places if kind == "places" else addresses
    session = LookupSession(service)
    outbox: asyncio.Queue[dict] = asyncio.Queue()

    async def pump() -> None:
        while True:
            message = await outbox.get()
            await websocket.send_json(message)

    def deliver(query: str):
        def on_result(results: list) -> None:
            outbox.put_nowait(
                {"query": query, "results": [r.model_dump() for r in results]}
            )
        return on_result

    sender = asyncio.create_task(pump())
    try:
        while True:
            text = await websocket.receive_text()
            try:
                payload = json.loads(text)
            except ValueError:
                outbox.put_nowait({"error": "invalid JSON"})
                continue
            query = payload.get("query") if isinstance(payload, dict) else None
            if not isinstance(query, str):
                outbox.put_nowait({"error": "expected {\"query\": string}"})
                continue
            session.submit(query, deliver(query))
    except WebSocketDisconnect:
        logger.info(f"[WS] {kind} autocomplete session closed")
    finally:
        session.cancel()
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
