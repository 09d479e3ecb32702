"""Core data models for Trip Search.

Pydantic models for the results produced by every lookup kind: place and
address suggestions from autocomplete, and coordinates from geocoding.
"""

from typing import Optional

from pydantic import BaseModel, Field


class PlaceSuggestion(BaseModel):
    """A city/place suggestion for destination autocomplete.

    ``formatted`` is the display label and the identity used for
    deduplication (case-sensitive, first seen wins).
    """

    formatted: str = Field(..., min_length=1, description="Display label")
    city: Optional[str] = Field(None, description="City name")
    state: Optional[str] = Field(None, description="State or region name")
    state_code: Optional[str] = Field(None, description="State or region code")
    country: Optional[str] = Field(None, description="Country name")
    place_id: str = Field(..., min_length=1, description="Provider place identifier")
    importance: float = Field(
        default=0.0, description="Provider relevance score, higher ranks first"
    )


class AddressSuggestion(BaseModel):
    """A free-form address suggestion for address autocomplete."""

    formatted: str = Field(..., min_length=1, description="Full formatted address")
    street: Optional[str] = None
    house_number: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None
    place_id: str = Field(..., min_length=1, description="Provider place identifier")
    lat: Optional[float] = Field(None, ge=-90, le=90, description="Latitude in degrees")
    lon: Optional[float] = Field(None, ge=-180, le=180, description="Longitude in degrees")


class GeocodeResult(BaseModel):
    """Geographic coordinates for a geocoded address.

    Latitude must be between -90 and 90 degrees.
    Longitude must be between -180 and 180 degrees.
    """

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lon: float = Field(..., ge=-180, le=180, description="Longitude in degrees")
