"""Geocoding service module."""

from .service import GeocodingService, decode_geocode_feature

__all__ = ["GeocodingService", "decode_geocode_feature"]
