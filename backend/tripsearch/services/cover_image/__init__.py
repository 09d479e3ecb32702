"""Cover image service module."""

from .service import CoverImageService, extract_city

__all__ = ["CoverImageService", "extract_city"]
