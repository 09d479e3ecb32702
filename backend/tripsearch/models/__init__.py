"""Trip Search data models."""

from .core import AddressSuggestion, GeocodeResult, PlaceSuggestion
from .errors import AppError, ErrorCode, LookupOutcome, ProviderError

__all__ = [
    "AddressSuggestion",
    "GeocodeResult",
    "PlaceSuggestion",
    "AppError",
    "ErrorCode",
    "LookupOutcome",
    "ProviderError",
]
