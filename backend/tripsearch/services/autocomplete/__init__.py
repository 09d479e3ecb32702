"""Autocomplete service module.

Geoapify-backed destination and address autocomplete.
"""

from .service import (
    AddressAutocompleteService,
    PlaceAutocompleteService,
    format_place_label,
    merge_ranked,
)

__all__ = [
    "AddressAutocompleteService",
    "PlaceAutocompleteService",
    "format_place_label",
    "merge_ranked",
]
