"""Trip Search Services.

Service layer components:
- Lookup: cache-through base class and debounced per-caller sessions
- Autocomplete: Geoapify destination (global + US fan-out) and address search
- Geocoding: Geoapify address -> coordinates
- Cover image: Unsplash destination/property photos
- Record store: abstract CRUD collaborator with classified errors
"""

from .lookup import CancelToken, LookupService, LookupSession, SessionState
from .autocomplete import (
    AddressAutocompleteService,
    PlaceAutocompleteService,
    format_place_label,
    merge_ranked,
)
from .geocoding import GeocodingService
from .cover_image import CoverImageService
from .record_store import (
    DatabaseError,
    DatabaseErrorCode,
    InMemoryRecordStore,
    RecordFilter,
    RecordStore,
    wrap_database_error,
)

__all__ = [
    # Lookup coordinator
    "CancelToken",
    "LookupService",
    "LookupSession",
    "SessionState",
    # Autocomplete
    "AddressAutocompleteService",
    "PlaceAutocompleteService",
    "format_place_label",
    "merge_ranked",
    # Geocoding
    "GeocodingService",
    # Cover images
    "CoverImageService",
    # Record store
    "DatabaseError",
    "DatabaseErrorCode",
    "InMemoryRecordStore",
    "RecordFilter",
    "RecordStore",
    "wrap_database_error",
]
