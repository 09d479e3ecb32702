"""Trip Search: coordinated autocomplete, geocoding and cover image lookups."""

__version__ = "0.1.0"
