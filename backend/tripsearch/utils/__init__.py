"""Shared utilities: the lookup cache and query normalization."""

from .cache import CacheEntry, CacheStore
from .query import MIN_QUERY_LENGTH, is_eligible, normalize

__all__ = [
    "CacheEntry",
    "CacheStore",
    "MIN_QUERY_LENGTH",
    "is_eligible",
    "normalize",
]
