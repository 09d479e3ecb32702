"""In-memory bounded cache with TTL expiration.

Process-level cache shared by every session of one lookup kind
(place autocomplete, address autocomplete, geocoding, cover images).
Eviction is by insertion order only: reading an entry does not refresh
its position, so this is an approximation of LRU.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value and the clock reading at which it was written."""
    value: V
    inserted_at: float


class CacheStore(Generic[V]):
    """TTL-aware, capacity-bounded cache keyed by normalized query text."""

    def __init__(
        self,
        capacity: int = 100,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._entries: OrderedDict[str, CacheEntry[V]] = OrderedDict()
        self._capacity = capacity
        self._ttl = ttl_seconds
        self._clock = clock

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.inserted_at > self._ttl:
            del self._entries[key]
            return None
        return entry.value

    def put(self, key: str, value: V) -> None:
        if key in self._entries:
            # Overwrite is a fresh insert: newest position, new timestamp
            del self._entries[key]
        elif len(self._entries) >= self._capacity:
            self._entries.popitem(last=False)
        self._entries[key] = CacheEntry(value=value, inserted_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        """Keys in insertion order, oldest first (expired entries included)."""
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
