"""Test doubles: a controllable lookup service and Geoapify/Unsplash stubs."""

import asyncio
from typing import Callable

import httpx

from tripsearch.models import ProviderError
from tripsearch.services.lookup import LookupService
from tripsearch.utils import CacheStore


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLookupService(LookupService[list[str]]):
    """In-process lookup kind whose fetches can be held open or failed.

    ``gates[query]`` blocks that query's fetch until the event is set;
    queries in ``fail`` raise ``ProviderError`` and queries in ``broken``
    raise ``ValueError``. Queries in ``stubborn`` ignore cancellation while
    gated, like a response that was already on the wire.
    """

    log_tag = "FAKE"
    min_length = 1

    def __init__(
        self,
        cache: CacheStore[list[str]] | None = None,
        api_key: str | None = "test-key",
    ) -> None:
        super().__init__(cache or CacheStore(capacity=10, ttl_seconds=60.0), api_key=api_key)
        self.calls: list[str] = []
        self.completed: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.fail: set[str] = set()
        self.broken: set[str] = set()
        self.stubborn: set[str] = set()

    @property
    def provider_name(self) -> str:
        return "fake"

    def empty(self) -> list[str]:
        return []

    def _is_cacheable(self, value: list[str]) -> bool:
        return True

    async def _fetch(self, query: str) -> list[str]:
        self.calls.append(query)
        gate = self.gates.get(query)
        if gate is not None:
            try:
                await gate.wait()
            except asyncio.CancelledError:
                if query not in self.stubborn:
                    raise
                await gate.wait()
        if query in self.broken:
            raise ValueError(f"unexpected payload for {query}")
        if query in self.fail:
            raise ProviderError("fake", "boom", status_code=503)
        self.completed.append(query)
        return [f"{query}-result"]


def feature(**properties) -> dict:
    """A Geoapify GeoJSON feature with the given properties."""
    return {"type": "Feature", "properties": properties}


def mock_client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


