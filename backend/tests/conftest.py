"""Shared fixtures."""

import httpx
import pytest

from tests.helpers import FakeClock, FakeLookupService


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_service() -> FakeLookupService:
    return FakeLookupService()


@pytest.fixture
def requests_seen() -> list[httpx.Request]:
    return []
