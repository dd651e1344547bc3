"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable
from datetime import date

import httpx
import pytest

from travelmaker.db.inmemory import InMemoryKeyValueStore
from travelmaker.db.repositories import StorageError
from travelmaker.models.trip import Activity, Trip

Handler = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    """Epoch-milliseconds clock advanced by hand."""

    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class FailingKeyValueStore(InMemoryKeyValueStore):
    """Store whose writes fail, as with an exhausted quota."""

    def set(self, key: str, value: str) -> None:
        raise StorageError("quota exceeded")


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def failing_store() -> FailingKeyValueStore:
    return FailingKeyValueStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_client() -> Callable[[Handler], tuple[httpx.AsyncClient, list[httpx.Request]]]:
    """Factory for an httpx client over MockTransport that records every request."""

    def factory(handler: Handler) -> tuple[httpx.AsyncClient, list[httpx.Request]]:
        requests: list[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(recording_handler)), requests

    return factory


@pytest.fixture
def sample_trip() -> Trip:
    """Three-day Tokyo trip with two activities on the first day."""
    return Trip(
        id=1_700_000_000_000,
        location="東京, 日本",
        start_date=date(2025, 3, 1),
        end_date=date(2025, 3, 3),
        participants=["Amy", "Ben"],
        itinerary={
            "2025-03-01": [
                Activity(
                    id="a1",
                    start_time="09:00",
                    end_time="10:00",
                    category="dining",
                    content="Breakfast at Tsukiji",
                    location="Tsukiji Outer Market",
                    cost=1000,
                ),
                Activity(
                    id="a2",
                    start_time="11:00",
                    end_time="13:00",
                    category="sightseeing",
                    content="Senso-ji",
                    location="Senso-ji",
                    cost=500,
                ),
            ]
        },
    )
