"""Tests for suggestion service (cache, model call, parse)."""

import json
from collections.abc import Callable

import pytest

from travelmaker.db.inmemory import InMemoryKeyValueStore
from travelmaker.llm.cache import SuggestionCache
from travelmaker.llm.client import DeterministicStubClient
from travelmaker.llm.parsing import ContentParseError, SuggestionGenerationError
from travelmaker.llm.service import SuggestionService
from travelmaker.models.suggestion import SuggestionRequest
from travelmaker.models.trip import Trip


class ScriptedClient:
    """Returns canned text and counts calls."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.requests: list[SuggestionRequest] = []

    async def generate_suggestions_text(self, request: SuggestionRequest) -> str:
        self.requests.append(request)
        return self.text


class FailingClient:
    async def generate_suggestions_text(self, request: SuggestionRequest) -> str:
        raise SuggestionGenerationError("Gemini API error: quota exceeded")


VALID_TEXT = json.dumps(
    [
        {
            "dayIndex": 1,
            "date": "2025-04-01",
            "activities": [
                {"startTime": "09:00", "endTime": "10:00", "category": "dining", "content": "Ramen"}
            ],
        }
    ]
)


@pytest.mark.asyncio
async def test_second_call_served_from_cache(
    store: InMemoryKeyValueStore, clock: Callable
) -> None:
    client = ScriptedClient(VALID_TEXT)
    service = SuggestionService(client, SuggestionCache(store, clock_ms=clock))

    first = await service.generate("Tokyo", "2025-04-01", "2025-04-02")
    second = await service.generate("Tokyo", "2025-04-01", "2025-04-02")

    assert first.from_cache is False
    assert second.from_cache is True
    assert second.itinerary == first.itinerary
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_use_cache_false_always_calls_model(store: InMemoryKeyValueStore) -> None:
    client = ScriptedClient(VALID_TEXT)
    service = SuggestionService(client, SuggestionCache(store))

    await service.generate("Tokyo", "2025-04-01", "2025-04-02")
    result = await service.generate("Tokyo", "2025-04-01", "2025-04-02", use_cache=False)

    assert result.from_cache is False
    assert len(client.requests) == 2


@pytest.mark.asyncio
async def test_parse_failure_is_not_cached(store: InMemoryKeyValueStore) -> None:
    cache = SuggestionCache(store)
    service = SuggestionService(ScriptedClient("no json here, sorry"), cache)

    with pytest.raises(ContentParseError) as exc_info:
        await service.generate("Tokyo", "2025-04-01", "2025-04-02")

    assert exc_info.value.raw_preview == "no json here, sorry"
    assert cache.get("Tokyo", "2025-04-01", "2025-04-02") is None
    assert store.keys() == []


@pytest.mark.asyncio
async def test_model_failure_propagates(store: InMemoryKeyValueStore) -> None:
    service = SuggestionService(FailingClient(), SuggestionCache(store))

    with pytest.raises(SuggestionGenerationError, match="quota exceeded"):
        await service.generate("Tokyo", "2025-04-01", "2025-04-02")

    assert store.keys() == []


@pytest.mark.asyncio
async def test_existing_activities_forwarded(
    store: InMemoryKeyValueStore, sample_trip: Trip
) -> None:
    client = ScriptedClient(VALID_TEXT)
    service = SuggestionService(client, SuggestionCache(store))
    existing = sample_trip.itinerary["2025-03-01"]

    await service.generate("Tokyo", "2025-04-01", "2025-04-02", existing_activities=existing)

    assert [a.content for a in client.requests[0].existing_activities] == [
        "Breakfast at Tsukiji",
        "Senso-ji",
    ]


@pytest.mark.asyncio
async def test_stub_client_end_to_end(store: InMemoryKeyValueStore) -> None:
    service = SuggestionService(DeterministicStubClient(), SuggestionCache(store))

    result = await service.generate("Hualien", "2025-04-01", "2025-04-03")

    assert [d.date for d in result.itinerary] == ["2025-04-01", "2025-04-02", "2025-04-03"]
    assert result.itinerary[0].activities[0].content == "Explore Hualien (stub)"
