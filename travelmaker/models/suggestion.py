"""Suggestion and cache record models."""

from pydantic import BaseModel, ConfigDict, Field

from travelmaker.models.common import CurrencyInfo
from travelmaker.models.trip import Activity


class NormalizedDay(BaseModel):
    """Model output coerced into the {dayIndex, date, activities} shape."""

    model_config = ConfigDict(populate_by_name=True)

    day_index: int = Field(..., alias="dayIndex")
    date: str
    activities: list[Activity] = Field(default_factory=list)
    currency: CurrencyInfo | None = None


class SuggestionRequest(BaseModel):
    """Parameters for one suggestion generation."""

    location: str
    start_date: str
    end_date: str
    existing_activities: list[Activity] = Field(default_factory=list)


class SuggestionResult(BaseModel):
    """Normalized suggestions plus where they came from."""

    itinerary: list[NormalizedDay]
    from_cache: bool


class SuggestionCacheEntry(BaseModel):
    """Persisted AI cache record; timestamp is epoch milliseconds."""

    model_config = ConfigDict(populate_by_name=True)

    itinerary: list[NormalizedDay]
    timestamp: int
    location: str
    start_date: str = Field(..., alias="startDate")
    end_date: str = Field(..., alias="endDate")


class CachedSuggestionSummary(BaseModel):
    """Listing row for a cached suggestion."""

    location: str
    start_date: str
    end_date: str
    timestamp: int
    cache_key: str


class ExchangeRateCacheRecord(BaseModel):
    """Single shared exchange-rate record: rates[from][to] with one timestamp."""

    rates: dict[str, dict[str, float]] = Field(default_factory=dict)
    timestamp: int | None = None
