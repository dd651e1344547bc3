"""Models package - re-exports for convenience."""

from travelmaker.models.common import Category, Coordinates, CurrencyInfo
from travelmaker.models.suggestion import (
    CachedSuggestionSummary,
    ExchangeRateCacheRecord,
    NormalizedDay,
    SuggestionCacheEntry,
    SuggestionRequest,
    SuggestionResult,
)
from travelmaker.models.trip import Activity, ActivityDraft, Trip, TripDraft

__all__ = [
    # Common
    "Category",
    "Coordinates",
    "CurrencyInfo",
    # Trip
    "Trip",
    "TripDraft",
    "Activity",
    "ActivityDraft",
    # Suggestions
    "NormalizedDay",
    "SuggestionRequest",
    "SuggestionResult",
    "SuggestionCacheEntry",
    "CachedSuggestionSummary",
    "ExchangeRateCacheRecord",
]
