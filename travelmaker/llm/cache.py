"""Suggestion cache keyed by the exact (location, start date, end date) triple.

Location text is not normalized, so "Tokyo" and "tokyo " are separate entries.
Expired entries are removed lazily on the next read.
"""

import logging
import time
from collections.abc import Callable
from datetime import timedelta

from pydantic import ValidationError

from travelmaker.db.repositories import KeyValueStore, StorageError
from travelmaker.models.suggestion import (
    CachedSuggestionSummary,
    NormalizedDay,
    SuggestionCacheEntry,
)

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SuggestionCache:
    """Stores normalized suggestion days in the key-value store with a TTL."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        prefix: str = "gemini_itinerary_cache_",
        ttl: timedelta = timedelta(days=30),
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self._store = store
        self._prefix = prefix
        self._ttl_ms = int(ttl.total_seconds() * 1000)
        self._clock_ms = clock_ms

    def make_key(self, location: str, start_date: str, end_date: str) -> str:
        return f"{self._prefix}{location}_{start_date}_{end_date}"

    def get(self, location: str, start_date: str, end_date: str) -> list[NormalizedDay] | None:
        """Cached days, or None on miss, expiry or unreadable entry."""
        key = self.make_key(location, start_date, end_date)
        try:
            raw = self._store.get(key)
        except StorageError as e:
            logger.error(f"Error reading suggestion cache: {e}")
            return None

        if raw is None:
            return None

        try:
            entry = SuggestionCacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Unreadable suggestion cache entry {key!r}: {e.error_count()} error(s)")
            return None

        if self._clock_ms() - entry.timestamp > self._ttl_ms:
            logger.info(f"Suggestion cache entry expired: {key!r}")
            self.clear(key)
            return None

        return entry.itinerary

    def put(
        self, location: str, start_date: str, end_date: str, itinerary: list[NormalizedDay]
    ) -> None:
        """Store normalized days; storage failures are logged, not raised."""
        entry = SuggestionCacheEntry(
            itinerary=itinerary,
            timestamp=self._clock_ms(),
            location=location,
            start_date=start_date,
            end_date=end_date,
        )
        key = self.make_key(location, start_date, end_date)
        try:
            self._store.set(key, entry.model_dump_json(by_alias=True))
        except StorageError as e:
            logger.error(f"Error saving suggestion cache: {e}")

    def list_entries(self) -> list[CachedSuggestionSummary]:
        """Every cached suggestion, newest first."""
        try:
            keys = [k for k in self._store.keys() if k.startswith(self._prefix)]
        except StorageError as e:
            logger.error(f"Error listing suggestion cache: {e}")
            return []

        summaries: list[CachedSuggestionSummary] = []
        for key in keys:
            try:
                raw = self._store.get(key)
                if raw is None:
                    continue
                entry = SuggestionCacheEntry.model_validate_json(raw)
            except (StorageError, ValidationError) as e:
                logger.error(f"Error reading cached item {key!r}: {e}")
                continue
            summaries.append(
                CachedSuggestionSummary(
                    location=entry.location,
                    start_date=entry.start_date,
                    end_date=entry.end_date,
                    timestamp=entry.timestamp,
                    cache_key=key,
                )
            )

        summaries.sort(key=lambda s: s.timestamp, reverse=True)
        return summaries

    def clear(self, cache_key: str) -> bool:
        """Remove one entry by its full key.

        Returns:
            False when the key is outside this cache's prefix; nothing is removed
        """
        if not cache_key.startswith(self._prefix):
            logger.warning(f"Refusing to clear non-cache key {cache_key!r}")
            return False
        try:
            self._store.remove(cache_key)
        except StorageError as e:
            logger.error(f"Error clearing cache entry {cache_key!r}: {e}")
        return True

    def clear_all(self) -> int:
        """Remove every suggestion entry; returns how many were removed."""
        try:
            keys = [k for k in self._store.keys() if k.startswith(self._prefix)]
        except StorageError as e:
            logger.error(f"Error listing suggestion cache: {e}")
            return 0
        for key in keys:
            self.clear(key)
        return len(keys)
