"""Storage port and the repositories built on it.

Every repository does whole-record read-modify-write against a single key.
There is no optimistic-concurrency check: with more than one writer the last
write wins.
"""

import base64
import json
import logging
import time
from collections.abc import Iterable
from typing import Protocol

from pydantic import ValidationError

from travelmaker.models.trip import Trip

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Backend read/write failure (serialization, quota, connectivity)."""

    pass


class ImageValidationError(ValueError):
    """Uploaded image rejected before storage."""

    pass


class KeyValueStore(Protocol):
    """Protocol for string key-value stores (browser-local storage semantics)."""

    def get(self, key: str) -> str | None:
        """Return the stored string or None when the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete key; absent keys are ignored."""
        ...

    def keys(self) -> list[str]:
        """List all stored keys."""
        ...


def new_trip_id(existing_ids: Iterable[int], now_ms: int | None = None) -> int:
    """Creation-time identifier (epoch ms), bumped past collisions."""
    candidate = now_ms if now_ms is not None else int(time.time() * 1000)
    taken = set(existing_ids)
    while candidate in taken:
        candidate += 1
    return candidate


class TripRepository:
    """Owns the persisted trip collection stored under one key."""

    def __init__(self, store: KeyValueStore, key: str = "travelmaker_trips") -> None:
        self._store = store
        self._key = key

    def list_all(self) -> list[Trip]:
        """Load every trip; storage or JSON failures yield an empty list."""
        try:
            raw = self._store.get(self._key)
        except StorageError as e:
            logger.error(f"Failed to load trips: {e}")
            return []

        if not raw:
            return []

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to decode trips: {e}")
            return []

        if not isinstance(records, list):
            logger.error("Stored trips are not a JSON array, ignoring")
            return []

        trips: list[Trip] = []
        for record in records:
            try:
                trips.append(Trip.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping malformed trip record: {e.error_count()} error(s)")
        return trips

    def get(self, trip_id: int) -> Trip | None:
        """Get trip by ID."""
        for trip in self.list_all():
            if trip.id == trip_id:
                return trip
        return None

    def upsert(self, trip: Trip) -> bool:
        """Replace the trip with the same id, or append it."""
        trips = self.list_all()
        replaced = False
        for i, existing in enumerate(trips):
            if existing.id == trip.id:
                trips[i] = trip
                replaced = True
                break
        if not replaced:
            trips.append(trip)
        return self.save_all(trips)

    def delete(self, trip_id: int) -> bool:
        """Delete trip by ID. Returns False when absent or on storage failure."""
        trips = self.list_all()
        remaining = [t for t in trips if t.id != trip_id]
        if len(remaining) == len(trips):
            return False
        return self.save_all(remaining)

    def save_all(self, trips: list[Trip]) -> bool:
        """Persist the whole collection. Returns False on failure."""
        try:
            payload = json.dumps([t.model_dump(mode="json", by_alias=True) for t in trips])
            self._store.set(self._key, payload)
        except (StorageError, TypeError, ValueError) as e:
            logger.error(f"Failed to save trips: {e}")
            return False
        return True

    def clear(self) -> bool:
        """Remove the whole collection."""
        try:
            self._store.remove(self._key)
        except StorageError as e:
            logger.error(f"Failed to clear trips: {e}")
            return False
        return True


class LocationImageStore:
    """Maps location display names to base64 data URLs."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "location_images",
        max_bytes: int = 5 * 1024 * 1024,
    ) -> None:
        self._store = store
        self._key = key
        self._max_bytes = max_bytes

    def all(self) -> dict[str, str]:
        """Load the whole image map; failures yield an empty map."""
        try:
            raw = self._store.get(self._key)
            data = json.loads(raw) if raw else {}
        except (StorageError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load location images: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, location: str) -> str | None:
        return self.all().get(location)

    def put(self, location: str, content: bytes, mime_type: str) -> str:
        """Validate and store an image, returning its data URL.

        Raises:
            ImageValidationError: Not an image MIME type, or over the size cap
            StorageError: Backend write failed
        """
        if not mime_type.startswith("image/"):
            raise ImageValidationError(f"Unsupported file type: {mime_type}")
        if len(content) > self._max_bytes:
            raise ImageValidationError(
                f"Image is {len(content)} bytes, limit is {self._max_bytes} bytes"
            )

        data_url = f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"
        images = self.all()
        images[location] = data_url
        self._store.set(self._key, json.dumps(images))
        return data_url

    def remove(self, location: str) -> bool:
        images = self.all()
        if location not in images:
            return False
        del images[location]
        try:
            self._store.set(self._key, json.dumps(images))
        except StorageError as e:
            logger.error(f"Failed to remove location image: {e}")
            return False
        return True
