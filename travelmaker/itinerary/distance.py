"""Distances between consecutive activities of a day.

Each adjacent pair gets a DistanceLabel. Lookups for a day run concurrently
and are joined; one failed lookup only degrades its own pair. Results are
tagged with the date version they were started for, and DistanceTracker
discards results that finish after the day was edited or switched away from.
"""

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Mapping, Sequence
from enum import Enum
from typing import TypeVar

from pydantic import BaseModel

from travelmaker.models.common import Coordinates
from travelmaker.models.trip import Activity

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

CoordinateResolver = Callable[[str], Awaitable[Coordinates | None]]

V = TypeVar("V")


class DistanceStatus(str, Enum):
    """Outcome of one pairwise distance computation."""

    computed = "computed"
    same_location = "same_location"
    insufficient_data = "insufficient_data"
    unavailable = "unavailable"


class DistanceLabel(BaseModel):
    """Display label for the hop between activity i and i+1."""

    status: DistanceStatus
    km: float | None = None
    text: str


SAME_LOCATION = DistanceLabel(
    status=DistanceStatus.same_location, km=0.0, text="same location (0 km)"
)
INSUFFICIENT_DATA = DistanceLabel(
    status=DistanceStatus.insufficient_data, text="insufficient location data"
)
UNAVAILABLE = DistanceLabel(status=DistanceStatus.unavailable, text="distance unavailable")


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between two points in kilometers."""
    delta_lat = math.radians(b.lat - a.lat)
    delta_lng = math.radians(b.lng - a.lng)
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lng / 2) ** 2
    )
    h = min(1.0, h)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def format_distance(distance_km: float) -> str:
    """Under 1 km in meters, under 10 km with one decimal, else whole km."""
    if distance_km < 1:
        return f"~{round(distance_km * 1000)} m"
    if distance_km < 10:
        return f"~{distance_km:.1f} km"
    return f"~{round(distance_km)} km"


def distance_key(date_key: str, activity_index: int) -> str:
    """Key for the hop that starts at activity_index on date_key."""
    return f"{date_key}-{activity_index}"


def remove_distance_entries(distance_map: Mapping[str, V], date_key: str) -> dict[str, V]:
    """Copy of distance_map without the given date's entries."""
    prefix = f"{date_key}-"
    return {k: v for k, v in distance_map.items() if not k.startswith(prefix)}


async def distance_between(
    origin: Activity, destination: Activity, resolve: CoordinateResolver
) -> DistanceLabel:
    """Label for one hop. Never raises."""
    if not origin.location.strip() or not destination.location.strip():
        return INSUFFICIENT_DATA

    # Exact string match only; "Shibuya" and "shibuya " are different places here
    if origin.location == destination.location:
        return SAME_LOCATION

    try:
        coord_a, coord_b = await asyncio.gather(
            resolve(origin.location), resolve(destination.location)
        )
    except Exception as e:
        logger.warning(f"Coordinate lookup failed: {e}")
        return UNAVAILABLE

    if coord_a is None or coord_b is None:
        return UNAVAILABLE

    km = haversine_km(coord_a, coord_b)
    return DistanceLabel(status=DistanceStatus.computed, km=km, text=format_distance(km))


async def compute_day_distances(
    activities: Sequence[Activity], resolve: CoordinateResolver
) -> list[DistanceLabel]:
    """Labels for every adjacent pair, in order (len(activities) - 1 items)."""
    pairs = zip(activities, activities[1:])
    return list(await asyncio.gather(*(distance_between(a, b, resolve) for a, b in pairs)))


class DistanceTracker:
    """Per-date distance labels with version tags against stale results."""

    def __init__(self, resolve: CoordinateResolver) -> None:
        self._resolve = resolve
        self._labels: dict[str, DistanceLabel] = {}
        self._versions: dict[str, int] = {}
        self.active_date: str | None = None

    @property
    def labels(self) -> dict[str, DistanceLabel]:
        return dict(self._labels)

    def version(self, date_key: str) -> int:
        return self._versions.get(date_key, 0)

    def invalidate(self, date_key: str) -> int:
        """Drop a date's labels and bump its version; returns the new version."""
        self._labels = remove_distance_entries(self._labels, date_key)
        self._versions[date_key] = self.version(date_key) + 1
        return self._versions[date_key]

    def set_active_date(self, date_key: str) -> None:
        """Switching days invalidates both the old and the new day."""
        if self.active_date is not None and self.active_date != date_key:
            self.invalidate(self.active_date)
        self.active_date = date_key
        self.invalidate(date_key)

    async def refresh(self, date_key: str, activities: Sequence[Activity]) -> bool:
        """Recompute a date's labels.

        Returns:
            True if applied, False if the date changed while computing
        """
        started_version = self.invalidate(date_key)
        labels = await compute_day_distances(activities, self._resolve)

        if self.version(date_key) != started_version:
            logger.debug(f"Discarding stale distances for {date_key}")
            return False
        if self.active_date is not None and self.active_date != date_key:
            logger.debug(f"Discarding distances for inactive date {date_key}")
            return False

        for i, label in enumerate(labels):
            self._labels[distance_key(date_key, i)] = label
        return True
