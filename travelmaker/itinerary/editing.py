"""Trip and itinerary mutations.

Every operation returns a new Trip; the input is never modified. Callers
persist the result through TripRepository.upsert.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta

from travelmaker.db.repositories import new_trip_id
from travelmaker.itinerary.locale import location_emoji
from travelmaker.models.suggestion import NormalizedDay
from travelmaker.models.trip import Activity, ActivityDraft, Trip, TripDraft, new_activity_id

logger = logging.getLogger(__name__)


class ActivityNotFoundError(LookupError):
    """No activity at the given date and position."""

    pass


def create_trip(
    draft: TripDraft, existing_ids: Iterable[int] = (), now: datetime | None = None
) -> Trip:
    """Create a trip from validated input with an empty itinerary."""
    now = now or datetime.now(UTC)
    return Trip(
        id=new_trip_id(existing_ids, int(now.timestamp() * 1000)),
        location=draft.location,
        start_date=draft.start_date,
        end_date=draft.end_date,
        participants=list(draft.participants),
        itinerary={},
        emoji=location_emoji(draft.location),
        created_at=now,
    )


def trip_dates(trip: Trip) -> list[str]:
    """Every ISO date from start to end, inclusive."""
    span = (trip.end_date - trip.start_date).days
    return [(trip.start_date + timedelta(days=i)).isoformat() for i in range(span + 1)]


def all_activities(trip: Trip) -> list[Activity]:
    """Flattened activities in date-key order, then list order."""
    return [a for date_key in sorted(trip.itinerary) for a in trip.itinerary[date_key]]


def _copy_itinerary(trip: Trip) -> dict[str, list[Activity]]:
    return {date_key: list(activities) for date_key, activities in trip.itinerary.items()}


def _require(activities: Sequence[Activity], date_key: str, index: int) -> None:
    if not 0 <= index < len(activities):
        raise ActivityNotFoundError(f"No activity #{index} on {date_key}")


def add_activity(trip: Trip, date_key: str, draft: ActivityDraft) -> Trip:
    """Append a new activity to the end of a date's list."""
    itinerary = _copy_itinerary(trip)
    itinerary.setdefault(date_key, []).append(draft.to_activity())
    return trip.model_copy(update={"itinerary": itinerary})


def update_activity(trip: Trip, date_key: str, index: int, draft: ActivityDraft) -> Trip:
    """Replace the activity at index, keeping its identifier and position."""
    itinerary = _copy_itinerary(trip)
    activities = itinerary.get(date_key, [])
    _require(activities, date_key, index)
    activities[index] = draft.to_activity(activity_id=activities[index].id)
    return trip.model_copy(update={"itinerary": itinerary})


def delete_activity(trip: Trip, date_key: str, index: int) -> Trip:
    """Remove the activity at index; an emptied date is dropped from the map."""
    itinerary = _copy_itinerary(trip)
    activities = itinerary.get(date_key, [])
    _require(activities, date_key, index)
    del activities[index]
    if not activities:
        del itinerary[date_key]
    return trip.model_copy(update={"itinerary": itinerary})


def reorder_activity(trip: Trip, date_key: str, source: int, destination: int) -> Trip:
    """Move one activity to a new position.

    Only the position changes; start and end times stay as entered, so the
    resulting list is not necessarily time-sorted.
    """
    itinerary = _copy_itinerary(trip)
    activities = itinerary.get(date_key, [])
    _require(activities, date_key, source)
    _require(activities, date_key, destination)
    moved = activities.pop(source)
    activities.insert(destination, moved)
    return trip.model_copy(update={"itinerary": itinerary})


def _dedup_key(activity: Activity) -> tuple[str, str, str]:
    return (activity.start_time, activity.end_time, activity.content.strip())


def _suggestion_date(trip: Trip, day: NormalizedDay) -> str | None:
    """The day's own date when it falls inside the trip, else its position."""
    try:
        day_date = date.fromisoformat(day.date)
    except ValueError:
        day_date = None

    if day_date is not None and trip.start_date <= day_date <= trip.end_date:
        return day_date.isoformat()

    span = (trip.end_date - trip.start_date).days
    if not 1 <= day.day_index <= span + 1:
        return None
    return (trip.start_date + timedelta(days=day.day_index - 1)).isoformat()


def merge_suggestions(
    trip: Trip,
    days: Sequence[NormalizedDay],
    selected: set[tuple[int, int]] | None = None,
) -> tuple[Trip, int]:
    """Merge suggested activities into the trip's itinerary.

    Args:
        trip: Trip to merge into
        days: Normalized suggestion days
        selected: (day position, activity position) pairs to take; all if None

    Returns:
        (updated trip, number of activities added). Activities already present
        on the same date with the same times and content are skipped.
    """
    itinerary = _copy_itinerary(trip)
    added = 0

    for day_pos, day in enumerate(days):
        date_key = _suggestion_date(trip, day)
        if date_key is None:
            logger.warning(f"Skipping suggestion day {day.day_index} outside trip dates")
            continue

        for activity_pos, activity in enumerate(day.activities):
            if selected is not None and (day_pos, activity_pos) not in selected:
                continue

            existing = itinerary.setdefault(date_key, [])
            if _dedup_key(activity) in {_dedup_key(a) for a in existing}:
                logger.debug(f"Skipping duplicate suggestion on {date_key}: {activity.content}")
                continue

            existing.append(activity.model_copy(update={"id": new_activity_id()}))
            added += 1

    itinerary = {k: v for k, v in itinerary.items() if v}
    merged = trip.model_copy(update={"itinerary": itinerary})

    if added and not merged.currency_code:
        currency = next((d.currency for d in days if d.currency is not None), None)
        if currency is not None:
            merged = merged.with_currency(currency)

    return merged, added
