"""Tests for trip creation, activity editing and suggestion merge."""

from datetime import UTC, date, datetime

import pytest

from travelmaker.itinerary.editing import (
    ActivityNotFoundError,
    add_activity,
    all_activities,
    create_trip,
    delete_activity,
    merge_suggestions,
    reorder_activity,
    trip_dates,
    update_activity,
)
from travelmaker.models.common import Category, CurrencyInfo
from travelmaker.models.suggestion import NormalizedDay
from travelmaker.models.trip import Activity, ActivityDraft, Trip, TripDraft

YEN = CurrencyInfo(code="JPY", symbol="¥", name="Japanese Yen")


def _draft(start: str, end: str, content: str, cost: float = 0) -> ActivityDraft:
    return ActivityDraft(start_time=start, end_time=end, content=content, cost=cost)


def _suggested(start: str, end: str, content: str) -> Activity:
    return Activity(start_time=start, end_time=end, category="sightseeing", content=content)


def test_create_trip_assigns_id_emoji_and_empty_itinerary() -> None:
    now = datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC)
    draft = TripDraft(
        location="Tokyo, Japan",
        start_date=date(2025, 3, 1),
        end_date=date(2025, 3, 3),
        participants=["Amy", "  "],
    )

    trip = create_trip(draft, existing_ids=[], now=now)

    assert trip.id == int(now.timestamp() * 1000)
    assert trip.itinerary == {}
    assert trip.participants == ["Amy"]
    assert trip.emoji == "🇯🇵"
    assert trip.created_at == now


def test_create_trip_id_unique_against_existing() -> None:
    now = datetime(2025, 1, 2, tzinfo=UTC)
    taken = int(now.timestamp() * 1000)
    draft = TripDraft(
        location="Oslo", start_date=date(2025, 3, 1), end_date=date(2025, 3, 1), participants=["A"]
    )

    trip = create_trip(draft, existing_ids=[taken, taken + 1], now=now)

    assert trip.id == taken + 2


def test_trip_dates_inclusive(sample_trip: Trip) -> None:
    assert trip_dates(sample_trip) == ["2025-03-01", "2025-03-02", "2025-03-03"]


def test_add_activity_does_not_mutate_input(sample_trip: Trip) -> None:
    updated = add_activity(sample_trip, "2025-03-02", _draft("10:00", "11:00", "Ueno Park"))

    assert "2025-03-02" not in sample_trip.itinerary
    assert [a.content for a in updated.itinerary["2025-03-02"]] == ["Ueno Park"]
    assert updated.itinerary["2025-03-02"][0].id


def test_update_activity_keeps_identifier(sample_trip: Trip) -> None:
    updated = update_activity(
        sample_trip, "2025-03-01", 1, _draft("12:00", "14:00", "Asakusa walk", cost=300)
    )

    activity = updated.itinerary["2025-03-01"][1]
    assert activity.id == "a2"
    assert (activity.start_time, activity.content, activity.cost) == ("12:00", "Asakusa walk", 300)


def test_update_missing_activity_raises(sample_trip: Trip) -> None:
    with pytest.raises(ActivityNotFoundError):
        update_activity(sample_trip, "2025-03-02", 0, _draft("10:00", "11:00", "x"))


def test_delete_last_activity_drops_date(sample_trip: Trip) -> None:
    once = delete_activity(sample_trip, "2025-03-01", 0)
    twice = delete_activity(once, "2025-03-01", 0)

    assert [a.id for a in once.itinerary["2025-03-01"]] == ["a2"]
    assert "2025-03-01" not in twice.itinerary


def test_reorder_round_trip_restores_order_and_times(sample_trip: Trip) -> None:
    moved = reorder_activity(sample_trip, "2025-03-01", 0, 1)
    restored = reorder_activity(moved, "2025-03-01", 1, 0)

    assert [a.id for a in moved.itinerary["2025-03-01"]] == ["a2", "a1"]
    # Position changes never rewrite times
    assert moved.itinerary["2025-03-01"][0].start_time == "11:00"
    assert restored.itinerary == sample_trip.itinerary


def test_reorder_out_of_range_raises(sample_trip: Trip) -> None:
    with pytest.raises(ActivityNotFoundError):
        reorder_activity(sample_trip, "2025-03-01", 0, 5)


def test_all_activities_in_date_order(sample_trip: Trip) -> None:
    trip = add_activity(sample_trip, "2025-03-02", _draft("10:00", "11:00", "Ueno Park"))

    assert [a.content for a in all_activities(trip)] == [
        "Breakfast at Tsukiji",
        "Senso-ji",
        "Ueno Park",
    ]


def test_merge_adds_new_and_skips_duplicates(sample_trip: Trip) -> None:
    days = [
        NormalizedDay(
            day_index=1,
            date="2025-03-01",
            activities=[
                _suggested("09:00", "10:00", "Breakfast at Tsukiji "),
                _suggested("15:00", "17:00", "Tokyo Skytree"),
            ],
        ),
        NormalizedDay(
            day_index=2, date="", activities=[_suggested("10:00", "12:00", "Meiji Shrine")]
        ),
    ]

    merged, added = merge_suggestions(sample_trip, days)

    assert added == 2
    assert [a.content for a in merged.itinerary["2025-03-01"]] == [
        "Breakfast at Tsukiji",
        "Senso-ji",
        "Tokyo Skytree",
    ]
    assert [a.content for a in merged.itinerary["2025-03-02"]] == ["Meiji Shrine"]
    assert merged.itinerary["2025-03-02"][0].id != days[1].activities[0].id


def test_merge_twice_adds_nothing(sample_trip: Trip) -> None:
    days = [
        NormalizedDay(
            day_index=1, date="2025-03-01", activities=[_suggested("15:00", "17:00", "Skytree")]
        )
    ]

    once, _ = merge_suggestions(sample_trip, days)
    twice, added = merge_suggestions(once, days)

    assert added == 0
    assert twice.itinerary == once.itinerary


def test_merge_only_selected(sample_trip: Trip) -> None:
    days = [
        NormalizedDay(
            day_index=3,
            date="2025-03-03",
            activities=[
                _suggested("09:00", "10:00", "A"),
                _suggested("10:00", "11:00", "B"),
            ],
        )
    ]

    merged, added = merge_suggestions(sample_trip, days, selected={(0, 1)})

    assert added == 1
    assert [a.content for a in merged.itinerary["2025-03-03"]] == ["B"]


def test_merge_skips_days_outside_trip(sample_trip: Trip) -> None:
    days = [
        NormalizedDay(
            day_index=9, date="2025-07-01", activities=[_suggested("09:00", "10:00", "Far away")]
        )
    ]

    merged, added = merge_suggestions(sample_trip, days)

    assert added == 0
    assert merged.itinerary == sample_trip.itinerary


def test_merge_stores_currency_once(sample_trip: Trip) -> None:
    days = [
        NormalizedDay(
            day_index=2,
            date="2025-03-02",
            activities=[_suggested("09:00", "10:00", "Shibuya")],
            currency=YEN,
        )
    ]

    merged, _ = merge_suggestions(sample_trip, days)
    assert (merged.currency_code, merged.currency_symbol) == ("JPY", "¥")

    won = CurrencyInfo(code="KRW", symbol="₩", name="Won")
    later = [day.model_copy(update={"currency": won, "date": "2025-03-03"}) for day in days]
    remerged, _ = merge_suggestions(merged, later)
    assert remerged.currency_code == "JPY"


def test_merged_activities_keep_category(sample_trip: Trip) -> None:
    days = [
        NormalizedDay(
            day_index=2, date="2025-03-02", activities=[_suggested("09:00", "10:00", "X")]
        )
    ]

    merged, _ = merge_suggestions(sample_trip, days)

    assert merged.itinerary["2025-03-02"][0].category is Category.sightseeing
