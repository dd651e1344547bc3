"""Derived cost aggregates over an itinerary map.

All functions accept either Activity models or raw mappings (as loaded from
storage). Malformed entries never raise; they contribute 0.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from travelmaker.models.common import Category, coerce_category, parse_cost
from travelmaker.models.trip import Activity

ItineraryLike = Mapping[str, Sequence[Activity | Mapping[str, Any]] | None]


def activity_cost(activity: Any) -> float:
    """Cost of one activity, 0 when missing or unparseable."""
    if isinstance(activity, Activity):
        return activity.cost
    if isinstance(activity, Mapping):
        return parse_cost(activity.get("cost"))
    return 0.0


def activity_category(activity: Any) -> Category:
    """Category of one activity, other when missing or unrecognized."""
    if isinstance(activity, Activity):
        return activity.category
    if isinstance(activity, Mapping):
        return coerce_category(activity.get("category"))
    return Category.other


def total_cost(itinerary: ItineraryLike | None) -> float:
    """Sum of every activity's cost across every date."""
    if not itinerary:
        return 0.0
    return sum(cost_for_date(itinerary, date_key) for date_key in itinerary)


def cost_for_date(itinerary: ItineraryLike | None, date_key: str) -> float:
    """Sum of costs on one date; 0 if the date is absent."""
    if not itinerary:
        return 0.0
    activities = itinerary.get(date_key) or []
    return sum(activity_cost(a) for a in activities)


def category_breakdown(itinerary: ItineraryLike | None) -> dict[str, float]:
    """Summed cost per category label.

    Order of the result is unspecified; use sorted_breakdown for display.
    """
    breakdown: dict[str, float] = {}
    if not itinerary:
        return breakdown

    for activities in itinerary.values():
        for activity in activities or []:
            label = activity_category(activity).value
            breakdown[label] = breakdown.get(label, 0.0) + activity_cost(activity)

    return breakdown


def sorted_breakdown(breakdown: Mapping[str, float]) -> list[tuple[str, float]]:
    """Breakdown entries ordered by summed cost, largest first."""
    return sorted(breakdown.items(), key=lambda item: item[1], reverse=True)
