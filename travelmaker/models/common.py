"""Common types and enums shared across all models."""

import math
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Category(str, Enum):
    """Activity category."""

    transport = "transport"
    lodging = "lodging"
    dining = "dining"
    sightseeing = "sightseeing"
    shopping = "shopping"
    other = "other"


# Labels seen in persisted trips and model output, mapped onto the enum
CATEGORY_ALIASES: dict[str, Category] = {
    "交通": Category.transport,
    "住宿": Category.lodging,
    "餐廳": Category.dining,
    "餐厅": Category.dining,
    "景點": Category.sightseeing,
    "景点": Category.sightseeing,
    "購物": Category.shopping,
    "购物": Category.shopping,
    "其他": Category.other,
    "transportation": Category.transport,
    "transit": Category.transport,
    "hotel": Category.lodging,
    "accommodation": Category.lodging,
    "food": Category.dining,
    "meal": Category.dining,
    "restaurant": Category.dining,
    "attraction": Category.sightseeing,
    "sight": Category.sightseeing,
    "shop": Category.shopping,
}

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def coerce_category(value: Any) -> Category:
    """Map a free-form category label onto Category, falling back to other."""
    if isinstance(value, Category):
        return value
    if not isinstance(value, str):
        return Category.other

    label = value.strip()
    try:
        return Category(label.lower())
    except ValueError:
        pass

    return CATEGORY_ALIASES.get(label, CATEGORY_ALIASES.get(label.lower(), Category.other))


def parse_cost(value: Any) -> float:
    """Parse a cost the lenient way: leading number or 0.

    Strings such as "1200 yen" yield 1200. Missing, non-numeric, negative and
    non-finite values yield 0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0

    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if not match:
            return 0.0
        number = float(match.group(0))
    else:
        return 0.0

    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


class Coordinates(BaseModel):
    """Geographic coordinates (WGS84)."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class CurrencyInfo(BaseModel):
    """Display currency."""

    code: str
    symbol: str
    name: str
