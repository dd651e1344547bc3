"""Trip and activity models - persisted shapes and validated user input."""

import uuid
from datetime import date, datetime
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from travelmaker.models.common import Category, CurrencyInfo, coerce_category, parse_cost

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

# Alternate keys the model endpoint uses for activity fields
_ACTIVITY_SYNONYMS: dict[str, tuple[str, ...]] = {
    "content": ("name", "title", "activity", "description"),
    "location": ("place", "address", "venue"),
    "cost": ("price", "estimatedCost", "estimated_cost"),
    "category": ("type", "kind"),
    "notes": ("note", "tips"),
    "startTime": ("start",),
    "endTime": ("end",),
}

_FIELD_NAMES = {"startTime": "start_time", "endTime": "end_time"}


def new_activity_id() -> str:
    """Generate a stable activity identifier."""
    return uuid.uuid4().hex


class Activity(BaseModel):
    """Single scheduled item on one date of a trip.

    Validation is lenient: persisted records and model output are coerced
    rather than rejected. Use ActivityDraft for user input.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_activity_id)
    start_time: str = Field("", alias="startTime")
    end_time: str = Field("", alias="endTime")
    category: Category = Category.other
    content: str = ""
    location: str = ""
    cost: float = 0.0
    notes: str = ""

    @model_validator(mode="before")
    @classmethod
    def absorb_synonyms(cls, data: Any) -> Any:
        """Fill missing fields from alternate keys."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        for target, synonyms in _ACTIVITY_SYNONYMS.items():
            field_name = _FIELD_NAMES.get(target, target)
            if data.get(target) not in (None, "") or data.get(field_name) not in (None, ""):
                continue
            for synonym in synonyms:
                if data.get(synonym) not in (None, ""):
                    data[target] = data[synonym]
                    break
        return data

    @field_validator("id", mode="before")
    @classmethod
    def backfill_id(cls, v: Any) -> str:
        """Assign an identifier to records persisted without one."""
        if v is None or v == "":
            return new_activity_id()
        return str(v)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Category:
        return coerce_category(v)

    @field_validator("cost", mode="before")
    @classmethod
    def normalize_cost(cls, v: Any) -> float:
        return parse_cost(v)

    @field_validator("start_time", "end_time", "content", "location", "notes", mode="before")
    @classmethod
    def normalize_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)


class ActivityDraft(BaseModel):
    """User-entered activity, validated before any itinerary mutation."""

    model_config = ConfigDict(populate_by_name=True)

    start_time: str = Field(..., alias="startTime", pattern=TIME_PATTERN)
    end_time: str = Field(..., alias="endTime", pattern=TIME_PATTERN)
    category: Category = Category.sightseeing
    content: str = Field(..., min_length=1)
    location: str = ""
    cost: float = Field(0.0, ge=0)
    notes: str = ""

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Category:
        return coerce_category(v)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("end_time")
    @classmethod
    def validate_end_after_start(cls, v: str, info: ValidationInfo) -> str:
        """Ensure end_time > start_time (zero-padded HH:MM compares lexically)."""
        if "start_time" in info.data and v <= info.data["start_time"]:
            raise ValueError("end_time must be after start_time")
        return v

    def to_activity(self, activity_id: str | None = None) -> Activity:
        """Build the persisted activity, keeping activity_id when editing."""
        data = self.model_dump()
        if activity_id:
            data["id"] = activity_id
        return Activity.model_validate(data)


class Trip(BaseModel):
    """User-defined travel plan with a per-date itinerary."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    location: str
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")
    participants: list[str] = Field(default_factory=list)
    itinerary: dict[str, list[Activity]] = Field(default_factory=dict)
    currency_code: str | None = Field(None, alias="currencyCode")
    currency_symbol: str | None = Field(None, alias="currencySymbol")
    currency_name: str | None = Field(None, alias="currencyName")
    emoji: str | None = None
    created_at: datetime | None = Field(None, alias="createdAt")

    @field_validator("itinerary", mode="before")
    @classmethod
    def drop_malformed_entries(cls, v: Any) -> Any:
        """Keep only list-shaped days and mapping-shaped activities."""
        if not isinstance(v, dict):
            return {}
        cleaned: dict[str, list[Any]] = {}
        for date_key, activities in v.items():
            if not isinstance(activities, list):
                continue
            cleaned[str(date_key)] = [a for a in activities if isinstance(a, dict | Activity)]
        return cleaned

    def with_currency(self, currency: CurrencyInfo) -> "Trip":
        """Return a copy carrying the given display currency."""
        return self.model_copy(
            update={
                "currency_code": currency.code,
                "currency_symbol": currency.symbol,
                "currency_name": currency.name,
            }
        )


class TripDraft(BaseModel):
    """Trip-initiation input, validated before a trip is created."""

    model_config = ConfigDict(populate_by_name=True)

    location: str = Field(..., min_length=1)
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")
    participants: Annotated[list[str], Field(min_length=1)]

    @field_validator("location", mode="before")
    @classmethod
    def strip_location(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date, info: ValidationInfo) -> date:
        """Ensure end_date >= start_date."""
        if "start_date" in info.data and v < info.data["start_date"]:
            raise ValueError("end_date must be >= start_date")
        return v

    @field_validator("participants", mode="before")
    @classmethod
    def drop_blank_participants(cls, v: Any) -> Any:
        """Blank names are ignored; at least one must remain."""
        if isinstance(v, list):
            return [p.strip() for p in v if isinstance(p, str) and p.strip()]
        return v
