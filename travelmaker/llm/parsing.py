"""Defensive parsing of model output into normalized suggestion days.

The model is asked for a JSON array but may wrap it in prose, fence it in a
code block, or stop mid-structure. Parsing is a first-success-wins pipeline:

1. direct     - the whole text is JSON
2. fenced     - the interior of a ``` / ```json block
3. scanned    - the first balanced [...] or {...} span found by JsonSpanScanner
4. repaired   - an unbalanced span closed by appending quote/brace/bracket

A stage succeeds only when its value normalizes to days holding at least one
activity.

Repair tracks bracket and brace *counts*, not a stack, and closes every open
brace before every open bracket. That is right when truncation happens inside
objects nested in arrays (e.g. ``[{"a": "x``) and wrong when types interleave
deeper (``[{"a": [1, 2``), in which case the repaired text fails to parse and
the stage yields nothing.
"""

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any

from pydantic import ValidationError

from travelmaker.models.common import CurrencyInfo
from travelmaker.models.suggestion import NormalizedDay
from travelmaker.models.trip import Activity

logger = logging.getLogger(__name__)

RAW_PREVIEW_CHARS = 200

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)

# Container keys checked in priority order on object responses
_DAY_LIST_KEYS = ("itinerary", "data", "days")

_START_KEYS = ("startTime", "start_time", "start")
_END_KEYS = ("endTime", "end_time", "end")
_CATEGORY_KEYS = ("category", "type", "kind")
_DAY_INDEX_KEYS = ("dayIndex", "day_index", "day")


class SuggestionGenerationError(Exception):
    """Model call failed or returned no usable content."""

    pass


class ContentParseError(SuggestionGenerationError):
    """No parsing stage produced a usable structure."""

    def __init__(self, message: str, raw_text: str) -> None:
        self.raw_preview = raw_text[:RAW_PREVIEW_CHARS]
        super().__init__(f"{message}: {self.raw_preview!r}")


@dataclass(frozen=True)
class ParsedValue:
    """A decoded JSON value and the stage that produced it."""

    value: Any
    stage: str


class ScanState(str, Enum):
    """JsonSpanScanner states."""

    NORMAL = "normal"
    IN_STRING = "in_string"
    ESCAPED = "escaped"


@dataclass
class JsonSpan:
    """Result of scanning from the first [ or {."""

    text: str
    balanced: bool
    brace_depth: int
    bracket_depth: int
    state: ScanState


class JsonSpanScanner:
    """Bracket/brace depth walk that respects string literals and escapes."""

    def __init__(self) -> None:
        self.state = ScanState.NORMAL
        self.brace_depth = 0
        self.bracket_depth = 0

    def feed(self, ch: str) -> None:
        """Advance the state machine by one character."""
        if self.state is ScanState.ESCAPED:
            self.state = ScanState.IN_STRING
        elif self.state is ScanState.IN_STRING:
            if ch == "\\":
                self.state = ScanState.ESCAPED
            elif ch == '"':
                self.state = ScanState.NORMAL
        elif ch == '"':
            self.state = ScanState.IN_STRING
        elif ch == "{":
            self.brace_depth += 1
        elif ch == "}":
            self.brace_depth -= 1
        elif ch == "[":
            self.bracket_depth += 1
        elif ch == "]":
            self.bracket_depth -= 1

    @property
    def closed(self) -> bool:
        return self.state is ScanState.NORMAL and self.brace_depth <= 0 and self.bracket_depth <= 0

    def scan(self, text: str) -> JsonSpan | None:
        """Find the minimal span starting at the first [ or {."""
        starts = [i for i in (text.find("["), text.find("{")) if i >= 0]
        if not starts:
            return None
        start = min(starts)

        for offset, ch in enumerate(text[start:]):
            self.feed(ch)
            if self.closed:
                end = start + offset + 1
                return JsonSpan(text[start:end], True, 0, 0, self.state)

        return JsonSpan(
            text[start:], False, max(self.brace_depth, 0), max(self.bracket_depth, 0), self.state
        )


def repair_truncated_json(span: JsonSpan) -> str:
    """Close an open string, then all open braces, then all open brackets."""
    text = span.text
    if span.state is ScanState.ESCAPED:
        text = text[:-1]
    if span.state is not ScanState.NORMAL:
        text += '"'
    else:
        text = text.rstrip().rstrip(",")
    return text + "}" * span.brace_depth + "]" * span.bracket_depth


def _loads(text: str) -> Any | None:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None


def _is_container(value: Any) -> bool:
    return isinstance(value, list | dict)


def parse_direct(raw_text: str) -> ParsedValue | None:
    value = _loads(raw_text.strip())
    return ParsedValue(value, "direct") if _is_container(value) else None


def parse_fenced(raw_text: str) -> ParsedValue | None:
    match = _FENCE_RE.search(raw_text)
    if not match:
        return None
    value = _loads(match.group(1).strip())
    return ParsedValue(value, "fenced") if _is_container(value) else None


def parse_scanned(raw_text: str) -> ParsedValue | None:
    span = JsonSpanScanner().scan(raw_text)
    if span is None or not span.balanced:
        return None
    value = _loads(span.text)
    return ParsedValue(value, "scanned") if _is_container(value) else None


def parse_repaired(raw_text: str) -> ParsedValue | None:
    span = JsonSpanScanner().scan(raw_text)
    if span is None or span.balanced:
        return None
    repaired = repair_truncated_json(span)
    value = _loads(repaired)
    if not _is_container(value):
        logger.debug(f"Truncation repair did not yield valid JSON: {repaired[-40:]!r}")
        return None
    return ParsedValue(value, "repaired")


PARSE_STAGES: tuple[Callable[[str], ParsedValue | None], ...] = (
    parse_direct,
    parse_fenced,
    parse_scanned,
    parse_repaired,
)


def _first_key(entry: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if entry.get(key) not in (None, ""):
            return entry[key]
    return None


def looks_like_activity(entry: Any) -> bool:
    """Has start/end times and a category-like field."""
    return (
        isinstance(entry, dict)
        and _first_key(entry, _START_KEYS) is not None
        and _first_key(entry, _END_KEYS) is not None
        and _first_key(entry, _CATEGORY_KEYS) is not None
    )


def _extract_entries(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        for key in _DAY_LIST_KEYS:
            if isinstance(value.get(key), list):
                return value[key]
        return [value]
    return []


def _coerce_day_index(entry: dict[str, Any], position: int) -> int:
    raw = _first_key(entry, _DAY_INDEX_KEYS)
    if isinstance(raw, bool):
        return position + 1
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        return position + 1


def _positional_date(start_date: date | None, day_index: int) -> str:
    if start_date is None:
        return ""
    try:
        return (start_date + timedelta(days=max(day_index, 1) - 1)).isoformat()
    except OverflowError:
        return ""


def _coerce_activities(raw: list[Any]) -> list[Activity]:
    activities: list[Activity] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            activities.append(Activity.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Dropping unusable activity: {e.error_count()} error(s)")
    return activities


def _coerce_currency(source: Any) -> CurrencyInfo | None:
    """Currency metadata as {currency: {...}} or flat currencyCode/Symbol/Name."""
    if not isinstance(source, dict):
        return None

    nested = source.get("currency")
    if isinstance(nested, dict):
        code, symbol, name = nested.get("code"), nested.get("symbol"), nested.get("name")
    else:
        code = source.get("currencyCode") or (nested if isinstance(nested, str) else None)
        symbol, name = source.get("currencySymbol"), source.get("currencyName")

    if not isinstance(code, str) or not code.strip():
        return None
    code = code.strip().upper()
    return CurrencyInfo(
        code=code,
        symbol=symbol if isinstance(symbol, str) and symbol else code,
        name=name if isinstance(name, str) and name else code,
    )


def _coerce_day(
    entry: Any, position: int, start_date: date | None, default_currency: CurrencyInfo | None
) -> NormalizedDay | None:
    if not isinstance(entry, dict):
        return None

    if isinstance(entry.get("activities"), list):
        raw_activities = entry["activities"]
    elif isinstance(entry.get("items"), list):
        raw_activities = entry["items"]
    elif looks_like_activity(entry):
        raw_activities = [entry]
    else:
        raw_activities = []

    day_index = _coerce_day_index(entry, position)
    raw_date = entry.get("date")
    if isinstance(raw_date, str) and raw_date:
        day_date = raw_date
    else:
        day_date = _positional_date(start_date, day_index)

    return NormalizedDay(
        day_index=day_index,
        date=day_date,
        activities=_coerce_activities(raw_activities),
        currency=_coerce_currency(entry) or default_currency,
    )


def normalize_parsed(value: Any, start_date: date | None = None) -> list[NormalizedDay]:
    """Coerce any decoded JSON value into normalized days (possibly empty)."""
    entries = _extract_entries(value)
    if not entries:
        return []

    default_currency = _coerce_currency(value) if isinstance(value, dict) else None

    if all(looks_like_activity(e) for e in entries):
        return [
            NormalizedDay(
                day_index=1,
                date=start_date.isoformat() if start_date else "",
                activities=_coerce_activities(entries),
                currency=default_currency,
            )
        ]

    days: list[NormalizedDay] = []
    for position, entry in enumerate(entries):
        day = _coerce_day(entry, position, start_date, default_currency)
        if day is not None:
            days.append(day)
    return days


def parse_model_response(raw_text: str, start_date: date | None = None) -> list[NormalizedDay]:
    """Run the parsing cascade over raw model text.

    Args:
        raw_text: First candidate's text content
        start_date: Requested start date, used for positional day dates

    Returns:
        Normalized days, at least one

    Raises:
        ContentParseError: Every stage failed to produce a usable structure
    """
    if not raw_text or not raw_text.strip():
        raise ContentParseError("Empty model response", raw_text or "")

    for stage in PARSE_STAGES:
        parsed = stage(raw_text)
        if parsed is None:
            continue
        days = normalize_parsed(parsed.value, start_date)
        if any(day.activities for day in days):
            logger.info(f"Parsed {len(days)} suggestion day(s) via {parsed.stage} stage")
            return days

    raise ContentParseError("Could not extract itinerary JSON from model response", raw_text)
