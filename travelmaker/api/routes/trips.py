"""Trip endpoints - CRUD, itinerary editing, costs, distances and AI suggestions."""

import logging
from functools import partial
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from travelmaker.adapters.exchange_rate import (
    ExchangeRateService,
    FormattedCost,
    format_cost_with_exchange_rate,
)
from travelmaker.adapters.geocoding import GeocodeCache, resolve_coordinates
from travelmaker.api.deps import (
    get_exchange_rate_service,
    get_geocode_cache,
    get_http_client,
    get_metrics,
    get_suggestion_service,
    get_trip_repository,
)
from travelmaker.config import Settings, get_settings
from travelmaker.db.repositories import TripRepository
from travelmaker.itinerary.aggregates import (
    category_breakdown,
    cost_for_date,
    sorted_breakdown,
    total_cost,
)
from travelmaker.itinerary.distance import DistanceLabel, DistanceTracker
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
from travelmaker.itinerary.locale import currency_info, resolve_display_currency
from travelmaker.llm.parsing import ContentParseError, SuggestionGenerationError
from travelmaker.llm.service import SuggestionService
from travelmaker.models.common import CurrencyInfo
from travelmaker.models.suggestion import NormalizedDay, SuggestionResult
from travelmaker.models.trip import ActivityDraft, Trip, TripDraft
from travelmaker.utils.metrics import UpstreamMetrics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])


class TripSummaryResponse(BaseModel):
    """Response for GET /trips/{trip_id}/summary."""

    trip_id: int
    currency: CurrencyInfo
    total: FormattedCost
    cost_by_date: dict[str, float]
    category_breakdown: list[tuple[str, float]]


class DayDistancesResponse(BaseModel):
    """Response for GET /trips/{trip_id}/days/{date_key}/distances."""

    date: str
    distances: dict[str, DistanceLabel] = Field(
        ..., description="Keyed by date and the index of the hop's first activity"
    )


class SuggestionOptions(BaseModel):
    """Request body for POST /trips/{trip_id}/suggestions."""

    use_cache: bool = True


class AcceptSuggestionsRequest(BaseModel):
    """Request body for POST /trips/{trip_id}/suggestions/accept."""

    days: list[NormalizedDay]
    selected: list[tuple[int, int]] | None = Field(
        None, description="(day position, activity position) pairs; all when omitted"
    )


class AcceptSuggestionsResponse(BaseModel):
    trip: Trip
    added: int


class ReorderRequest(BaseModel):
    """Request body for POST /trips/{trip_id}/days/{date_key}/reorder."""

    source: int = Field(..., ge=0)
    destination: int = Field(..., ge=0)


def _load_trip(repo: TripRepository, trip_id: int) -> Trip:
    trip = repo.get(trip_id)
    if trip is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trip not found")
    return trip


def _save_trip(repo: TripRepository, trip: Trip) -> Trip:
    if not repo.upsert(trip):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Trip could not be saved"
        )
    return trip


def _require_trip_date(trip: Trip, date_key: str) -> None:
    if date_key not in trip_dates(trip):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{date_key} is outside the trip dates",
        )


@router.get("", response_model=list[Trip])
async def list_trips(
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
) -> list[Trip]:
    """List every stored trip."""
    return repo.list_all()


@router.post("", response_model=Trip, status_code=status.HTTP_201_CREATED)
async def create_trip_route(
    draft: TripDraft,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
) -> Trip:
    """Create a trip with an empty itinerary."""
    trip = create_trip(draft, existing_ids=[t.id for t in repo.list_all()])
    logger.info(f"Created trip {trip.id} to {trip.location}")
    return _save_trip(repo, trip)


@router.get("/{trip_id}", response_model=Trip)
async def get_trip(
    trip_id: int,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
) -> Trip:
    return _load_trip(repo, trip_id)


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(
    trip_id: int,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
) -> Response:
    _load_trip(repo, trip_id)
    if not repo.delete(trip_id):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Trip could not be deleted"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{trip_id}/days/{date_key}/activities", response_model=Trip)
async def add_activity_route(
    trip_id: int,
    date_key: str,
    draft: ActivityDraft,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
) -> Trip:
    """Append an activity to one date of the itinerary."""
    trip = _load_trip(repo, trip_id)
    _require_trip_date(trip, date_key)
    return _save_trip(repo, add_activity(trip, date_key, draft))


@router.put("/{trip_id}/days/{date_key}/activities/{index}", response_model=Trip)
async def update_activity_route(
    trip_id: int,
    date_key: str,
    index: int,
    draft: ActivityDraft,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
) -> Trip:
    trip = _load_trip(repo, trip_id)
    try:
        updated = update_activity(trip, date_key, index, draft)
    except ActivityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _save_trip(repo, updated)


@router.delete("/{trip_id}/days/{date_key}/activities/{index}", response_model=Trip)
async def delete_activity_route(
    trip_id: int,
    date_key: str,
    index: int,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
) -> Trip:
    trip = _load_trip(repo, trip_id)
    try:
        updated = delete_activity(trip, date_key, index)
    except ActivityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _save_trip(repo, updated)


@router.post("/{trip_id}/days/{date_key}/reorder", response_model=Trip)
async def reorder_activity_route(
    trip_id: int,
    date_key: str,
    request: ReorderRequest,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
) -> Trip:
    """Move one activity to a new position within its date."""
    trip = _load_trip(repo, trip_id)
    try:
        updated = reorder_activity(trip, date_key, request.source, request.destination)
    except ActivityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _save_trip(repo, updated)


@router.get("/{trip_id}/summary", response_model=TripSummaryResponse)
async def trip_summary(
    trip_id: int,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
    fx: Annotated[ExchangeRateService, Depends(get_exchange_rate_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TripSummaryResponse:
    """Cost totals in the trip's display currency with the home-currency equivalent.

    Args:
        trip_id: Trip identifier
        repo: Trip repository
        fx: Exchange-rate service (falls back to static rates, never fails)
        settings: Application settings (home currency)

    Returns:
        Total, per-date costs and category breakdown sorted largest first
    """
    trip = _load_trip(repo, trip_id)
    currency = resolve_display_currency(trip)
    home = currency_info(settings.home_currency)

    rate = await fx.resolve_exchange_rate(currency.code, home.code)
    total = format_cost_with_exchange_rate(total_cost(trip.itinerary), currency, rate, home)

    return TripSummaryResponse(
        trip_id=trip.id,
        currency=currency,
        total=total,
        cost_by_date={d: cost_for_date(trip.itinerary, d) for d in sorted(trip.itinerary)},
        category_breakdown=sorted_breakdown(category_breakdown(trip.itinerary)),
    )


@router.get("/{trip_id}/days/{date_key}/distances", response_model=DayDistancesResponse)
async def day_distances(
    trip_id: int,
    date_key: str,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
    geocode_cache: Annotated[GeocodeCache, Depends(get_geocode_cache)],
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    metrics: Annotated[UpstreamMetrics, Depends(get_metrics)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> DayDistancesResponse:
    """Distance labels between consecutive activities of one date.

    Place names are geocoded with the trip location as the fallback hint.
    Lookups never fail the request; unresolved hops are labelled unavailable.
    """
    trip = _load_trip(repo, trip_id)
    _require_trip_date(trip, date_key)

    resolve = partial(
        resolve_coordinates,
        cache=geocode_cache,
        trip_destination=trip.location,
        base_url=settings.nominatim_base_url,
        user_agent=settings.nominatim_user_agent,
        client=client,
        metrics=metrics,
    )
    tracker = DistanceTracker(resolve)
    tracker.set_active_date(date_key)
    await tracker.refresh(date_key, trip.itinerary.get(date_key, []))

    return DayDistancesResponse(date=date_key, distances=tracker.labels)


@router.post("/{trip_id}/suggestions", response_model=SuggestionResult)
async def generate_suggestions(
    trip_id: int,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
    service: Annotated[SuggestionService, Depends(get_suggestion_service)],
    options: SuggestionOptions | None = None,
) -> SuggestionResult:
    """Generate (or serve cached) day-by-day suggestions for the trip window.

    Raises:
        HTTPException: 404 if the trip is unknown, 502 if the model call fails
            or its response cannot be parsed
    """
    trip = _load_trip(repo, trip_id)
    options = options or SuggestionOptions()

    try:
        return await service.generate(
            trip.location,
            trip.start_date.isoformat(),
            trip.end_date.isoformat(),
            existing_activities=all_activities(trip),
            use_cache=options.use_cache,
        )
    except ContentParseError as e:
        logger.warning(f"Unparseable suggestions for trip {trip_id}: {e.raw_preview!r}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": "Could not parse suggestions", "raw_preview": e.raw_preview},
        )
    except SuggestionGenerationError as e:
        logger.error(f"Suggestion generation failed for trip {trip_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/{trip_id}/suggestions/accept", response_model=AcceptSuggestionsResponse)
async def accept_suggestions(
    trip_id: int,
    request: AcceptSuggestionsRequest,
    repo: Annotated[TripRepository, Depends(get_trip_repository)],
) -> AcceptSuggestionsResponse:
    """Merge chosen suggestions into the itinerary, skipping duplicates."""
    trip = _load_trip(repo, trip_id)
    selected = set(request.selected) if request.selected is not None else None
    merged, added = merge_suggestions(trip, request.days, selected)
    if added:
        _save_trip(repo, merged)
    return AcceptSuggestionsResponse(trip=merged, added=added)
