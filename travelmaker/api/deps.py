"""FastAPI dependency providers."""

from collections.abc import AsyncGenerator
from datetime import timedelta
from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends

from travelmaker.adapters.exchange_rate import ExchangeRateService
from travelmaker.adapters.geocoding import GeocodeCache
from travelmaker.config import Settings, get_settings
from travelmaker.db.engine import create_store_from_settings
from travelmaker.db.repositories import KeyValueStore, LocationImageStore, TripRepository
from travelmaker.llm.cache import SuggestionCache
from travelmaker.llm.client import LLMClient, get_llm_client
from travelmaker.llm.service import SuggestionService
from travelmaker.utils.metrics import PrometheusUpstreamMetrics, UpstreamMetrics


@lru_cache
def get_store() -> KeyValueStore:
    """Process-wide key-value store built from settings."""
    return create_store_from_settings(get_settings())


def get_metrics() -> UpstreamMetrics:
    return PrometheusUpstreamMetrics()


@lru_cache
def get_geocode_cache() -> GeocodeCache:
    """Process-wide geocoding cache, shared by every distance lookup."""
    return {}


async def get_http_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Per-request outbound HTTP client."""
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        yield client


def get_trip_repository(
    store: Annotated[KeyValueStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TripRepository:
    return TripRepository(store, key=settings.trips_storage_key)


def get_llm(
    settings: Annotated[Settings, Depends(get_settings)],
    metrics: Annotated[UpstreamMetrics, Depends(get_metrics)],
) -> LLMClient:
    return get_llm_client(settings, metrics)


def get_suggestion_cache(
    store: Annotated[KeyValueStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SuggestionCache:
    return SuggestionCache(
        store,
        prefix=settings.suggestion_cache_prefix,
        ttl=timedelta(days=settings.suggestion_cache_ttl_days),
    )


def get_suggestion_service(
    cache: Annotated[SuggestionCache, Depends(get_suggestion_cache)],
    client: Annotated[LLMClient, Depends(get_llm)],
    metrics: Annotated[UpstreamMetrics, Depends(get_metrics)],
) -> SuggestionService:
    return SuggestionService(client, cache, metrics)


def get_exchange_rate_service(
    store: Annotated[KeyValueStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    metrics: Annotated[UpstreamMetrics, Depends(get_metrics)],
) -> ExchangeRateService:
    return ExchangeRateService(
        store,
        cache_key=settings.exchange_rate_cache_key,
        base_url=settings.exchange_rate_base_url,
        ttl=timedelta(hours=settings.fx_ttl_hours),
        client=client,
        metrics=metrics,
    )


def get_location_images(
    store: Annotated[KeyValueStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> LocationImageStore:
    return LocationImageStore(
        store, key=settings.location_images_key, max_bytes=settings.image_max_bytes
    )
