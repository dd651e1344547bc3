"""Geocoding adapter using the Nominatim search API (or a proxy of it)."""

import logging
import time

import httpx

from travelmaker.models.common import Coordinates
from travelmaker.utils.logging import StructuredUpstreamLogger
from travelmaker.utils.metrics import UpstreamMetrics

logger = logging.getLogger(__name__)

SERVICE = "geocoding.nominatim"

# Normalized location text -> coordinates, or None for a remembered miss
GeocodeCache = dict[str, Coordinates | None]


def normalize_location(text: str | None) -> str:
    """Cache key for a location string."""
    return (text or "").strip().lower()


async def _search(
    client: httpx.AsyncClient,
    base_url: str,
    query: str,
    headers: dict[str, str],
) -> Coordinates | None:
    """Run one search; None when the response has no usable first result.

    Raises:
        httpx.HTTPError: On network or HTTP errors
    """
    response = await client.get(
        f"{base_url.rstrip('/')}/search",
        params={"format": "json", "limit": 1, "q": query},
        headers=headers,
    )
    response.raise_for_status()
    results = response.json()

    first = results[0] if isinstance(results, list) and results else None
    if not isinstance(first, dict) or not first.get("lat") or not first.get("lon"):
        return None

    return Coordinates(lat=float(first["lat"]), lng=float(first["lon"]))


async def resolve_coordinates(
    location: str | None,
    cache: GeocodeCache,
    trip_destination: str | None = None,
    *,
    base_url: str = "https://nominatim.openstreetmap.org",
    user_agent: str = "travelmaker/0.1",
    client: httpx.AsyncClient | None = None,
    metrics: UpstreamMetrics | None = None,
) -> Coordinates | None:
    """Resolve free-text location to coordinates.

    Never raises: network and parse failures are cached and reported as None,
    so repeated lookups of a bad name cost nothing.

    Args:
        location: Free-text place name
        cache: Shared lookup cache, mutated in place
        trip_destination: Optional trip location appended on a second attempt
        base_url: Search endpoint base (e.g. a local proxy)
        user_agent: User-Agent header sent to the search API
        client: Optional httpx client (for testing with mocks)
        metrics: Optional metrics recorder

    Returns:
        Coordinates, or None when no lookup succeeded
    """
    key = normalize_location(location)
    if not key:
        return None

    metrics = metrics or UpstreamMetrics()
    upstream_logger = StructuredUpstreamLogger()

    if key in cache:
        metrics.inc_cache_hit("geocoding")
        return cache[key]
    metrics.inc_cache_miss("geocoding")

    close_client = False
    if client is None:
        client = httpx.AsyncClient(timeout=10.0)
        close_client = True

    headers = {"User-Agent": user_agent}
    start = time.monotonic()

    try:
        coord = await _search(client, base_url, location or "", headers)
        if coord is None and trip_destination:
            fallback_query = f"{location} {trip_destination}"
            fallback_key = normalize_location(fallback_query)
            if fallback_key in cache:
                metrics.inc_cache_hit("geocoding")
                elapsed_ms = (time.monotonic() - start) * 1000
                metrics.record_latency(SERVICE, "cache_hit", elapsed_ms)
                upstream_logger.log_call(SERVICE, "cache_hit", elapsed_ms, cache_hit=True)
                return cache[fallback_key]
            coord = await _search(client, base_url, fallback_query, headers)

        elapsed_ms = (time.monotonic() - start) * 1000
        outcome = "success" if coord is not None else "no_result"
        metrics.record_latency(SERVICE, outcome, elapsed_ms)
        upstream_logger.log_call(SERVICE, outcome, elapsed_ms)

        # Fallback hits are cached under the bare name on purpose
        cache[key] = coord
        return coord

    except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
        elapsed_ms = (time.monotonic() - start) * 1000
        metrics.record_latency(SERVICE, "error", elapsed_ms)
        metrics.inc_error(SERVICE, type(e).__name__)
        upstream_logger.log_call(SERVICE, "error", elapsed_ms, error_reason=type(e).__name__)
        logger.error(f"Failed to fetch coordinates for {location!r}: {e}")
        cache[key] = None
        return None

    finally:
        if close_client:
            await client.aclose()
