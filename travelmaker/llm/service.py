"""Suggestion generation: cache lookup, model call, parse, cache write."""

import logging
from collections.abc import Sequence
from datetime import date

from travelmaker.llm.cache import SuggestionCache
from travelmaker.llm.client import LLMClient
from travelmaker.llm.parsing import parse_model_response
from travelmaker.models.suggestion import SuggestionRequest, SuggestionResult
from travelmaker.models.trip import Activity
from travelmaker.utils.metrics import UpstreamMetrics

logger = logging.getLogger(__name__)


class SuggestionService:
    """Produces normalized day suggestions for a trip window."""

    def __init__(
        self,
        client: LLMClient,
        cache: SuggestionCache,
        metrics: UpstreamMetrics | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._metrics = metrics or UpstreamMetrics()

    async def generate(
        self,
        location: str,
        start_date: str,
        end_date: str,
        existing_activities: Sequence[Activity] = (),
        use_cache: bool = True,
    ) -> SuggestionResult:
        """Suggest activities for every day from start_date to end_date.

        Raises:
            SuggestionGenerationError: Model call failed
            ContentParseError: Model text held no usable itinerary JSON
        """
        if use_cache:
            cached = self._cache.get(location, start_date, end_date)
            if cached is not None:
                self._metrics.inc_cache_hit("suggestions")
                logger.info(f"Serving cached suggestions for {location} {start_date}..{end_date}")
                return SuggestionResult(itinerary=cached, from_cache=True)
            self._metrics.inc_cache_miss("suggestions")

        request = SuggestionRequest(
            location=location,
            start_date=start_date,
            end_date=end_date,
            existing_activities=list(existing_activities),
        )
        raw_text = await self._client.generate_suggestions_text(request)

        # Raises before the cache write, so failed generations are never cached
        days = parse_model_response(raw_text, date.fromisoformat(start_date))

        self._cache.put(location, start_date, end_date, days)
        return SuggestionResult(itinerary=days, from_cache=False)
