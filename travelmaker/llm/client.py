"""Model clients that return raw itinerary-suggestion text.

Security: API keys come from settings (environment) only, never hardcoded.
A deterministic stub is used when no key is configured.
"""

import json
import logging
import time
from datetime import date, timedelta
from typing import Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError

from travelmaker.config import Settings
from travelmaker.llm.parsing import SuggestionGenerationError
from travelmaker.models.suggestion import SuggestionRequest
from travelmaker.utils.logging import StructuredUpstreamLogger
from travelmaker.utils.metrics import UpstreamMetrics

logger = logging.getLogger(__name__)


class LLMClient(Protocol):
    """Protocol for suggestion model clients."""

    async def generate_suggestions_text(self, request: SuggestionRequest) -> str:
        """Return the model's raw text for the request.

        Raises:
            SuggestionGenerationError: The call failed or returned no text
        """
        ...


def trip_length_days(start_date: str, end_date: str) -> int:
    """Inclusive day count between two ISO dates."""
    return (date.fromisoformat(end_date) - date.fromisoformat(start_date)).days + 1


def build_prompt(request: SuggestionRequest) -> str:
    """Build the suggestion prompt."""
    days = trip_length_days(request.start_date, request.end_date)

    if request.existing_activities:
        existing = "; ".join(
            f"{a.start_time}-{a.end_time} {a.category.value} {a.content}"
            for a in request.existing_activities
        )
        existing_summary = f"Existing activities: {existing}"
    else:
        existing_summary = "No activities added yet"

    return f"""You are a professional travel planner. Suggest a day-by-day itinerary.

Destination: {request.location}
Dates: {request.start_date} to {request.end_date} ({days} days)
{existing_summary}

Suggest 3-4 activities per day. Return ONLY a JSON array, one object per day:
{{
  "dayIndex": 1,
  "date": "{request.start_date}",
  "currency": {{"code": "JPY", "symbol": "¥", "name": "Japanese Yen"}},
  "activities": [
    {{
      "startTime": "09:00",
      "endTime": "11:00",
      "category": "sightseeing",
      "content": "Activity name and description",
      "cost": 1000,
      "location": "Specific place",
      "notes": "Other notes"
    }}
  ]
}}

category is one of: transport, lodging, dining, sightseeing, shopping, other.
cost is a number in the local currency. Times must not overlap."""


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required)."""

    async def generate_suggestions_text(self, request: SuggestionRequest) -> str:
        """Generate one placeholder activity per trip day."""
        start = date.fromisoformat(request.start_date)
        days = [
            {
                "dayIndex": i + 1,
                "date": (start + timedelta(days=i)).isoformat(),
                "activities": [
                    {
                        "startTime": "10:00",
                        "endTime": "12:00",
                        "category": "sightseeing",
                        "content": f"Explore {request.location} (stub)",
                        "cost": 0,
                        "location": request.location,
                        "notes": "Generated without a language model",
                    }
                ],
            }
            for i in range(trip_length_days(request.start_date, request.end_date))
        ]
        return json.dumps(days, ensure_ascii=False)


class GeminiClient:
    """Generative-language REST client."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
        metrics: UpstreamMetrics | None = None,
    ):
        """Initialize Gemini client.

        Args:
            api_key: API key (read from environment)
            model: Model name
            base_url: API base URL
            client: Optional httpx client (for testing with mocks)
            timeout: Request timeout in seconds when no client is given
            metrics: Optional metrics recorder
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._timeout = timeout
        self._metrics = metrics or UpstreamMetrics()
        self._logger = StructuredUpstreamLogger()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate_suggestions_text(self, request: SuggestionRequest) -> str:
        """Call generateContent and return the first candidate's text."""
        body = {
            "contents": [{"parts": [{"text": build_prompt(request)}]}],
            "generationConfig": {"temperature": 0.7, "maxOutputTokens": 4096},
        }

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout)
            close_client = True

        start = time.monotonic()
        try:
            response = await client.post(self.endpoint, params={"key": self.api_key}, json=body)
        except httpx.HTTPError as e:
            self._record_failure(start, type(e).__name__)
            raise SuggestionGenerationError(f"Gemini API request failed: {e}") from e
        finally:
            if close_client:
                await client.aclose()

        if response.is_error:
            self._record_failure(start, f"http_{response.status_code}")
            raise SuggestionGenerationError(f"Gemini API error: {self._error_message(response)}")

        try:
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            self._record_failure(start, "no_content")
            raise SuggestionGenerationError("No content in Gemini response") from e

        if not isinstance(text, str) or not text.strip():
            self._record_failure(start, "no_content")
            raise SuggestionGenerationError("No content in Gemini response")

        elapsed_ms = (time.monotonic() - start) * 1000
        self._metrics.record_latency("llm.gemini", "success", elapsed_ms)
        self._logger.log_call("llm.gemini", "success", elapsed_ms)
        return text

    def _record_failure(self, start: float, reason: str) -> None:
        elapsed_ms = (time.monotonic() - start) * 1000
        self._metrics.record_latency("llm.gemini", "error", elapsed_ms)
        self._metrics.inc_error("llm.gemini", reason)
        self._logger.log_call("llm.gemini", "error", elapsed_ms, error_reason=reason)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return str(response.json()["error"]["message"])
        except (ValueError, KeyError, TypeError):
            return "Unknown error"


class OpenAIClient:
    """OpenAI-backed client for suggestion generation."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def generate_suggestions_text(self, request: SuggestionRequest) -> str:
        """Generate suggestion text using the chat completions API."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": build_prompt(request)}],
                temperature=0.7,
                max_tokens=4096,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI API call failed: {e}")
            raise SuggestionGenerationError(f"OpenAI API error: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise SuggestionGenerationError("No content in OpenAI response")
        return content


def get_llm_client(settings: Settings, metrics: UpstreamMetrics | None = None) -> LLMClient:
    """Factory function to get appropriate LLM client based on config.

    Returns:
        GeminiClient if a Gemini key is configured, else OpenAIClient if an
        OpenAI key is configured, DeterministicStubClient otherwise
    """
    if settings.gemini_api_key and settings.gemini_api_key.get_secret_value():
        logger.info("Using Gemini client for suggestions")
        return GeminiClient(
            api_key=settings.gemini_api_key.get_secret_value(),
            model=settings.gemini_model,
            base_url=settings.gemini_api_url,
            timeout=settings.llm_timeout_seconds,
            metrics=metrics,
        )

    if settings.openai_api_key and settings.openai_api_key.get_secret_value():
        logger.info("Using OpenAI client for suggestions")
        return OpenAIClient(
            api_key=settings.openai_api_key.get_secret_value(),
            model=settings.openai_model,
        )

    logger.warning("No model API key configured, using deterministic stub client")
    return DeterministicStubClient()
