"""Exchange-rate adapter with a shared 24h cache record and a static fallback."""

import logging
import time
from collections.abc import Callable
from datetime import timedelta

import httpx
from pydantic import BaseModel, ValidationError

from travelmaker.db.repositories import KeyValueStore, StorageError
from travelmaker.models.common import CurrencyInfo
from travelmaker.models.suggestion import ExchangeRateCacheRecord
from travelmaker.utils.logging import StructuredUpstreamLogger
from travelmaker.utils.metrics import UpstreamMetrics

logger = logging.getLogger(__name__)

SERVICE = "fx.exchangerate_api"

# Approximate rates to TWD, maintained by hand
FALLBACK_RATES_TO_TWD: dict[str, float] = {
    "JPY": 0.21,
    "KRW": 0.024,
    "THB": 0.89,
    "SGD": 23.5,
    "HKD": 4.0,
    "CNY": 4.3,
    "USD": 31.5,
    "EUR": 34.0,
    "GBP": 39.5,
    "AUD": 20.5,
    "CAD": 23.0,
    "NZD": 19.0,
    "CHF": 35.5,
    "MYR": 7.0,
    "IDR": 0.002,
    "VND": 0.0013,
    "PHP": 0.55,
    "TRY": 0.95,
    "AED": 8.6,
    "CZK": 1.4,
    "PLN": 7.8,
    "RUB": 0.33,
}


class FormattedCost(BaseModel):
    """Cost shown in local and home currency."""

    local: str
    home: str
    local_amount: float
    home_amount: int
    rate: float


def fallback_rate(from_code: str, to_code: str = "TWD") -> float:
    """Static rate, pivoting through TWD; 1.0 when either side is unknown.

    The table is quoted against TWD, so a non-TWD target is honoured by
    dividing both sides rather than ignoring to_code.
    """
    if from_code == to_code:
        return 1.0
    from_twd = 1.0 if from_code == "TWD" else FALLBACK_RATES_TO_TWD.get(from_code)
    to_twd = 1.0 if to_code == "TWD" else FALLBACK_RATES_TO_TWD.get(to_code)
    if from_twd is None or to_twd is None:
        return 1.0
    return from_twd / to_twd


def _now_ms() -> int:
    return int(time.time() * 1000)


class ExchangeRateService:
    """Resolves exchange rates through cache, live API, then fallback table."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        cache_key: str = "exchange_rates_cache",
        base_url: str = "https://api.exchangerate-api.com/v4",
        ttl: timedelta = timedelta(hours=24),
        client: httpx.AsyncClient | None = None,
        clock_ms: Callable[[], int] = _now_ms,
        metrics: UpstreamMetrics | None = None,
    ) -> None:
        """Initialize service.

        Args:
            store: Key-value store holding the shared cache record
            cache_key: Key of the cache record
            base_url: Exchange-rate API base URL
            ttl: Lifetime of the whole cache record
            client: Optional httpx client (for testing with mocks)
            clock_ms: Injectable epoch-milliseconds clock
            metrics: Optional metrics recorder
        """
        self._store = store
        self._cache_key = cache_key
        self._base_url = base_url.rstrip("/")
        self._ttl_ms = int(ttl.total_seconds() * 1000)
        self._client = client
        self._clock_ms = clock_ms
        self._metrics = metrics or UpstreamMetrics()
        self._logger = StructuredUpstreamLogger()

    def _load_record(self) -> ExchangeRateCacheRecord:
        try:
            raw = self._store.get(self._cache_key)
            if raw:
                return ExchangeRateCacheRecord.model_validate_json(raw)
        except (StorageError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable exchange-rate cache: {e}")
        return ExchangeRateCacheRecord()

    def cached_rate(self, from_code: str, to_code: str) -> float | None:
        """Rate from the shared record if the record is still fresh."""
        record = self._load_record()
        if record.timestamp is None or self._clock_ms() - record.timestamp >= self._ttl_ms:
            return None
        rate = record.rates.get(from_code, {}).get(to_code)
        return rate or None

    def _store_rate(self, from_code: str, to_code: str, rate: float) -> None:
        # Merges into the existing record and refreshes the one shared timestamp
        record = self._load_record()
        record.rates.setdefault(from_code, {})[to_code] = rate
        record.timestamp = self._clock_ms()
        try:
            self._store.set(self._cache_key, record.model_dump_json())
        except StorageError as e:
            logger.error(f"Failed to save exchange-rate cache: {e}")

    async def _fetch_rate(self, from_code: str, to_code: str) -> float:
        """Fetch one rate from the live API.

        Raises:
            httpx.HTTPError: On network or HTTP errors
            ValueError: When the response lacks the requested rate
        """
        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=10.0)
            close_client = True

        try:
            response = await client.get(f"{self._base_url}/latest/{from_code}")
            response.raise_for_status()
            data = response.json()
        finally:
            if close_client:
                await client.aclose()

        rates = data.get("rates") if isinstance(data, dict) else None
        rate = rates.get(to_code) if isinstance(rates, dict) else None
        if not isinstance(rate, int | float) or isinstance(rate, bool) or rate <= 0:
            raise ValueError(f"No rate found for {to_code}")
        return float(rate)

    async def resolve_exchange_rate(self, from_code: str, to_code: str = "TWD") -> float:
        """Rate converting from_code amounts into to_code. Never raises."""
        from_code = from_code.upper()
        to_code = to_code.upper()

        if from_code == to_code:
            return 1.0

        cached = self.cached_rate(from_code, to_code)
        if cached is not None:
            self._metrics.inc_cache_hit("exchange_rate")
            self._logger.log_call(SERVICE, "cache_hit", 0.0, cache_hit=True)
            return cached
        self._metrics.inc_cache_miss("exchange_rate")

        start = time.monotonic()
        try:
            rate = await self._fetch_rate(from_code, to_code)
        except (httpx.HTTPError, ValueError) as e:
            elapsed_ms = (time.monotonic() - start) * 1000
            self._metrics.record_latency(SERVICE, "error", elapsed_ms)
            self._metrics.inc_error(SERVICE, type(e).__name__)
            self._logger.log_call(SERVICE, "error", elapsed_ms, error_reason=type(e).__name__)
            logger.warning(f"Exchange rate {from_code}->{to_code} unavailable, using fallback: {e}")
            return fallback_rate(from_code, to_code)

        elapsed_ms = (time.monotonic() - start) * 1000
        self._metrics.record_latency(SERVICE, "success", elapsed_ms)
        self._logger.log_call(SERVICE, "success", elapsed_ms)
        self._store_rate(from_code, to_code, rate)
        return rate


def format_cost_with_exchange_rate(
    cost: float | None,
    currency: CurrencyInfo,
    rate: float,
    home: CurrencyInfo | None = None,
) -> FormattedCost:
    """Local amount with symbol plus the rounded home-currency equivalent."""
    home_symbol = home.symbol if home else "NT$"
    local_amount = cost or 0.0
    home_amount = round(local_amount * rate)
    return FormattedCost(
        local=f"{currency.symbol}{local_amount:,.10g}",
        home=f"{home_symbol} {home_amount:,}",
        local_amount=local_amount,
        home_amount=home_amount,
        rate=rate,
    )
