"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Storage
    storage_backend: str = "memory"  # memory | file | sql | redis
    storage_path: str = "travelmaker_store.json"
    database_url: str | None = None
    redis_url: str | None = None

    # Storage keys
    trips_storage_key: str = "travelmaker_trips"
    location_images_key: str = "location_images"
    exchange_rate_cache_key: str = "exchange_rates_cache"
    suggestion_cache_prefix: str = "gemini_itinerary_cache_"

    # Cache TTLs
    suggestion_cache_ttl_days: int = 30
    fx_ttl_hours: int = 24

    # External APIs
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "travelmaker/0.1"
    exchange_rate_base_url: str = "https://api.exchangerate-api.com/v4"
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-1.5-flash"
    gemini_api_key: SecretStr | None = None
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"

    # Timeouts (seconds)
    http_timeout_seconds: float = 10.0
    llm_timeout_seconds: float = 60.0

    # Behavior
    home_currency: str = "TWD"
    image_max_bytes: int = 5 * 1024 * 1024
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
