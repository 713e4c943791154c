from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "development"
    redis_url: Optional[str] = None
    new_relic_license_key: str = ""
    new_relic_app_name: str = "FareWise-FareComparison"

    timezone: str = "Asia/Kolkata"
    random_seed: Optional[int] = None

    # Fallback chain
    tier_timeout_seconds: float = 3.0
    scrape_timeout_seconds: float = 2.0
    official_latency_seconds: float = 0.0

    # Pricing knobs
    weather_event_probability: float = 0.15
    price_variance: float = 0.10
    average_city_speed_kmh: float = 25.0

    fare_cache_ttl_seconds: int = 30
    google_maps_api_key: Optional[str] = None
    http_timeout_seconds: float = 5.0


@lru_cache()
def get_settings():
    return Settings()
