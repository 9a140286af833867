from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_name: str = "skycast"
    log_level: str = "INFO"

    # Provider
    # Checked per request, so the service boots without it.
    openweather_api_key: Optional[str] = None
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    openweather_geo_url: str = "https://api.openweathermap.org/geo/1.0"
    openweather_timeout_seconds: float = 5.0

    # Redis (response cache is off unless a URL is given)
    redis_url: Optional[str] = None

    # Cache tuning
    forecast_max_age_seconds: int = 600
    forecast_stale_seconds: int = 60
    suggestions_max_age_seconds: int = 3600
    cache_coord_round_decimals: int = 2


settings = Settings()
