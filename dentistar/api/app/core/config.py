from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "Dentistar API"
    database_url: str | None = None
    cors_origins: list[str] = ["http://localhost:3000"]
    rate_limit_requests: int = 120
    rate_limit_window_seconds: int = 60
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"
    admin_email: str = ""
    google_maps_api_key: str = ""
    places_api_base_url: str = "https://maps.googleapis.com/maps/api"
    places_page_token_delay_seconds: float = 2.0
    provider_cache_max_age_hours: int = 24 * 30
    default_search_radius_km: int = 20

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


settings = get_settings()
