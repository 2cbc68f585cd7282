"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """BPOU Finder settings loaded from ``BPOU_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BPOU_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = "BPOU Finder"

    # Data sources: a local directory or an http(s) base URL
    data_base: str = "data"
    bpou_map_file: str = "BPOUMap.geojson"
    cd_map_file: str = "CDMap.geojson"
    bpou_contacts_file: str = "bpouContacts.json"
    cd_contacts_file: str = "cdContacts.json"
    fetch_timeout: float = 30.0

    # Geocoding (Nominatim)
    geocoder_url: str = "https://nominatim.openstreetmap.org/search"
    user_agent: str = "BPOU-Finder-Widget/1.0 (Minnesota Republican BPOU Locator)"
    geocoder_timeout: float = 10.0
    rate_limit_delay: float = 1.0
    variation_delay: float = 0.5
    region_token: str = "MN"
    country_code: str = "us"
    # left,top,right,bottom in lon/lat
    viewbox: str = "-97.5,49.5,-89.0,43.4"

    # Widget behaviour
    geolocation_timeout: float = 10.0
    hover_preview: bool = True
    result_zoom: int = 13
    feedback_email: str = "bpou-finder@mngop.com"

    # HTTP sessions
    session_ttl: int = 1800
    cors_origins: list[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
