from pydantic import field_validator
from pydantic_settings import BaseSettings

APP_VERSION = "1.0.0"


def _strip_inline_comment(value: str) -> str:
    """Strip trailing inline comments that python-dotenv keeps for unquoted values."""
    idx = value.find(" #")
    if idx != -1:
        value = value[:idx]
    return value.strip()


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./hotel_booking.db"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Search backend (hotel search engine in front of RateHawk)
    travelapi_base_url: str = "https://travelapi-bg6t.onrender.com"
    destination_timeout_seconds: float = 10.0
    region_search_timeout_seconds: float = 20.0
    geo_search_timeout_seconds: float = 30.0

    # WorldOTA / RateHawk B2B API
    worldota_base_url: str = "https://api.worldota.net"
    worldota_key_id: str = ""
    worldota_api_key: str = ""
    worldota_timeout_seconds: float = 30.0

    @field_validator("worldota_key_id", "worldota_api_key", mode="before")
    @classmethod
    def clean_credentials(cls, v: str) -> str:
        if isinstance(v, str):
            return _strip_inline_comment(v)
        return v

    # Cache lifetimes
    hotel_info_cache_days: int = 7
    filter_values_cache_hours: int = 24

    # Auth: JWT secret shared with the managed auth backend
    auth_secret: str = ""

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
