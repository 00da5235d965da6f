"""Configuration management for SubFeed."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="SUBFEED_", extra="ignore"
    )

    # Security
    app_secret_key: str
    site_password: str = Field(default="")  # empty disables password gating
    session_max_age_days: int = 30

    # Database
    database_url: str = "sqlite+aiosqlite:///./subfeed.db"

    # Feed schedule
    schedule_timezone: str = "America/Sao_Paulo"
    update_hours: list[int] = Field(default_factory=lambda: [8, 20])
    feed_cache_key: str = "aggregated_feed"
    fetch_timeout_seconds: float = 15.0

    # CORS
    frontend_origin: str = "http://localhost:5173"

    # Environment
    env: str = Field(default="dev", pattern="^(dev|prod)$")

    @field_validator("update_hours")
    @classmethod
    def _check_update_hours(cls, hours: list[int]) -> list[int]:
        if not hours:
            raise ValueError("update_hours must not be empty")
        if any(h < 0 or h > 23 for h in hours):
            raise ValueError("update_hours must be between 0 and 23")
        if len(set(hours)) != len(hours):
            raise ValueError("update_hours must not contain duplicates")
        return sorted(hours)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
