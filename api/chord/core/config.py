"""Application settings parsed from environment variables and defaults."""

import json
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CORS_ORIGINS = ["http://localhost:8081", "http://127.0.0.1:8081"]
DEFAULT_SPOTIFY_SCOPES = [
    "user-top-read",
    "user-read-recently-played",
    "user-read-private",
    "user-read-email",
]


def _split_list(value: str | list[str] | None) -> list[str] | None:
    """Normalize list settings from JSON, CSV, or list inputs; None when blank."""
    if isinstance(value, list):
        cleaned = [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return cleaned or None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            cleaned = [str(item).strip() for item in parsed if str(item).strip()]
            return cleaned or None
        items = [item.strip() for item in stripped.split(",") if item.strip()]
        return items or None
    return None


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = "Chord API"
    environment: str = "development"
    api_prefix: str = "/api"

    database_url: str
    test_database_url: Optional[str] = None

    access_token_expires_minutes: int = 60 * 24 * 7
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"

    spotify_client_id: Optional[str] = None
    spotify_client_secret: Optional[str] = None
    spotify_redirect_uri: Optional[str] = None
    spotify_scopes: list[str] | str = Field(default_factory=lambda: DEFAULT_SPOTIFY_SCOPES.copy())
    spotify_time_range: str = "medium_term"
    spotify_top_limit: int = 50

    log_level: str = "INFO"
    cors_origins: list[str] | str = Field(default_factory=lambda: DEFAULT_CORS_ORIGINS.copy())
    taste_profile_refresh_hours: int = 24
    credential_vault_key: Optional[str] = None

    matching_max_distance_km: float = 50.0
    matching_candidate_limit: int = 100
    matching_candidate_timeout_seconds: float = 10.0
    matching_partitions: int = 1
    # 18:30 UTC is midnight IST.
    matching_run_hour_utc: int = 18
    matching_run_minute_utc: int = 30
    activity_decay_days: int = 30
    match_history_limit: int = 30

    redis_url: str = "redis://redis:6379/0"
    worker_queue_names: list[str] | str = Field(default_factory=lambda: ["default", "matching", "sync"])

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_cors_origins(cls, value: str | list[str] | None) -> list[str]:
        """Normalize CORS origins from JSON, CSV, or list inputs."""
        return _split_list(value) or DEFAULT_CORS_ORIGINS.copy()

    @field_validator("spotify_scopes", mode="before")
    @classmethod
    def _split_spotify_scopes(cls, value: str | list[str] | None) -> list[str]:
        """Normalize Spotify scopes from JSON, CSV, or list inputs."""
        return _split_list(value) or DEFAULT_SPOTIFY_SCOPES.copy()

    @field_validator("worker_queue_names", mode="before")
    @classmethod
    def _split_worker_queue_names(cls, value: str | list[str] | None) -> list[str]:
        """Normalize worker queue names from JSON, CSV, or list inputs."""
        return _split_list(value) or ["default"]

    @field_validator("matching_partitions")
    @classmethod
    def _positive_partitions(cls, value: int) -> int:
        if value < 1:
            raise ValueError("MATCHING_PARTITIONS must be at least 1")
        return value

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings to avoid re-parsing environment variables."""
    return Settings()


settings = get_settings()
