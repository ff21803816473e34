"""SDK Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - The client identifier comes from the environment or the caller (never hardcoded)
    - get_settings() returns one cached Settings instance per process
    - auth_max_retries >= 0; 0 disables refresh-and-retry

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults for every non-secret setting: a context can be built with only a client id
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """SDK settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # API
    soundcloud_client_id: str | None = None
    soundcloud_api_url: str = "https://api.soundcloud.com"

    @field_validator("soundcloud_api_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoint paths are joined with a leading slash."""
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    # HTTP
    http_timeout_seconds: float = 30.0
    http_max_connections: int = 20
    http_max_keepalive_connections: int = 10

    # Auth retry
    auth_max_retries: int = 1

    @field_validator("auth_max_retries")
    @classmethod
    def non_negative_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("auth_max_retries must be >= 0")
        return v

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
