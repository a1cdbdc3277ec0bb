"""Centralized application configuration using Pydantic settings."""
from functools import lru_cache
from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration shared across services."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str = Field(
        default="sqlite:///./roombook.db",
        description="SQLAlchemy database URL. Defaults to local SQLite for development.",
    )
    run_db_migrations: bool = Field(
        default=False,
        description="Whether this service should create/update database tables on startup.",
    )
    persistence_timeout_seconds: int = Field(
        default=10, description="Timeout (s) for a single round trip to the database"
    )
    jwt_secret: str = Field(default="super-secret", description="JWT signing secret")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(default=60, description="Token lifetime in minutes")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    default_rate_limit: str = Field(default="30/minute", description="Global rate limiting rule")
    rate_limiting_enabled: bool = Field(default=True, description="Toggle to disable SlowAPI limits (useful in tests)")
    read_rate_limit: str = Field(default="60/minute", description="Limit for read endpoints")
    write_rate_limit: str = Field(default="20/minute", description="Limit for endpoints that change rooms or reservations")
    auth_rate_limit: str = Field(default="10/minute", description="Limit for register and login")
    log_dir: str = Field(default="logs", description="Directory for per-service audit logs")
    log_level: str = Field(default="INFO", description="Level for the audit loggers")

    agenda_first_hour: int = Field(default=6, ge=0, le=23, description="First hourly slot of the agenda grid")
    agenda_last_hour: int = Field(default=22, ge=0, le=23, description="Last hourly slot of the agenda grid")
    agenda_cache_ttl: int = Field(default=30, description="TTL (s) for cached agenda grids")

    users_service_port: int = 8001
    rooms_service_port: int = 8002
    reservations_service_port: int = 8003

    @model_validator(mode="after")
    def check_agenda_hours(self) -> "Settings":
        if self.agenda_first_hour > self.agenda_last_hour:
            raise ValueError("agenda_first_hour must not be later than agenda_last_hour")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the Settings object."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached Settings instance (useful for tests)."""

    get_settings.cache_clear()
