"""Application configuration."""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Server settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Database
    database_url: str = "postgresql+asyncpg://localhost/devtrack"

    @property
    def async_database_url(self) -> str:
        """Convert DATABASE_URL to async format for SQLAlchemy."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url

    # CORS - stored as comma-separated string, parsed via property
    allowed_origins_str: str = "http://localhost:5173,http://localhost:3000"

    @property
    def allowed_origins(self) -> list[str]:
        """Parse allowed_origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins_str.split(",") if origin.strip()]

    # Entity resolution
    resolver_max_attempts: int = 5

    # Startup
    run_migrations: bool = True
    migration_timeout_seconds: float = 60.0

    # App settings
    debug: bool = False
    environment: str = "development"

    @model_validator(mode="after")
    def validate_resolver_attempts(self) -> "Settings":
        """Entity resolution needs at least one attempt to make progress."""
        if self.resolver_max_attempts < 1:
            raise ValueError("RESOLVER_MAX_ATTEMPTS must be at least 1")
        return self


class ClientSettings(BaseSettings):
    """Client (editor agent) settings, read from DEVTRACK_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="DEVTRACK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # When set, events are posted to the ingestion server instead of the local store
    server_url: str | None = None
    database_path: Path = Path.home() / ".devtrack" / "events.db"

    idle_threshold_seconds: int = 3
    monitor_interval_seconds: float = 1.0
    http_timeout_seconds: float = 5.0

    @property
    def local_database_url(self) -> str:
        return f"sqlite:///{self.database_path}"

    @model_validator(mode="after")
    def validate_intervals(self) -> "ClientSettings":
        """Reject non-positive timings."""
        if self.idle_threshold_seconds < 0:
            raise ValueError("DEVTRACK_IDLE_THRESHOLD_SECONDS must not be negative")
        if self.monitor_interval_seconds <= 0:
            raise ValueError("DEVTRACK_MONITOR_INTERVAL_SECONDS must be positive")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@lru_cache
def get_client_settings() -> ClientSettings:
    """Get cached client settings instance."""
    return ClientSettings()


settings = get_settings()
