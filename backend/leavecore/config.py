from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Leave Core"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "postgresql+asyncpg://leave:leave@db:5432/leave"
    db_isolation_level: str | None = "SERIALIZABLE"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]

    # Read-model cache. None selects the in-process cache.
    redis_url: str | None = None
    cache_ttl_seconds: int = 300

    # Ledger provisioning.
    default_entitlement_days: Decimal = Decimal("10")
    legacy_auto_provision: bool = False
    provisioning_interval_seconds: int = 86400


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
