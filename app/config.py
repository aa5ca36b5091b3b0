"""Application configuration using pydantic-settings."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Business rules that admins tune at runtime (bonus amount, SLA hours, ...)
    live in the system_settings table instead, see SettingsStore.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Marketplace Rules Engine"
    app_env: Literal["development", "staging", "production"] = "development"
    app_base_url: str = "http://localhost:8000"
    app_debug: bool = False
    app_log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./marketplace.db"
    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Listing numbers
    listing_number_floor: int = 240226
    listing_sequence_name: str = "listing_number"

    # Settings store
    settings_cache_ttl_seconds: float = 30.0

    # SLA sweeps
    sla_sweep_enabled: bool = True
    sla_sweep_interval_seconds: float = 300.0
    sla_sweep_concurrency: int = 4

    # Notifications
    notification_max_attempts: int = 3
    notification_retry_backoff_seconds: float = 0.5

    # Commissions
    commission_epsilon: Decimal = Decimal("0.01")
    recruiter_bonus_qualifying_statuses: str = "SOLD,RENTED"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def async_database_url(self) -> str:
        """Get database URL with asyncpg driver for async SQLAlchemy."""
        url = self.database_url
        # Convert postgresql:// to postgresql+asyncpg://
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        return url

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def qualifying_statuses_list(self) -> list[str]:
        """Listing statuses that qualify a promoted listing for a recruiter bonus."""
        return [
            status.strip().upper()
            for status in self.recruiter_bonus_qualifying_statuses.split(",")
            if status.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
