"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. This ensures:
1. Type validation at startup
2. Centralized configuration
3. Documentation of available settings
4. Proper defaults
"""

from datetime import date, datetime
from functools import lru_cache
from typing import List, Literal
from zoneinfo import ZoneInfo

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database - relative path for local runs, override via env for PostgreSQL
    database_url: str = "sqlite:///./data/shopledger.db"

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Business day boundaries ("today" for due dates and overdue checks)
    timezone: str = "America/Sao_Paulo"

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    # ==========================================================================
    # Procurement receiving policy
    # ==========================================================================
    # Supplier overshipment: accept quantity_received > quantity_ordered
    allow_over_receipt: bool = False
    # Accept quantity_approved > quantity_received on inspection
    allow_over_approval: bool = False

    # ==========================================================================
    # Payables
    # ==========================================================================
    # Reversals are written to the payment history as negative rows
    record_reversal_payments: bool = True
    upcoming_due_window_days: int = 7
    upcoming_due_limit: int = 5

    # Overdue sweep scheduling
    overdue_sweep_enabled: bool = True
    overdue_sweep_interval_seconds: int = 3600

    @field_validator("overdue_sweep_interval_seconds")
    @classmethod
    def validate_sweep_interval(cls, v: int) -> int:
        # The scheduler loop ticks once a minute
        if v < 60:
            raise ValueError("overdue_sweep_interval_seconds must be at least 60")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        ZoneInfo(v)
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


def local_today() -> date:
    """Current business date in the configured timezone."""
    return datetime.now(ZoneInfo(settings.timezone)).date()
