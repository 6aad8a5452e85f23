"""Runtime settings, read from ``MEDIASTORE_*`` environment variables or ``.env``.

Business limits (30 operations a day, the 30%-150% price band, ...) are
domain constants and not settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# When installed in editable mode the project root is the repo root.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="MEDIASTORE_",
        env_file=".env",
        extra="ignore",
    )

    data_dir: Path = _DEFAULT_DATA_DIR

    # Reservations
    reservation_ttl_minutes: int = Field(default=15, gt=0)
    approval_reservation_ttl_minutes: int = Field(default=60, gt=0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)

    # Concurrency
    lock_timeout_seconds: float = Field(default=5.0, gt=0)

    # Product managers
    edit_session_timeout_minutes: int = Field(default=30, gt=0)

    # Stock alerts
    low_stock_threshold: int = Field(default=10, ge=0)

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache
def get_settings() -> Settings:
    return Settings()
