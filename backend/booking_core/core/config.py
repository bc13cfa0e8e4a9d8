# backend/booking_core/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.info(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Runtime configuration for the booking engine and its HTTP surface."""

    app_name: str = Field(default="booking-core", description="Service name used in logs")
    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Deployment environment"
    )
    log_level: str = Field(default="INFO", description="Root log level")
    api_prefix: str = Field(default="/api/v1", description="Prefix for versioned routes")

    # Database
    database_url: str = Field(
        default="sqlite:///./booking_core.db",
        description="SQLAlchemy URL for the transactional store",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Per-slot lock (Redis SET NX). Storage constraints still apply when disabled.
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")
    slot_lock_enabled: bool = Field(
        default=False, description="Acquire a Redis lock per added slot during check-and-commit"
    )
    slot_lock_ttl_seconds: int = Field(default=30, ge=1, le=600)
    slot_lock_namespace: str = Field(default="booking-core", description="Redis key namespace")

    # Capacity ledger (display read-model only)
    capacity_ledger_track_creates: bool = Field(
        default=True,
        description="Increment the capacity ledger on create so create/delete stay balanced",
    )

    # Retained sessions on update: tolerate keeps delta-only validation,
    # reject also verifies the booking still holds each retained claim.
    retained_session_policy: Literal["tolerate", "reject"] = Field(default="tolerate")

    default_payment_method: str = Field(default="cash")

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = (value or "INFO").strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level: {value}")
        return normalized

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()
logger.info(
    "[CONFIG] environment=%s slot_lock_enabled=%s retained_session_policy=%s",
    settings.environment,
    settings.slot_lock_enabled,
    settings.retained_session_policy,
)
