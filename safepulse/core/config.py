"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for a local simulated device.

Usage:
    from safepulse.core.config import settings
    print(settings.HOLD_CONFIRM_MS)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "Safe Pulse"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── SOS trigger ──
    HOLD_CONFIRM_MS: int = 4000  # press must be held this long
    HOLD_POLL_INTERVAL_MS: int = 100  # wake-up granularity while holding

    # ── Share message ──
    MAP_LINK_BASE: str = "https://maps.google.com/?q="

    # ── Call channel ──
    CALL_PROVIDER: str = "simulation"  # simulation | tel_uri

    # ── Message channel ──
    SMS_PROVIDER: str = "simulation"  # simulation | http
    SMS_GATEWAY_URL: Optional[str] = None
    SMS_API_KEY: Optional[str] = None
    SMS_SENDER_ID: str = "SAFEPULSE"
    SMS_TIMEOUT_SECONDS: float = 15.0

    # ── Location ──
    LOCATION_TIMEOUT_SECONDS: float = 20.0
    SIMULATED_LATITUDE: float = 13.0827
    SIMULATED_LONGITUDE: float = 80.2707
    SIMULATED_PERMISSION_GRANTED: bool = True

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def hold_confirm_seconds(self) -> float:
        return self.HOLD_CONFIRM_MS / 1000.0

    @property
    def hold_poll_interval_seconds(self) -> float:
        return self.HOLD_POLL_INTERVAL_MS / 1000.0


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
