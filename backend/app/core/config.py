"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development.

Usage:
    from backend.app.core.config import settings
    print(settings.USERS_COLLECTION)
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
    APP_NAME: str = "Emergency Notifier"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── Server ──
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # ── Firebase backend ──
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # service-account JSON; ADC if unset

    # ── Account store ──
    ACCOUNT_STORE: str = "firestore"  # firestore | memory
    USERS_COLLECTION: str = "users"

    # ── Push delivery ──
    PUSH_PROVIDER: str = "fcm"  # fcm | simulation
    PUSH_DRY_RUN: bool = False  # validate with FCM without delivering

    # ── Notification content ──
    ANDROID_CHANNEL_ID: str = "high_importance_channel"
    CLICK_ACTION: str = "FLUTTER_NOTIFICATION_CLICK"
    DEFAULT_SUBJECT_NAME: str = "Senior"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
