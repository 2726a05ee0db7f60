from __future__ import annotations

import json
import os
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def split_csv(value: str | None) -> list[str]:
    """Split a list setting into a clean list of names.

    Accepts a JSON array (``["whatsapp", "phone"]``) or a comma separated
    string (``whatsapp,phone``).
    """
    if not value:
        return []
    text = value.strip()
    if text.startswith("["):
        try:
            items = json.loads(text)
        except ValueError as exc:
            raise ValueError(f"Invalid JSON list setting: {value!r}") from exc
        if not isinstance(items, list):
            raise ValueError(f"Invalid JSON list setting: {value!r}")
        return [str(item).strip() for item in items if str(item).strip()]
    return [part.strip() for part in value.split(",") if part.strip()]


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "ReminderTribu"
    ENV: str = "dev"
    DATABASE_URL: str | None = None
    REDIS_URL: str = "redis://localhost:6379/0"

    # Reminder policy
    REMINDER_DAYS_AHEAD: int = 7
    REMINDER_COOLDOWN_DAYS: int = 7
    REMINDER_ONLY_EXPIRED: bool = False
    REMINDER_TIMEZONE: str = "Europe/Rome"
    REMINDER_SCHEDULE_HOUR: int = 9  # local hour for the daily beat run
    DRY_RUN: bool = True

    # Member documents
    MEMBER_EXPIRY_FIELD: str = "dataScadenza"
    REMINDER_PHONE_FIELDS: str = "whatsapp,telefono,phone"  # priority order
    PHONE_NORMALIZE_FIELDS: str = "phone,whatsapp,telefono"
    ALLOW_PHONE_APPLY: bool = False

    # WhatsApp Cloud API (Meta)
    WHATSAPP_API_KEY: str | None = None
    WHATSAPP_PHONE_NUMBER_ID: str | None = None
    WHATSAPP_API_VERSION: str = "v20.0"
    WHATSAPP_TEMPLATE_NAME: str | None = None
    WHATSAPP_TEMPLATE_LANGUAGE: str = "it"

    @field_validator("WHATSAPP_PHONE_NUMBER_ID", mode="before")
    @classmethod
    def coerce_phone_number_id_to_str(cls, v):
        """Convert phone number ID to string if it's an integer."""
        if v is None:
            return v
        return str(v)

    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"
    SENTRY_DSN: str | None = None

    @property
    def reminder_phone_fields(self) -> list[str]:
        return split_csv(self.REMINDER_PHONE_FIELDS)

    @property
    def phone_normalize_fields(self) -> list[str]:
        return split_csv(self.PHONE_NORMALIZE_FIELDS)

    @model_validator(mode="after")
    def _validate_required_fields(self) -> BaseAppSettings:
        # Convert Heroku's postgres:// URL to postgresql://
        if self.DATABASE_URL and self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgres://", "postgresql://", 1)

        if self.REMINDER_DAYS_AHEAD < 0:
            raise ValueError("REMINDER_DAYS_AHEAD must not be negative")
        if self.REMINDER_COOLDOWN_DAYS < 0:
            raise ValueError("REMINDER_COOLDOWN_DAYS must not be negative")
        if not self.reminder_phone_fields:
            raise ValueError("REMINDER_PHONE_FIELDS must name at least one field")
        split_csv(self.PHONE_NORMALIZE_FIELDS)  # raises on a malformed JSON list

        required_in_prod = (
            "DATABASE_URL",
            "WHATSAPP_API_KEY",
            "WHATSAPP_PHONE_NUMBER_ID",
        )
        if self.ENV.lower() == "prod":
            missing = [name for name in required_in_prod if not getattr(self, name)]
            if missing:
                raise ValueError(f"Missing required production settings: {', '.join(missing)}")
        return self


class DevSettings(BaseAppSettings):
    ENV: str = "dev"
    DATABASE_URL: str = "sqlite:///./remindertribu.db"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    DATABASE_URL: str = "sqlite:///:memory:"
    DRY_RUN: bool = True


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    LOG_FORMAT: str = "json"


_ENV_TO_SETTINGS: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env_name = os.getenv("APP_ENV") or os.getenv("ENV") or "dev"
    env = env_name.lower()
    settings_cls = _ENV_TO_SETTINGS.get(env, DevSettings)
    return settings_cls()


settings = get_settings()
