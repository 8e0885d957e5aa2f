from __future__ import annotations

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("clinic_records.config")


class Settings(BaseSettings):
    app_env: str = "development"
    database_url: str = "sqlite:///./clinic_records.db"
    clinic_timezone: str = "America/La_Paz"
    schedule_tolerance_seconds: int = Field(default=60, alias="SCHEDULE_TOLERANCE_SECONDS")
    clinic_start_hour: int = 8
    clinic_end_hour: int = 18
    seed_demo_on_empty: bool = Field(default=True, alias="SEED_DEMO_ON_EMPTY")
    currency_code: str = "BOB"
    upcoming_appointments_limit: int = 10
    recent_patients_limit: int = 5
    default_income_goal_cents: int = 2_000_000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator(
        "schedule_tolerance_seconds",
        "clinic_start_hour",
        "clinic_end_hour",
        "upcoming_appointments_limit",
        "recent_patients_limit",
        "default_income_goal_cents",
        mode="before",
    )
    @classmethod
    def _coerce_empty_ints(cls, value, info):
        if value in {"", None}:
            return cls.model_fields[info.field_name].default
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.clinic_timezone)


def _is_production(app_env: str) -> bool:
    return app_env.strip().lower() in {"prod", "production"}


def _is_ephemeral_database(url: str) -> bool:
    lowered = url.strip().lower()
    return lowered.startswith("sqlite") and (":memory:" in lowered or lowered == "sqlite://")


def validate_settings(settings: Settings) -> None:
    production = _is_production(settings.app_env)
    failures: list[str] = []
    warnings: list[str] = []

    try:
        ZoneInfo(settings.clinic_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        failures.append(f"CLINIC_TIMEZONE {settings.clinic_timezone!r} is not a known timezone")

    if not (0 <= settings.clinic_start_hour <= 24 and 0 <= settings.clinic_end_hour <= 24):
        failures.append("Clinic hours must be between 0 and 24")
    elif settings.clinic_start_hour >= settings.clinic_end_hour:
        failures.append("CLINIC_START_HOUR must be before CLINIC_END_HOUR")

    if settings.schedule_tolerance_seconds < 0:
        failures.append("SCHEDULE_TOLERANCE_SECONDS cannot be negative")

    if settings.default_income_goal_cents < 0:
        failures.append("DEFAULT_INCOME_GOAL_CENTS cannot be negative")

    if _is_ephemeral_database(settings.database_url):
        msg = "DATABASE_URL points at an in-memory database; records will not survive restart"
        if production:
            failures.append(msg)
        else:
            warnings.append(msg)

    for warning in warnings:
        logger.warning("Config warning: %s", warning)

    if failures:
        raise RuntimeError("Config validation failed: " + "; ".join(failures))


settings = Settings()
