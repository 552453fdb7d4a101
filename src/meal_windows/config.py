"""Application configuration."""

import os
from datetime import time

from pydantic_settings import BaseSettings, SettingsConfigDict

from meal_windows.domain.constraints import RedistributionConstraints
from meal_windows.domain.redistribution import PendingPolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    api_token: str
    environment: str = _ENVIRONMENT
    deviation_threshold: float = 0.25
    min_calories_per_window: int = 200
    max_calories_per_window: int = 1000
    min_protein_retention: float = 0.70
    max_protein_per_window: int = 60
    max_carbs_per_window: int = 120
    max_fat_per_window: int = 50
    bedtime_buffer_hours: float = 3.0
    bedtime: str = "22:00"
    imminent_window_minutes: int = 60
    timezone: str = "UTC"
    pending_policy: PendingPolicy = PendingPolicy.REJECT_NEW

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_bedtime(raw: str | None) -> time:
    """Parse an HH:MM bedtime, falling back to 22:00."""
    if raw is None:
        return time(hour=22)
    cleaned = raw.strip()
    if not cleaned:
        return time(hour=22)
    return time.fromisoformat(cleaned)


def default_constraints(settings: Settings) -> RedistributionConstraints:
    """Build the process-wide constraint defaults from settings."""
    return RedistributionConstraints(
        deviation_threshold=settings.deviation_threshold,
        min_calories_per_window=settings.min_calories_per_window,
        max_calories_per_window=settings.max_calories_per_window,
        min_protein_retention=settings.min_protein_retention,
        max_protein_per_window=settings.max_protein_per_window,
        max_carbs_per_window=settings.max_carbs_per_window,
        max_fat_per_window=settings.max_fat_per_window,
        bedtime_buffer_hours=settings.bedtime_buffer_hours,
        bedtime=parse_bedtime(settings.bedtime),
        imminent_window_minutes=settings.imminent_window_minutes,
        timezone=settings.timezone,
    )
