"""Pydantic models for redistribution API payloads."""

from datetime import date, datetime

from pydantic import BaseModel, Field


class MealLogRequest(BaseModel):
    """A meal logged into a window."""

    day: date
    window_id: str
    name: str = "meal"
    calories: int = Field(ge=0)
    protein: int = Field(default=0, ge=0)
    carbs: int = Field(default=0, ge=0)
    fat: int = Field(default=0, ge=0)
    timestamp: datetime | None = None
    now: datetime | None = None


class MissedWindowRequest(BaseModel):
    """Notification that a window ended without a meal."""

    day: date
    now: datetime | None = None


class PreviewRequest(BaseModel):
    """A prospective meal to preview."""

    day: date
    window_id: str
    calories: int = Field(ge=0)
    protein: int = Field(default=0, ge=0)
    carbs: int = Field(default=0, ge=0)
    fat: int = Field(default=0, ge=0)
    now: datetime | None = None


class DecisionRequest(BaseModel):
    """Accept or reject payload."""

    now: datetime | None = None
    feedback: str | None = None


class ConstraintOverridesRequest(BaseModel):
    """Per-user constraint overrides."""

    overrides: dict[str, float | int | str]
