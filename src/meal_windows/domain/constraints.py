"""Constraint policy for redistribution."""

from dataclasses import dataclass, fields, replace
from datetime import time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class RedistributionConstraints:
    """Thresholds and clamps applied by the redistribution engine."""

    deviation_threshold: float = 0.25
    min_calories_per_window: int = 200
    max_calories_per_window: int = 1000
    min_protein_retention: float = 0.70
    max_protein_per_window: int = 60
    max_carbs_per_window: int = 120
    max_fat_per_window: int = 50
    bedtime_buffer_hours: float = 3.0
    bedtime: time = time(hour=22)
    imminent_window_minutes: int = 60
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        if self.deviation_threshold < 0:
            raise ValueError("deviation_threshold must be non-negative")
        if self.min_calories_per_window < 0:
            raise ValueError("min_calories_per_window must be non-negative")
        if self.max_calories_per_window < self.min_calories_per_window:
            raise ValueError(
                "max_calories_per_window must be >= min_calories_per_window"
            )
        if not 0.0 <= self.min_protein_retention <= 1.0:
            raise ValueError("min_protein_retention must be between 0 and 1")
        if self.bedtime_buffer_hours < 0:
            raise ValueError("bedtime_buffer_hours must be non-negative")
        if self.imminent_window_minutes < 0:
            raise ValueError("imminent_window_minutes must be non-negative")
        _load_zone(self.timezone)

    @property
    def zone(self) -> ZoneInfo:
        """Zone in which bedtime is read."""
        return _load_zone(self.timezone)

    def with_overrides(
        self, overrides: dict[str, object]
    ) -> "RedistributionConstraints":
        """Return constraints with known override keys applied."""
        known = {item.name for item in fields(self)}
        changes: dict[str, object] = {}
        for key, value in overrides.items():
            if key not in known or value is None:
                continue
            changes[key] = _coerce(key, value, getattr(self, key))
        if not changes:
            return self
        return replace(self, **changes)


def _coerce(key: str, value: object, current: object) -> object:
    if isinstance(value, bool):
        raise ValueError(f"Invalid value for {key}: {value!r}")
    if isinstance(current, time):
        if isinstance(value, time):
            return value
        if isinstance(value, str):
            return time.fromisoformat(value)
    elif isinstance(current, str):
        if isinstance(value, str):
            return value
    elif isinstance(value, int | float | str):
        try:
            number = float(value)
        except ValueError as exc:
            raise ValueError(f"Invalid value for {key}: {value!r}") from exc
        return int(number) if isinstance(current, int) else number
    raise ValueError(f"Invalid value for {key}: {value!r}")


def _load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {name!r}") from exc

