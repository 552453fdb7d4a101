"""Domain models for meal windows and logged meals."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import StrEnum

from meal_windows.domain.macros import ConsumedMacros, MacroTargets


class WindowPurpose(StrEnum):
    """Physiological role of a meal window."""

    PRE_WORKOUT = "pre-workout"
    POST_WORKOUT = "post-workout"
    SUSTAINED_ENERGY = "sustained-energy"
    RECOVERY = "recovery"
    METABOLIC_BOOST = "metabolic-boost"
    SLEEP_OPTIMIZATION = "sleep-optimization"
    FOCUS_BOOST = "focus-boost"


class WindowFlexibility(StrEnum):
    """How strictly a window's timing should be kept."""

    STRICT = "strict"
    MODERATE = "moderate"
    FLEXIBLE = "flexible"


@dataclass(frozen=True)
class LoggedMeal:
    """A meal the user logged, with its macro totals."""

    name: str
    calories: int
    protein: int
    carbs: int
    fat: int
    timestamp: datetime
    window_id: str | None = None

    @property
    def macros(self) -> MacroTargets:
        """Macros of the meal as a target value."""
        return MacroTargets(protein=self.protein, carbs=self.carbs, fat=self.fat)


@dataclass(frozen=True)
class MealWindow:
    """Time-boxed macro target for part of a day."""

    id: str
    start_time: datetime
    end_time: datetime
    target_macros: MacroTargets
    purpose: WindowPurpose = WindowPurpose.SUSTAINED_ENERGY
    flexibility: WindowFlexibility = WindowFlexibility.MODERATE
    name: str = ""
    day: date | None = None
    consumed: ConsumedMacros = field(default_factory=ConsumedMacros)
    is_marked_as_fasted: bool = False
    redistribution_reason: str | None = None

    @property
    def effective_end_time(self) -> datetime:
        """End time, rolled to the next day for windows crossing midnight."""
        if self.end_time < self.start_time:
            return self.end_time + timedelta(days=1)
        return self.end_time

    @property
    def target_calories(self) -> int:
        """Calories derived from the target macros."""
        return self.target_macros.calories

    def is_untouched(self) -> bool:
        """Return True when nothing has been logged into this window."""
        return self.consumed.calories == 0

    def is_upcoming(self, now: datetime) -> bool:
        """Return True when the window has not started yet."""
        return self.start_time > now

    def is_past(self, now: datetime) -> bool:
        """Return True when the window has already ended."""
        return self.effective_end_time < now

    def record_meal(self, meal: LoggedMeal) -> "MealWindow":
        """Return a copy with the meal added to consumption."""
        return replace(
            self,
            consumed=self.consumed.add(
                calories=meal.calories,
                protein=meal.protein,
                carbs=meal.carbs,
                fat=meal.fat,
            ),
        )

    def with_targets(
        self, macros: MacroTargets, reason: str | None = None
    ) -> "MealWindow":
        """Return a copy with new target macros."""
        return replace(self, target_macros=macros, redistribution_reason=reason)
