"""Trigger evaluation for logged meals and missed windows."""

from dataclasses import dataclass
from datetime import datetime

from meal_windows.domain.constraints import RedistributionConstraints
from meal_windows.domain.macros import MacroTargets
from meal_windows.domain.redistribution import RedistributionTrigger, TriggerType
from meal_windows.domain.windows import LoggedMeal, MealWindow

MISSED_WINDOW_DEVIATION = -1.0


@dataclass(frozen=True)
class TriggerEvaluator:
    """Decides whether a deviation is large enough to redistribute."""

    constraints: RedistributionConstraints

    def calculate_deviation(self, calories: int, window: MealWindow) -> float:
        """Return (consumed - target) / target, or 0.0 for a zero target."""
        target_calories = window.target_calories
        if target_calories <= 0:
            return 0.0
        return (calories - target_calories) / target_calories

    def evaluate(self, meal: LoggedMeal, window: MealWindow) -> bool:
        """Return True when the meal deviates beyond the threshold."""
        deviation = self.calculate_deviation(meal.calories, window)
        return abs(deviation) > self.constraints.deviation_threshold

    def build_trigger(
        self, meal: LoggedMeal, window: MealWindow, now: datetime
    ) -> RedistributionTrigger | None:
        """Build an over/under-consumption trigger, or None below threshold."""
        return self.build_trigger_for_macros(
            calories=meal.calories, macros=meal.macros, window=window, now=now
        )

    def build_trigger_for_macros(
        self,
        calories: int,
        macros: MacroTargets,
        window: MealWindow,
        now: datetime,
    ) -> RedistributionTrigger | None:
        """Build a trigger from raw consumed totals, or None below threshold."""
        deviation = self.calculate_deviation(calories, window)
        if abs(deviation) <= self.constraints.deviation_threshold:
            return None
        percent = round(abs(deviation) * 100)
        if deviation > 0:
            trigger_type = TriggerType.overconsumption(percent)
        else:
            trigger_type = TriggerType.underconsumption(percent)
        return RedistributionTrigger(
            trigger_window=window,
            trigger_type=trigger_type,
            deviation=deviation,
            total_consumed=macros,
            current_time=now,
        )

    def is_missed(self, window: MealWindow, now: datetime) -> bool:
        """Return True when the window ended with nothing logged."""
        return (
            window.is_past(now)
            and window.is_untouched()
            and not window.is_marked_as_fasted
        )

    def build_missed_trigger(
        self, window: MealWindow, now: datetime
    ) -> RedistributionTrigger:
        """Build a missed-window trigger; it ignores the deviation threshold."""
        return RedistributionTrigger(
            trigger_window=window,
            trigger_type=TriggerType.missed_window(),
            deviation=MISSED_WINDOW_DEVIATION,
            total_consumed=MacroTargets.zero(),
            current_time=now,
        )
