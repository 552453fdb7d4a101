"""Previews of what a meal would do to the rest of the day."""

from dataclasses import dataclass
from datetime import datetime

from meal_windows.domain.constraints import RedistributionConstraints
from meal_windows.domain.macros import MacroTargets
from meal_windows.domain.redistribution import (
    AdjustedWindow,
    RedistributionResult,
    TriggerKind,
)
from meal_windows.domain.windows import MealWindow
from meal_windows.services.engine import ProximityEngine
from meal_windows.services.explanations import (
    LARGE_DEVIATION_PERCENT,
    Severity,
)
from meal_windows.services.triggers import TriggerEvaluator

HIGH_IMPACT_CALORIES = 500
MEDIUM_IMPACT_CALORIES = 250


@dataclass(frozen=True)
class ImpactSummary:
    """Aggregate effect of a result on the remaining windows."""

    total_calories_affected: int
    windows_affected: int
    largest_window_change: AdjustedWindow | None
    severity: Severity
    recommendation: str


@dataclass(frozen=True)
class RedistributionPreview:
    """A result computed for a meal that has not been logged yet."""

    result: RedistributionResult
    trigger_window: MealWindow
    impact: ImpactSummary


@dataclass(frozen=True)
class PreviewService:
    """Runs the engine for a prospective meal without changing any state."""

    engine: ProximityEngine

    def preview(  # noqa: PLR0913
        self,
        calories: int,
        macros: MacroTargets,
        window: MealWindow,
        windows: list[MealWindow],
        constraints: RedistributionConstraints,
        now: datetime,
    ) -> RedistributionPreview | None:
        """Return a preview, or None if the meal would not trigger."""
        trigger = TriggerEvaluator(constraints).build_trigger_for_macros(
            calories=calories, macros=macros, window=window, now=now
        )
        if trigger is None:
            return None
        result = self.engine.calculate_redistribution(
            trigger=trigger, windows=windows, constraints=constraints, now=now
        )
        return RedistributionPreview(
            result=result,
            trigger_window=window,
            impact=summarize_impact(result),
        )


def summarize_impact(result: RedistributionResult) -> ImpactSummary:
    """Summarize calorie impact and classify its severity."""
    total = sum(abs(item.calorie_delta) for item in result.adjusted_windows)
    largest = max(
        result.adjusted_windows,
        key=lambda item: abs(item.calorie_delta),
        default=None,
    )
    if total > HIGH_IMPACT_CALORIES:
        severity = Severity.HIGH
    elif total > MEDIUM_IMPACT_CALORIES:
        severity = Severity.MEDIUM
    else:
        severity = Severity.LOW
    return ImpactSummary(
        total_calories_affected=total,
        windows_affected=len(result.adjusted_windows),
        largest_window_change=largest,
        severity=severity,
        recommendation=_recommendation(result, severity),
    )


def _recommendation(result: RedistributionResult, severity: Severity) -> str:
    percent = result.trigger.percent or 0
    if result.trigger.kind is TriggerKind.OVERCONSUMPTION:
        if severity is Severity.HIGH:
            return "Consider lighter options for your next meal to stay on track."
        if percent > LARGE_DEVIATION_PERCENT:
            return (
                "You've had a hearty meal! The adjustments will help balance your day."
            )
        return "Minor adjustments to keep you aligned with your goals."
    if result.trigger.kind is TriggerKind.UNDERCONSUMPTION:
        if percent > LARGE_DEVIATION_PERCENT:
            return (
                "You have more room in upcoming windows. "
                "Consider adding nutritious snacks."
            )
        return "Slight increases to help you meet your daily targets."
    if result.trigger.kind is TriggerKind.MISSED_WINDOW:
        return "We've spread the missed calories across your remaining meals."
    return "Adjustments made to optimize your nutrition timing."
