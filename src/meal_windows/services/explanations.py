"""Human-readable explanations for redistribution results."""

from enum import StrEnum

from meal_windows.domain.redistribution import AdjustedWindow, TriggerKind, TriggerType

NO_UPCOMING_WINDOWS = "No upcoming windows available for redistribution."
BEDTIME_BUFFER = "No windows available outside of bedtime buffer."
BEDTIME_TIP = "Try to complete your meals earlier to avoid late-night eating."
LARGE_DEVIATION_PERCENT = 50
MODERATE_DEVIATION_PERCENT = 25


class Severity(StrEnum):
    """How strongly a result should be highlighted."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def window_reason(trigger: TriggerType, adjustment_ratio: float) -> str:
    """Return the per-window reason tag."""
    change_percent = round(abs(adjustment_ratio - 1.0) * 100)
    if trigger.kind is TriggerKind.OVERCONSUMPTION:
        return f"Reduced by {change_percent}% due to earlier overconsumption"
    if trigger.kind is TriggerKind.UNDERCONSUMPTION:
        return f"Increased by {change_percent}% to compensate for earlier deficit"
    if trigger.kind is TriggerKind.MISSED_WINDOW:
        return f"Increased by {change_percent}% to account for missed window"
    return f"Adjusted by {change_percent}%"


def explain_result(trigger: TriggerType, adjusted: list[AdjustedWindow]) -> str:
    """Summarize a result in one or two sentences."""
    if not adjusted:
        return "No adjustments were needed."
    total_change = sum(abs(window.calorie_delta) for window in adjusted)
    if trigger.kind is TriggerKind.OVERCONSUMPTION:
        return (
            f"You ate {trigger.percent}% more than planned. I've reduced your "
            f"upcoming meals by a total of {total_change} calories, with larger "
            "adjustments to your next window to help balance your day."
        )
    if trigger.kind is TriggerKind.UNDERCONSUMPTION:
        return (
            f"You ate {trigger.percent}% less than planned. I've increased your "
            f"upcoming meals by {total_change} calories to help you reach your "
            "daily goals."
        )
    if trigger.kind is TriggerKind.MISSED_WINDOW:
        if len(adjusted) == 1:
            return (
                "You missed a meal window. I've added those "
                f"{total_change} calories to your next window to help you catch up."
            )
        return (
            f"You missed a meal window. I've redistributed those {total_change} "
            f"calories across your {len(adjusted)} remaining meals for the day."
        )
    return (
        "I've adjusted your upcoming meal windows to better align with your "
        "consumption pattern."
    )


def educational_tip(trigger: TriggerType) -> str | None:
    """Return a tip for large deviations and missed windows."""
    percent = trigger.percent or 0
    if (
        trigger.kind is TriggerKind.OVERCONSUMPTION
        and percent > LARGE_DEVIATION_PERCENT
    ):
        return "Try adding more protein and fiber to feel fuller with smaller portions."
    if (
        trigger.kind is TriggerKind.UNDERCONSUMPTION
        and percent > LARGE_DEVIATION_PERCENT
    ):
        return (
            "Consider setting meal reminders to help you stay on track with your "
            "nutrition timing."
        )
    if trigger.kind is TriggerKind.MISSED_WINDOW:
        return "Preparing meals in advance can help you avoid missing eating windows."
    return None


def severity(trigger: TriggerType) -> Severity:
    """Classify a trigger for UI emphasis."""
    if trigger.kind in {TriggerKind.OVERCONSUMPTION, TriggerKind.UNDERCONSUMPTION}:
        percent = trigger.percent or 0
        if percent > LARGE_DEVIATION_PERCENT:
            return Severity.HIGH
        if percent > MODERATE_DEVIATION_PERCENT:
            return Severity.MEDIUM
        return Severity.LOW
    if trigger.kind is TriggerKind.MISSED_WINDOW:
        return Severity.MEDIUM
    return Severity.LOW


def explain_adjustments(adjusted: list[AdjustedWindow]) -> list[str]:
    """Return one line per adjusted window describing its calorie change."""
    lines = []
    for window in adjusted:
        delta = window.calorie_delta
        if delta > 0:
            lines.append(
                f"{window.window_id}: +{delta} calories added - {window.reason}"
            )
        elif delta < 0:
            lines.append(
                f"{window.window_id}: {delta} calories removed - {window.reason}"
            )
        else:
            lines.append(f"{window.window_id}: unchanged - {window.reason}")
    return lines
