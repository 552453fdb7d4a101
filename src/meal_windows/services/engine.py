"""Proximity-based redistribution engine.

The engine is a pure function of ``(trigger, windows, constraints, now)``. It never
mutates windows and never reads the clock; every "nothing to do" case returns a
well-formed empty result instead of raising.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from meal_windows.domain.constraints import RedistributionConstraints
from meal_windows.domain.macros import MacroTargets
from meal_windows.domain.redistribution import (
    AdjustedWindow,
    RedistributionResult,
    RedistributionTrigger,
    TriggerKind,
    TriggerType,
)
from meal_windows.domain.windows import MealWindow, WindowPurpose
from meal_windows.services import explanations

logger = logging.getLogger(__name__)

MIN_WEIGHT = 0.1
EMPTY_CONFIDENCE = 0.0
BEDTIME_CONFIDENCE = 0.5
MIN_CONFIDENCE = 0.5
_FLOOR_TOLERANCE = 1e-9

_DEVIATION_KINDS = frozenset(
    {
        TriggerKind.OVERCONSUMPTION,
        TriggerKind.UNDERCONSUMPTION,
        TriggerKind.MISSED_WINDOW,
    }
)

PURPOSE_MODIFIERS: dict[WindowPurpose, float] = {
    WindowPurpose.PRE_WORKOUT: 0.8,
    WindowPurpose.POST_WORKOUT: 0.8,
    WindowPurpose.SLEEP_OPTIMIZATION: 0.5,
    WindowPurpose.METABOLIC_BOOST: 1.2,
}


@dataclass(frozen=True)
class ProximityEngine:
    """Distributes a deviation over upcoming windows, favoring nearer ones."""

    def calculate_redistribution(
        self,
        trigger: RedistributionTrigger,
        windows: list[MealWindow],
        constraints: RedistributionConstraints,
        now: datetime,
    ) -> RedistributionResult:
        """Compute adjusted targets for the day's remaining windows."""
        source_id = trigger.trigger_window.id
        upcoming = [
            window
            for window in windows
            if window.is_upcoming(now) and window.is_untouched()
        ]
        if not upcoming:
            return _empty_result(
                trigger.trigger_type,
                EMPTY_CONFIDENCE,
                explanations.NO_UPCOMING_WINDOWS,
                None,
                source_id,
            )

        delta = adjustment_needed(trigger)
        eligible = filter_for_bedtime(upcoming, constraints, now)
        if not eligible:
            return _empty_result(
                trigger.trigger_type,
                BEDTIME_CONFIDENCE,
                explanations.BEDTIME_BUFFER,
                explanations.BEDTIME_TIP,
                source_id,
            )

        weights = proximity_weights(eligible, now)
        adjusted = [
            _adjust_window(window, weights[window.id], delta, constraints, trigger)
            for window in eligible
        ]
        logger.debug(
            "Redistributed %s over %d windows", trigger.trigger_type.kind, len(adjusted)
        )
        return RedistributionResult(
            adjusted_windows=adjusted,
            trigger=trigger.trigger_type,
            confidence_score=confidence_score(adjusted),
            total_redistributed=total_redistributed(adjusted),
            explanation=explanations.explain_result(trigger.trigger_type, adjusted),
            educational_tip=explanations.educational_tip(trigger.trigger_type),
            source_window_id=source_id,
        )


def adjustment_needed(trigger: RedistributionTrigger) -> MacroTargets:
    """Return the macro delta to spread over the remaining windows."""
    target = trigger.trigger_window.target_macros
    consumed = trigger.total_consumed
    kind = trigger.trigger_type.kind
    if kind is TriggerKind.OVERCONSUMPTION:
        return consumed.subtract(target)
    if kind is TriggerKind.UNDERCONSUMPTION:
        return target.subtract(consumed)
    if kind is TriggerKind.MISSED_WINDOW:
        return target
    return MacroTargets.zero()


def bedtime_for(now: datetime, constraints: RedistributionConstraints) -> datetime:
    """Return the next bedtime at or after now, read in the user's timezone.

    Naive timestamps are taken to already be local wall-clock time.
    """
    local_now = now.astimezone(constraints.zone) if now.tzinfo else now
    bedtime = datetime.combine(
        local_now.date(), constraints.bedtime, tzinfo=local_now.tzinfo
    )
    if bedtime < local_now:
        bedtime += timedelta(days=1)
    return bedtime


def filter_for_bedtime(
    windows: list[MealWindow],
    constraints: RedistributionConstraints,
    now: datetime,
) -> list[MealWindow]:
    """Drop windows ending inside the pre-bedtime buffer unless they are imminent."""
    buffer_start = bedtime_for(now, constraints) - timedelta(
        hours=constraints.bedtime_buffer_hours
    )
    imminent_before = now + timedelta(minutes=constraints.imminent_window_minutes)
    return [
        window
        for window in windows
        if window.effective_end_time <= buffer_start
        or window.start_time < imminent_before
    ]


def purpose_modifier(purpose: WindowPurpose) -> float:
    """Multiplier that protects or favors a window by its role."""
    return PURPOSE_MODIFIERS.get(purpose, 1.0)


def proximity_weights(windows: list[MealWindow], now: datetime) -> dict[str, float]:
    """Return normalized weights keyed by window id.

    Weights are never negative and never below ``MIN_WEIGHT`` before normalization,
    so every eligible window takes some share of the change.
    """
    if not windows:
        return {}
    ordered = sorted(windows, key=lambda window: window.start_time)
    span = (
        max(window.effective_end_time for window in ordered) - ordered[0].start_time
    ).total_seconds()

    raw: dict[str, float] = {}
    for window in ordered:
        if span > 0:
            time_to_window = (window.start_time - now).total_seconds()
            proximity = 1.0 - time_to_window / span
        else:
            proximity = 1.0
        raw[window.id] = max(MIN_WEIGHT, proximity * purpose_modifier(window.purpose))

    total = math.fsum(raw.values())
    return {window_id: weight / total for window_id, weight in raw.items()}


def apply_constraints(
    proposed: MacroTargets,
    original: MacroTargets,
    constraints: RedistributionConstraints,
) -> MacroTargets:
    """Clamp proposed macros into the safe range for one window.

    Order matters: calories are scaled into range first, then protein is capped and
    floored, then carbs and fat are capped. The protein floor is applied last among
    the protein rules so it wins over both the calorie ceiling and the protein cap.
    """
    macros = _clamp_calories(proposed, original, constraints)

    protein_floor = protein_floor_for(original, constraints)
    capped_protein = min(constraints.max_protein_per_window, macros.protein)
    protein = max(protein_floor, capped_protein)
    carbs = min(constraints.max_carbs_per_window, max(0, macros.carbs))
    fat = min(constraints.max_fat_per_window, max(0, macros.fat))
    return MacroTargets(protein=protein, carbs=carbs, fat=fat)


def protein_floor_for(
    original: MacroTargets, constraints: RedistributionConstraints
) -> int:
    """Smallest protein a window may keep after adjustment."""
    return math.floor(
        original.protein * constraints.min_protein_retention + _FLOOR_TOLERANCE
    )


def confidence_score(adjusted: list[AdjustedWindow]) -> float:
    """Score how mildly the plan was changed, in [0.5, 1.0]; 0.0 when empty."""
    if not adjusted:
        return EMPTY_CONFIDENCE
    mean_deviation = math.fsum(
        abs(window.adjustment_ratio - 1.0) for window in adjusted
    ) / len(adjusted)
    return max(MIN_CONFIDENCE, min(1.0, 1.0 - mean_deviation))


def total_redistributed(adjusted: list[AdjustedWindow]) -> MacroTargets:
    """Sum the absolute per-macro change across windows."""
    total = MacroTargets.zero()
    for window in adjusted:
        total = total.add(
            window.adjusted_macros.absolute_difference(window.original_macros)
        )
    return total


def _clamp_calories(
    proposed: MacroTargets,
    original: MacroTargets,
    constraints: RedistributionConstraints,
) -> MacroTargets:
    calories = proposed.calories
    if calories > constraints.max_calories_per_window:
        return proposed.scale(constraints.max_calories_per_window / calories)
    if calories >= constraints.min_calories_per_window:
        return proposed
    # Below the floor: grow along the proposed split, or the original one if empty.
    basis = original if proposed.is_zero else proposed
    if basis.is_zero:
        return basis
    factor = constraints.min_calories_per_window / basis.calories
    return MacroTargets(
        protein=math.ceil(basis.protein * factor),
        carbs=math.ceil(basis.carbs * factor),
        fat=math.ceil(basis.fat * factor),
    )


def _adjust_window(
    window: MealWindow,
    weight: float,
    delta: MacroTargets,
    constraints: RedistributionConstraints,
    trigger: RedistributionTrigger,
) -> AdjustedWindow:
    original = window.target_macros
    window_delta = delta.scale(weight)
    kind = trigger.trigger_type.kind
    if kind is TriggerKind.OVERCONSUMPTION:
        proposed = original.subtract(window_delta)
    elif kind in {TriggerKind.UNDERCONSUMPTION, TriggerKind.MISSED_WINDOW}:
        proposed = original.add(window_delta)
    else:
        proposed = original

    if kind in _DEVIATION_KINDS:
        constrained = apply_constraints(proposed, original, constraints)
    else:
        constrained = original
    if original.calories > 0:
        ratio = constrained.calories / original.calories
    else:
        ratio = 1.0
    return AdjustedWindow(
        window_id=window.id,
        original_macros=original,
        adjusted_macros=constrained,
        adjustment_ratio=ratio,
        reason=explanations.window_reason(trigger.trigger_type, ratio),
    )


def _empty_result(
    trigger: TriggerType,
    confidence: float,
    explanation: str,
    tip: str | None,
    source_window_id: str,
) -> RedistributionResult:
    return RedistributionResult(
        adjusted_windows=[],
        trigger=trigger,
        confidence_score=confidence,
        total_redistributed=MacroTargets.zero(),
        explanation=explanation,
        educational_tip=tip,
        source_window_id=source_window_id,
    )
