"""Tests for the proximity redistribution engine."""

from datetime import UTC, datetime

import pytest

from meal_windows.domain.constraints import RedistributionConstraints
from meal_windows.domain.macros import MacroTargets
from meal_windows.domain.redistribution import RedistributionTrigger, TriggerType
from meal_windows.domain.windows import WindowPurpose
from meal_windows.services import explanations
from meal_windows.services.engine import (
    ProximityEngine,
    apply_constraints,
    bedtime_for,
    filter_for_bedtime,
    protein_floor_for,
    proximity_weights,
)
from tests.conftest import NOW, make_window


def _trigger(
    trigger_type: TriggerType,
    target: MacroTargets,
    consumed: MacroTargets,
    deviation: float,
    now: datetime = NOW,
) -> RedistributionTrigger:
    source = make_window("source", start_hours=-2, macros=target, now=now)
    return RedistributionTrigger(
        trigger_window=source,
        trigger_type=trigger_type,
        deviation=deviation,
        total_consumed=consumed,
        current_time=now,
    )


def _missed(target: MacroTargets, now: datetime = NOW) -> RedistributionTrigger:
    return _trigger(TriggerType.missed_window(), target, MacroTargets.zero(), -1.0, now)


def test_overconsumption_favors_nearer_window(constraints) -> None:
    trigger = _trigger(
        TriggerType.overconsumption(50),
        target=MacroTargets(protein=40, carbs=50, fat=15),
        consumed=MacroTargets(protein=60, carbs=75, fat=23),
        deviation=0.5,
    )
    windows = [make_window("w1", start_hours=1), make_window("w2", start_hours=5)]

    result = ProximityEngine().calculate_redistribution(
        trigger, windows, constraints, NOW
    )

    by_id = {item.window_id: item for item in result.adjusted_windows}
    assert by_id["w1"].adjusted_macros == MacroTargets(protein=28, carbs=40, fat=14)
    assert by_id["w2"].adjusted_macros == MacroTargets(protein=37, carbs=56, fat=19)
    assert by_id["w1"].calorie_delta < by_id["w2"].calorie_delta < 0
    for item in result.adjusted_windows:
        assert item.adjusted_macros.calories >= constraints.min_calories_per_window
        assert item.adjusted_macros.protein >= int(40 * 0.7)
    assert 0.5 <= result.confidence_score <= 1.0
    assert result.source_window_id == "source"
    assert result.explanation.startswith("You ate 50% more than planned.")


def test_missed_window_moves_targets_to_single_window(constraints) -> None:
    trigger = _missed(MacroTargets(protein=30, carbs=40, fat=12))
    windows = [
        make_window(
            "w1", start_hours=2, macros=MacroTargets(protein=20, carbs=30, fat=10)
        )
    ]

    result = ProximityEngine().calculate_redistribution(
        trigger, windows, constraints, NOW
    )

    [adjusted] = result.adjusted_windows
    assert adjusted.adjusted_macros == MacroTargets(protein=50, carbs=70, fat=22)
    assert adjusted.adjusted_macros.calories == 678
    assert adjusted.adjustment_ratio == pytest.approx(678 / 290)
    assert result.confidence_score == 0.5
    assert result.total_redistributed == MacroTargets(protein=30, carbs=40, fat=12)
    assert result.educational_tip is not None


def test_no_upcoming_windows_returns_empty_result(constraints) -> None:
    trigger = _missed(MacroTargets(protein=30, carbs=40, fat=12))
    windows = [
        make_window("past", start_hours=-6),
        make_window("touched", start_hours=2, consumed_calories=150),
    ]

    result = ProximityEngine().calculate_redistribution(
        trigger, windows, constraints, NOW
    )

    assert result.is_empty
    assert result.confidence_score == 0.0
    assert result.total_redistributed == MacroTargets.zero()
    assert result.explanation == explanations.NO_UPCOMING_WINDOWS


def test_imminent_window_inside_bedtime_buffer_is_kept(constraints) -> None:
    now = NOW.replace(hour=18, minute=30)
    trigger = _missed(MacroTargets(protein=30, carbs=40, fat=12), now=now)
    windows = [
        make_window("soon", start_hours=0.75, duration_hours=0.75, now=now),
        make_window("late", start_hours=2.0, duration_hours=1.0, now=now),
    ]

    result = ProximityEngine().calculate_redistribution(
        trigger, windows, constraints, now
    )

    assert [item.window_id for item in result.adjusted_windows] == ["soon"]


def test_all_windows_inside_bedtime_buffer(constraints) -> None:
    now = NOW.replace(hour=18)
    trigger = _missed(MacroTargets(protein=30, carbs=40, fat=12), now=now)
    windows = [
        make_window("evening", start_hours=1.5, now=now),
        make_window("night", start_hours=2.75, duration_hours=1.0, now=now),
    ]

    result = ProximityEngine().calculate_redistribution(
        trigger, windows, constraints, now
    )

    assert result.is_empty
    assert result.confidence_score == 0.5
    assert result.explanation == explanations.BEDTIME_BUFFER
    assert result.educational_tip == explanations.BEDTIME_TIP


def test_bedtime_rolls_to_next_day(constraints) -> None:
    now = NOW.replace(hour=23)
    breakfast = make_window("breakfast", start_hours=9, now=now)

    assert filter_for_bedtime([breakfast], constraints, now) == [breakfast]


def test_weights_normalize_and_decrease_with_distance() -> None:
    windows = [
        make_window("w1", start_hours=1),
        make_window("w2", start_hours=3),
        make_window("w3", start_hours=5),
    ]

    weights = proximity_weights(windows, NOW)

    assert sum(weights.values()) == pytest.approx(1.0)
    assert weights["w1"] > weights["w2"] > weights["w3"] > 0


def test_tied_windows_share_weight_equally() -> None:
    windows = [make_window("a", start_hours=2), make_window("b", start_hours=2)]

    weights = proximity_weights(windows, NOW)

    assert weights["a"] == pytest.approx(weights["b"])
    assert weights["a"] == pytest.approx(0.5)


def test_single_window_takes_full_weight() -> None:
    weights = proximity_weights(
        [make_window("only", start_hours=3, duration_hours=0)], NOW
    )

    assert weights == {"only": 1.0}


def test_far_window_keeps_minimum_weight() -> None:
    windows = [
        make_window("near", start_hours=1, duration_hours=1),
        make_window(
            "far",
            start_hours=9,
            purpose=WindowPurpose.SLEEP_OPTIMIZATION,
        ),
    ]

    weights = proximity_weights(windows, NOW)

    assert weights["far"] == pytest.approx(0.1)
    assert weights["near"] == pytest.approx(0.9)


def test_purpose_modifier_protects_workout_window() -> None:
    windows = [
        make_window("regular", start_hours=2),
        make_window("workout", start_hours=2, purpose=WindowPurpose.PRE_WORKOUT),
        make_window("evening", start_hours=6),
    ]

    weights = proximity_weights(windows, NOW)

    assert weights["workout"] < weights["regular"]


def test_calorie_ceiling_scales_proportionally(constraints) -> None:
    result = apply_constraints(
        MacroTargets(protein=100, carbs=220, fat=70),
        MacroTargets(protein=40, carbs=100, fat=30),
        constraints,
    )

    assert result == MacroTargets(protein=52, carbs=115, fat=36)
    assert result.calories <= constraints.max_calories_per_window


def test_calorie_floor_grows_original_split(constraints) -> None:
    result = apply_constraints(
        MacroTargets.zero(),
        MacroTargets(protein=20, carbs=30, fat=10),
        constraints,
    )

    assert result == MacroTargets(protein=14, carbs=21, fat=7)
    assert result.calories >= constraints.min_calories_per_window


def test_protein_floor_wins_over_calorie_ceiling() -> None:
    constraints = RedistributionConstraints(
        min_calories_per_window=100, max_calories_per_window=250
    )

    result = apply_constraints(
        MacroTargets(protein=100, carbs=0, fat=0),
        MacroTargets(protein=100, carbs=0, fat=0),
        constraints,
    )

    assert result.protein == 70
    assert result.calories > constraints.max_calories_per_window


def test_underconsumption_respects_caps(constraints) -> None:
    trigger = _trigger(
        TriggerType.underconsumption(75),
        target=MacroTargets(protein=40, carbs=60, fat=20),
        consumed=MacroTargets(protein=10, carbs=15, fat=5),
        deviation=-0.75,
    )

    result = ProximityEngine().calculate_redistribution(
        trigger, [make_window("w1", start_hours=1)], constraints, NOW
    )

    [adjusted] = result.adjusted_windows
    assert adjusted.adjusted_macros == MacroTargets(protein=60, carbs=103, fat=34)
    assert adjusted.adjusted_macros.calories <= constraints.max_calories_per_window


def test_timing_triggers_leave_targets_unchanged(constraints) -> None:
    trigger = _trigger(
        TriggerType.early_consumption(),
        target=MacroTargets(protein=40, carbs=50, fat=15),
        consumed=MacroTargets(protein=40, carbs=50, fat=15),
        deviation=0.0,
    )
    windows = [make_window("w1", start_hours=1), make_window("w2", start_hours=4)]

    result = ProximityEngine().calculate_redistribution(
        trigger, windows, constraints, NOW
    )

    assert result.total_redistributed == MacroTargets.zero()
    for item in result.adjusted_windows:
        assert item.adjusted_macros == item.original_macros
        assert item.adjustment_ratio == 1.0
    assert result.confidence_score == 1.0


def test_engine_does_not_modify_windows(constraints) -> None:
    trigger = _missed(MacroTargets(protein=30, carbs=40, fat=12))
    windows = [make_window("w1", start_hours=1), make_window("w2", start_hours=3)]
    snapshot = list(windows)

    first = ProximityEngine().calculate_redistribution(
        trigger, windows, constraints, NOW
    )
    second = ProximityEngine().calculate_redistribution(
        trigger, windows, constraints, NOW
    )

    assert windows == snapshot
    assert first == second


def test_only_untouched_upcoming_windows_are_adjusted(constraints) -> None:
    trigger = _missed(MacroTargets(protein=30, carbs=40, fat=12))
    windows = [
        make_window("started", start_hours=-0.5),
        make_window("touched", start_hours=1, consumed_calories=200),
        make_window("open", start_hours=2),
    ]

    result = ProximityEngine().calculate_redistribution(
        trigger, windows, constraints, NOW
    )

    assert [item.window_id for item in result.adjusted_windows] == ["open"]


def test_bedtime_is_read_in_user_timezone() -> None:
    # 18:00 UTC is 13:00 for a user five hours behind UTC.
    now = NOW.replace(hour=18)
    eastern = RedistributionConstraints(timezone="Etc/GMT+5")
    afternoon = make_window("afternoon", start_hours=3, duration_hours=1, now=now)
    evening = make_window("evening", start_hours=7, duration_hours=1, now=now)

    kept = filter_for_bedtime([afternoon, evening], eastern, now)

    assert kept == [afternoon]
    assert bedtime_for(now, eastern).astimezone(UTC) == datetime(
        2026, 3, 11, 3, 0, tzinfo=UTC
    )


def test_same_windows_in_utc_fall_inside_buffer(constraints) -> None:
    now = NOW.replace(hour=18)
    afternoon = make_window("afternoon", start_hours=3, duration_hours=1, now=now)

    assert filter_for_bedtime([afternoon], constraints, now) == []


def test_naive_now_is_treated_as_local_time() -> None:
    eastern = RedistributionConstraints(timezone="Etc/GMT+5")
    now = datetime(2026, 3, 10, 13, 0)

    assert bedtime_for(now, eastern) == datetime(2026, 3, 10, 22, 0)


_SWEEP_STARTS = [1.0, 2.5, 4.0, 5.0]
_SWEEP_MACROS = [
    MacroTargets(protein=40, carbs=60, fat=20),
    MacroTargets(protein=55, carbs=110, fat=45),
    MacroTargets(protein=20, carbs=30, fat=10),
    MacroTargets(protein=30, carbs=45, fat=12),
]
_SWEEP_PURPOSES = {
    "sustained": [WindowPurpose.SUSTAINED_ENERGY] * 4,
    "mixed": [
        WindowPurpose.PRE_WORKOUT,
        WindowPurpose.SLEEP_OPTIMIZATION,
        WindowPurpose.METABOLIC_BOOST,
        WindowPurpose.RECOVERY,
    ],
    "post_workout": [WindowPurpose.POST_WORKOUT] * 4,
}


def _sweep_trigger(kind: str) -> RedistributionTrigger:
    if kind == "over":
        return _trigger(
            TriggerType.overconsumption(52),
            target=MacroTargets(protein=40, carbs=50, fat=15),
            consumed=MacroTargets(protein=60, carbs=75, fat=23),
            deviation=0.52,
        )
    if kind == "under":
        return _trigger(
            TriggerType.underconsumption(75),
            target=MacroTargets(protein=40, carbs=60, fat=20),
            consumed=MacroTargets(protein=10, carbs=15, fat=5),
            deviation=-0.75,
        )
    return _missed(MacroTargets(protein=60, carbs=120, fat=40))


@pytest.mark.parametrize("kind", ["over", "under", "missed"])
@pytest.mark.parametrize("count", [1, 2, 4])
@pytest.mark.parametrize("purposes", sorted(_SWEEP_PURPOSES))
def test_adjusted_windows_stay_within_limits(
    constraints, kind: str, count: int, purposes: str
) -> None:
    windows = [
        make_window(
            f"w{index}",
            start_hours=_SWEEP_STARTS[index],
            macros=_SWEEP_MACROS[index],
            purpose=_SWEEP_PURPOSES[purposes][index],
        )
        for index in range(count)
    ]

    result = ProximityEngine().calculate_redistribution(
        _sweep_trigger(kind), windows, constraints, NOW
    )

    assert len(result.adjusted_windows) == count
    for item in result.adjusted_windows:
        macros = item.adjusted_macros
        floor = protein_floor_for(item.original_macros, constraints)
        assert macros.calories >= constraints.min_calories_per_window
        assert (
            macros.calories <= constraints.max_calories_per_window
            or macros.protein == floor
        )
        assert macros.protein >= floor
        assert macros.carbs <= constraints.max_carbs_per_window
        assert macros.fat <= constraints.max_fat_per_window
    assert 0.5 <= result.confidence_score <= 1.0
    assert result.total_redistributed == MacroTargets(
        protein=sum(
            abs(item.adjusted_macros.protein - item.original_macros.protein)
            for item in result.adjusted_windows
        ),
        carbs=sum(
            abs(item.adjusted_macros.carbs - item.original_macros.carbs)
            for item in result.adjusted_windows
        ),
        fat=sum(
            abs(item.adjusted_macros.fat - item.original_macros.fat)
            for item in result.adjusted_windows
        ),
    )

    weights = proximity_weights(windows, NOW)
    assert sum(weights.values()) == pytest.approx(1.0)
    for purpose in set(_SWEEP_PURPOSES[purposes][:count]):
        same = [window for window in windows if window.purpose is purpose]
        shares = [weights[window.id] for window in same]
        assert shares == sorted(shares, reverse=True)
