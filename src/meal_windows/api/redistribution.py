"""Redistribution API endpoints with simple token auth."""

from __future__ import annotations

from dataclasses import asdict
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from meal_windows.api.models import (
    ConstraintOverridesRequest,
    DecisionRequest,
    MealLogRequest,
    MissedWindowRequest,
    PreviewRequest,
)
from meal_windows.domain.macros import MacroTargets
from meal_windows.domain.windows import LoggedMeal
from meal_windows.services import explanations
from meal_windows.services.history import PATTERN_MESSAGES

if TYPE_CHECKING:
    from meal_windows.containers import AppContainer
    from meal_windows.domain.constraints import RedistributionConstraints
    from meal_windows.domain.redistribution import RedistributionResult

router = APIRouter(prefix="/users", tags=["redistribution"])


def _get_api_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.api_token


async def require_token(
    x_api_token: str | None = Header(default=None),
    api_token: str = Depends(_get_api_token),
) -> None:
    """Ensure requests include a valid API token."""
    if not x_api_token or x_api_token != api_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post("/{user_id}/meals", dependencies=[Depends(require_token)])
def log_meal(
    user_id: UUID, payload: MealLogRequest, request: Request
) -> dict[str, object]:
    """Record a meal and propose a redistribution if it deviates."""
    container: AppContainer = request.app.state.container
    now = payload.now or datetime.now(tz=UTC)
    meal = LoggedMeal(
        name=payload.name,
        calories=payload.calories,
        protein=payload.protein,
        carbs=payload.carbs,
        fat=payload.fat,
        timestamp=payload.timestamp or now,
        window_id=payload.window_id,
    )
    result = container.redistribution_service.log_meal(
        user_id, payload.day, payload.window_id, meal, now
    )
    return _result_response(result)


@router.post(
    "/{user_id}/windows/{window_id}/missed", dependencies=[Depends(require_token)]
)
def window_missed(
    user_id: UUID, window_id: str, payload: MissedWindowRequest, request: Request
) -> dict[str, object]:
    """Propose redistributing a missed window."""
    container: AppContainer = request.app.state.container
    now = payload.now or datetime.now(tz=UTC)
    result = container.redistribution_service.window_missed(
        user_id, payload.day, window_id, now
    )
    return _result_response(result)


@router.post("/{user_id}/preview", dependencies=[Depends(require_token)])
def preview(
    user_id: UUID, payload: PreviewRequest, request: Request
) -> dict[str, object]:
    """Preview the effect of a meal without proposing it."""
    container: AppContainer = request.app.state.container
    now = payload.now or datetime.now(tz=UTC)
    result = container.redistribution_service.preview(
        user_id=user_id,
        day=payload.day,
        window_id=payload.window_id,
        calories=payload.calories,
        macros=MacroTargets(
            protein=payload.protein, carbs=payload.carbs, fat=payload.fat
        ),
        now=now,
    )
    if result is None:
        return {"status": "no_trigger"}
    impact = result.impact
    return {
        "status": "preview",
        "result": _result_payload(result.result),
        "impact": {
            "total_calories_affected": impact.total_calories_affected,
            "windows_affected": impact.windows_affected,
            "largest_window_change": (
                impact.largest_window_change.to_dict()
                if impact.largest_window_change
                else None
            ),
            "severity": impact.severity.value,
            "recommendation": impact.recommendation,
        },
    }


@router.get("/{user_id}/days/{day}/pending", dependencies=[Depends(require_token)])
def pending(user_id: UUID, day: date, request: Request) -> dict[str, object]:
    """Return the proposed result of a day."""
    container: AppContainer = request.app.state.container
    result = container.redistribution_service.get_pending(user_id, day)
    return {"status": "proposed", "result": _result_payload(result)}


@router.post("/{user_id}/days/{day}/accept", dependencies=[Depends(require_token)])
def accept(
    user_id: UUID, day: date, payload: DecisionRequest, request: Request
) -> dict[str, object]:
    """Apply the proposed result of a day."""
    container: AppContainer = request.app.state.container
    now = payload.now or datetime.now(tz=UTC)
    result = container.redistribution_service.accept(user_id, day, now)
    return {"status": "applied", "result": _result_payload(result)}


@router.post("/{user_id}/days/{day}/reject", dependencies=[Depends(require_token)])
def reject(
    user_id: UUID, day: date, payload: DecisionRequest, request: Request
) -> dict[str, object]:
    """Discard the proposed result of a day."""
    container: AppContainer = request.app.state.container
    now = payload.now or datetime.now(tz=UTC)
    result = container.redistribution_service.reject(
        user_id, day, now, payload.feedback
    )
    return {"status": "rejected", "result": _result_payload(result)}


@router.get("/{user_id}/patterns", dependencies=[Depends(require_token)])
def patterns(user_id: UUID, request: Request, limit: int = 30) -> dict[str, object]:
    """Return the dominant deviation pattern in recent history."""
    container: AppContainer = request.app.state.container
    pattern = container.history_service.detect_pattern(user_id, limit)
    if pattern is None:
        return {"pattern": None, "message": None}
    return {"pattern": pattern.value, "message": PATTERN_MESSAGES[pattern]}


@router.get("/{user_id}/constraints", dependencies=[Depends(require_token)])
def get_constraints(user_id: UUID, request: Request) -> dict[str, object]:
    """Return the constraint policy in effect for a user."""
    container: AppContainer = request.app.state.container
    return _constraints_payload(container.constraint_service.for_user(user_id))


@router.put("/{user_id}/constraints", dependencies=[Depends(require_token)])
def set_constraints(
    user_id: UUID, payload: ConstraintOverridesRequest, request: Request
) -> dict[str, object]:
    """Store per-user constraint overrides."""
    container: AppContainer = request.app.state.container
    try:
        resolved = container.constraint_service.set_overrides(
            user_id, payload.overrides
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return _constraints_payload(resolved)


def _result_response(result: RedistributionResult | None) -> dict[str, object]:
    if result is None:
        return {"status": "no_trigger"}
    if result.is_empty:
        return {"status": "no_change", "result": _result_payload(result)}
    return {"status": "proposed", "result": _result_payload(result)}


def _result_payload(result: RedistributionResult) -> dict[str, object]:
    payload = result.to_dict()
    payload["severity"] = explanations.severity(result.trigger).value
    payload["details"] = explanations.explain_adjustments(result.adjusted_windows)
    return payload


def _constraints_payload(
    constraints: RedistributionConstraints,
) -> dict[str, object]:
    payload = asdict(constraints)
    payload["bedtime"] = payload["bedtime"].strftime("%H:%M")
    return payload
