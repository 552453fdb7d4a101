"""Redistribution history and pattern detection."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from meal_windows.domain.redistribution import (
    RedistributionHistory,
    RedistributionPattern,
    RedistributionResult,
    TriggerKind,
)

MIN_HISTORY_FOR_PATTERNS = 5

PATTERN_MESSAGES: dict[RedistributionPattern, str] = {
    RedistributionPattern.CONSISTENT_OVEREATING: (
        "You tend to eat more than planned. Consider adding more protein and fiber "
        "to feel fuller."
    ),
    RedistributionPattern.CONSISTENT_UNDEREATING: (
        "You often eat less than planned. Try setting meal reminders to stay on track."
    ),
    RedistributionPattern.FREQUENT_MISSED_WINDOWS: (
        "You miss meals frequently. Meal prep on weekends could help you stay "
        "consistent."
    ),
}


class HistoryRepository(Protocol):
    """Persistence interface for redistribution history."""

    def create_entry(self, user_id: UUID, entry: RedistributionHistory) -> None:
        """Store a history entry."""

    def list_entries(self, user_id: UUID, limit: int) -> list[RedistributionHistory]:
        """Return the most recent history entries."""


@dataclass
class RedistributionHistoryService:
    """Records accepted and rejected results."""

    repository: HistoryRepository

    def record(
        self,
        user_id: UUID,
        result: RedistributionResult,
        accepted: bool,
        recorded_at: datetime,
        feedback: str | None = None,
    ) -> RedistributionHistory:
        """Persist one user decision about a result."""
        entry = RedistributionHistory(
            timestamp=recorded_at,
            source_window_id=result.source_window_id,
            affected_window_ids=[item.window_id for item in result.adjusted_windows],
            adjustments=[item.adjusted_macros for item in result.adjusted_windows],
            trigger_kind=result.trigger.kind,
            user_accepted=accepted,
            user_feedback=feedback,
        )
        self.repository.create_entry(user_id, entry)
        return entry

    def list_recent(
        self, user_id: UUID, limit: int = 30
    ) -> list[RedistributionHistory]:
        """Return recent history for a user."""
        return self.repository.list_entries(user_id, limit)

    def detect_pattern(
        self, user_id: UUID, limit: int = 30
    ) -> RedistributionPattern | None:
        """Return the dominant deviation habit in recent history."""
        return analyze_patterns(self.repository.list_entries(user_id, limit))


def analyze_patterns(
    history: list[RedistributionHistory],
) -> RedistributionPattern | None:
    """Detect a dominant trigger kind; needs at least five entries."""
    if len(history) < MIN_HISTORY_FOR_PATTERNS:
        return None
    counts = dict.fromkeys(TriggerKind, 0)
    for entry in history:
        counts[entry.trigger_kind] += 1

    total = len(history)
    if counts[TriggerKind.OVERCONSUMPTION] > total // 2:
        return RedistributionPattern.CONSISTENT_OVEREATING
    if counts[TriggerKind.UNDERCONSUMPTION] > total // 2:
        return RedistributionPattern.CONSISTENT_UNDEREATING
    if counts[TriggerKind.MISSED_WINDOW] > total // 3:
        return RedistributionPattern.FREQUENT_MISSED_WINDOWS
    return None
