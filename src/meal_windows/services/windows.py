"""Window snapshots, meal consumption and committing accepted results."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID

from meal_windows.domain.errors import WindowNotFoundError
from meal_windows.domain.macros import ConsumedMacros, MacroTargets
from meal_windows.domain.redistribution import RedistributionResult
from meal_windows.domain.windows import LoggedMeal, MealWindow

logger = logging.getLogger(__name__)


class WindowRepository(Protocol):
    """Persistence interface for a day's meal windows."""

    def list_windows(self, user_id: UUID, day: date) -> list[MealWindow]:
        """Return the windows of a day ordered by start time."""

    def update_consumed(self, window_id: str, consumed: ConsumedMacros) -> None:
        """Store a window's accumulated consumption."""

    def update_targets(
        self, window_id: str, macros: MacroTargets, reason: str | None
    ) -> None:
        """Overwrite a window's target macros."""


@dataclass
class WindowService:
    """Window source, meal-logging and commit collaborator over a repository."""

    repository: WindowRepository

    def get_snapshot(self, user_id: UUID, day: date) -> list[MealWindow]:
        """Return an immutable snapshot of the day's windows."""
        return sorted(
            self.repository.list_windows(user_id, day),
            key=lambda window: window.start_time,
        )

    def record_meal(
        self, user_id: UUID, day: date, window_id: str, meal: LoggedMeal
    ) -> tuple[MealWindow, list[MealWindow]]:
        """Add a meal to a window and return it with the refreshed snapshot."""
        windows = self.get_snapshot(user_id, day)
        window = find_window(windows, window_id)
        updated = window.record_meal(meal)
        self.repository.update_consumed(window_id, updated.consumed)
        snapshot = [updated if item.id == window_id else item for item in windows]
        return updated, snapshot

    def commit(self, user_id: UUID, result: RedistributionResult) -> None:
        """Write adjusted targets for every window in an accepted result."""
        reason = result.trigger.kind.value
        for adjusted in result.adjusted_windows:
            self.repository.update_targets(
                adjusted.window_id, adjusted.adjusted_macros, reason
            )
        logger.info(
            "Committed %d adjusted windows for user %s",
            len(result.adjusted_windows),
            user_id,
        )


def find_window(windows: list[MealWindow], window_id: str) -> MealWindow:
    """Return the window with the given id from a snapshot."""
    for window in windows:
        if window.id == window_id:
            return window
    raise WindowNotFoundError(f"Window {window_id} not found")
