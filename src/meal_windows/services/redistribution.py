"""Entry point tying window storage, constraints and per-day orchestrators."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from uuid import UUID

from meal_windows.domain.errors import NoPendingRedistributionError
from meal_windows.domain.macros import MacroTargets
from meal_windows.domain.redistribution import (
    OrchestratorState,
    PendingPolicy,
    RedistributionResult,
)
from meal_windows.domain.windows import LoggedMeal
from meal_windows.services.constraints import ConstraintService
from meal_windows.services.engine import ProximityEngine
from meal_windows.services.history import RedistributionHistoryService
from meal_windows.services.orchestrator import RedistributionOrchestrator
from meal_windows.services.preview import PreviewService, RedistributionPreview
from meal_windows.services.windows import WindowService, find_window

logger = logging.getLogger(__name__)

# Days a pending proposal survives after its day has passed.
RETAIN_PENDING_DAYS = 1


@dataclass
class RedistributionService:
    """Routes meal and window events to the orchestrator of each user-day."""

    engine: ProximityEngine
    window_service: WindowService
    constraint_service: ConstraintService
    history_service: RedistributionHistoryService
    pending_policy: PendingPolicy = PendingPolicy.REJECT_NEW
    _orchestrators: dict[tuple[UUID, date], RedistributionOrchestrator] = field(
        default_factory=dict, init=False, repr=False
    )
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def orchestrator_for(self, user_id: UUID, day: date) -> RedistributionOrchestrator:
        """Return the orchestrator of a user-day, creating it on first use."""
        key = (user_id, day)
        with self._lock:
            orchestrator = self._orchestrators.get(key)
            if orchestrator is None:
                orchestrator = RedistributionOrchestrator(
                    user_id=user_id,
                    day=day,
                    engine=self.engine,
                    constraints=self.constraint_service.for_user(user_id),
                    committer=self.window_service,
                    history_service=self.history_service,
                    pending_policy=self.pending_policy,
                )
                self._prune(day)
                self._orchestrators[key] = orchestrator
            return orchestrator

    def log_meal(
        self,
        user_id: UUID,
        day: date,
        window_id: str,
        meal: LoggedMeal,
        now: datetime,
    ) -> RedistributionResult | None:
        """Record a meal into its window and evaluate the deviation."""
        orchestrator = self.orchestrator_for(user_id, day)
        with orchestrator.exclusive():
            snapshot = self.window_service.get_snapshot(user_id, day)
            current = find_window(snapshot, window_id)
            # A meal that would be refused as a trigger is not recorded either.
            if orchestrator.evaluator.build_trigger(meal, current, now) is not None:
                orchestrator.ensure_accepting_triggers()
            window, windows = self.window_service.record_meal(
                user_id, day, window_id, meal
            )
            return orchestrator.handle_meal_logged(meal, window, windows, now)

    def window_missed(
        self, user_id: UUID, day: date, window_id: str, now: datetime
    ) -> RedistributionResult | None:
        """Evaluate a window that ended without any logged meal."""
        windows = self.window_service.get_snapshot(user_id, day)
        window = find_window(windows, window_id)
        return self.orchestrator_for(user_id, day).handle_window_missed(
            window, windows, now
        )

    def preview(  # noqa: PLR0913
        self,
        user_id: UUID,
        day: date,
        window_id: str,
        calories: int,
        macros: MacroTargets,
        now: datetime,
    ) -> RedistributionPreview | None:
        """Preview a prospective meal without proposing anything."""
        windows = self.window_service.get_snapshot(user_id, day)
        window = find_window(windows, window_id)
        return PreviewService(self.engine).preview(
            calories=calories,
            macros=macros,
            window=window,
            windows=windows,
            constraints=self.constraint_service.for_user(user_id),
            now=now,
        )

    def get_pending(self, user_id: UUID, day: date) -> RedistributionResult:
        """Return the proposed result of a user-day."""
        pending = self.orchestrator_for(user_id, day).pending
        if pending is None:
            raise NoPendingRedistributionError("No redistribution is pending")
        return pending

    def accept(self, user_id: UUID, day: date, now: datetime) -> RedistributionResult:
        """Apply the pending result of a user-day."""
        return self.orchestrator_for(user_id, day).accept(now)

    def reject(
        self,
        user_id: UUID,
        day: date,
        now: datetime,
        feedback: str | None = None,
    ) -> RedistributionResult:
        """Discard the pending result of a user-day."""
        return self.orchestrator_for(user_id, day).reject(now, feedback)

    def _prune(self, day: date) -> None:
        """Drop orchestrators of past days that hold nothing worth keeping."""
        cutoff = day - timedelta(days=RETAIN_PENDING_DAYS)
        stale = [
            key
            for key, orchestrator in self._orchestrators.items()
            if orchestrator.day < cutoff
            or (
                orchestrator.day < day
                and orchestrator.state is OrchestratorState.IDLE
            )
        ]
        for key in stale:
            del self._orchestrators[key]
        if stale:
            logger.debug("Pruned %d idle orchestrators", len(stale))
