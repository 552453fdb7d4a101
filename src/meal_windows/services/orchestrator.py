"""Pending-result lifecycle for a user's day."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol
from uuid import UUID

from meal_windows.domain.constraints import RedistributionConstraints
from meal_windows.domain.errors import (
    NoPendingRedistributionError,
    RedistributionCommitError,
    RedistributionPendingError,
)
from meal_windows.domain.redistribution import (
    OrchestratorState,
    PendingPolicy,
    RedistributionResult,
    RedistributionTrigger,
)
from meal_windows.domain.windows import LoggedMeal, MealWindow
from meal_windows.services.engine import ProximityEngine
from meal_windows.services.history import RedistributionHistoryService
from meal_windows.services.triggers import TriggerEvaluator

logger = logging.getLogger(__name__)


class WindowCommitter(Protocol):
    """Persists accepted results back into window storage."""

    def commit(self, user_id: UUID, result: RedistributionResult) -> None:
        """Overwrite targets of every adjusted window."""


@dataclass
class RedistributionOrchestrator:
    """State machine: idle -> evaluating -> proposed -> applied/rejected -> idle.

    At most one result is proposed at a time. Evaluation, accept and reject hold the
    same lock so they never interleave for one user-day.
    """

    user_id: UUID
    day: date
    engine: ProximityEngine
    constraints: RedistributionConstraints
    committer: WindowCommitter
    history_service: RedistributionHistoryService | None = None
    pending_policy: PendingPolicy = PendingPolicy.REJECT_NEW
    state: OrchestratorState = field(default=OrchestratorState.IDLE, init=False)
    pending: RedistributionResult | None = field(default=None, init=False)
    last_outcome: OrchestratorState | None = field(default=None, init=False)
    _lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False
    )

    @property
    def evaluator(self) -> TriggerEvaluator:
        return TriggerEvaluator(self.constraints)

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the user-day lock across a multi-step update."""
        with self._lock:
            yield

    def ensure_accepting_triggers(self) -> None:
        """Raise if a new trigger would be refused under the pending policy."""
        if (
            self.state is OrchestratorState.PROPOSED
            and self.pending_policy is PendingPolicy.REJECT_NEW
        ):
            raise RedistributionPendingError(
                "A redistribution is already awaiting confirmation"
            )

    def handle_meal_logged(
        self,
        meal: LoggedMeal,
        window: MealWindow,
        windows: list[MealWindow],
        now: datetime,
    ) -> RedistributionResult | None:
        """Evaluate a logged meal and propose a result if it deviates enough."""
        with self._lock:
            trigger = self.evaluator.build_trigger(meal, window, now)
            if trigger is None:
                logger.info("Meal in window %s within threshold", window.id)
                return None
            return self._propose(trigger, windows, now)

    def handle_window_missed(
        self, window: MealWindow, windows: list[MealWindow], now: datetime
    ) -> RedistributionResult | None:
        """Propose moving a missed window's targets into the remaining windows."""
        with self._lock:
            if not self.evaluator.is_missed(window, now):
                logger.info("Window %s is not missed", window.id)
                return None
            trigger = self.evaluator.build_missed_trigger(window, now)
            return self._propose(trigger, windows, now)

    def accept(self, now: datetime) -> RedistributionResult:
        """Commit the pending result; it stays proposed if the commit fails."""
        with self._lock:
            result = self._require_pending()
            try:
                self.committer.commit(self.user_id, result)
            except Exception as exc:
                logger.exception("Failed to commit redistribution for %s", self.day)
                raise RedistributionCommitError(
                    "Failed to apply redistribution"
                ) from exc
            self._finish(OrchestratorState.APPLIED)
            logger.info(
                "Applied redistribution to %d windows", len(result.adjusted_windows)
            )
            self._record(result, accepted=True, now=now, feedback=None)
            return result

    def reject(
        self, now: datetime, feedback: str | None = None
    ) -> RedistributionResult:
        """Discard the pending result without touching windows."""
        with self._lock:
            result = self._require_pending()
            self._finish(OrchestratorState.REJECTED)
            logger.info("Rejected redistribution for %s", self.day)
            self._record(result, accepted=False, now=now, feedback=feedback)
            return result

    def _propose(
        self,
        trigger: RedistributionTrigger,
        windows: list[MealWindow],
        now: datetime,
    ) -> RedistributionResult:
        self.ensure_accepting_triggers()
        if self.state is OrchestratorState.PROPOSED:
            logger.warning("Overwriting pending redistribution for %s", self.day)

        self.state = OrchestratorState.EVALUATING
        result = self.engine.calculate_redistribution(
            trigger=trigger,
            windows=windows,
            constraints=self.constraints,
            now=now,
        )
        if result.is_empty:
            # An empty result never replaces a proposal still awaiting a decision.
            if self.pending is None:
                self.state = OrchestratorState.IDLE
            else:
                self.state = OrchestratorState.PROPOSED
            logger.info("No redistribution proposed: %s", result.explanation)
            return result

        self.pending = result
        self.state = OrchestratorState.PROPOSED
        logger.info(
            "Proposed %s redistribution over %d windows",
            trigger.trigger_type.kind,
            len(result.adjusted_windows),
        )
        return result

    def _require_pending(self) -> RedistributionResult:
        if self.state is not OrchestratorState.PROPOSED or self.pending is None:
            raise NoPendingRedistributionError("No redistribution is pending")
        return self.pending

    def _finish(self, outcome: OrchestratorState) -> None:
        self.state = outcome
        self.last_outcome = outcome
        self.pending = None
        self.state = OrchestratorState.IDLE

    def _record(
        self,
        result: RedistributionResult,
        accepted: bool,
        now: datetime,
        feedback: str | None,
    ) -> None:
        if self.history_service is None:
            return
        self.history_service.record(
            user_id=self.user_id,
            result=result,
            accepted=accepted,
            recorded_at=now,
            feedback=feedback,
        )
