"""Domain models for redistribution triggers and results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from meal_windows.domain.macros import MacroTargets
from meal_windows.domain.windows import MealWindow


class TriggerKind(StrEnum):
    """Kinds of deviation that can fire a redistribution."""

    OVERCONSUMPTION = "overconsumption"
    UNDERCONSUMPTION = "underconsumption"
    MISSED_WINDOW = "missed_window"
    EARLY_CONSUMPTION = "early_consumption"
    LATE_CONSUMPTION = "late_consumption"


@dataclass(frozen=True)
class TriggerType:
    """Trigger kind with the deviation percentage where it applies."""

    kind: TriggerKind
    percent: int | None = None

    @classmethod
    def overconsumption(cls, percent_over: int) -> "TriggerType":
        return cls(TriggerKind.OVERCONSUMPTION, percent_over)

    @classmethod
    def underconsumption(cls, percent_under: int) -> "TriggerType":
        return cls(TriggerKind.UNDERCONSUMPTION, percent_under)

    @classmethod
    def missed_window(cls) -> "TriggerType":
        return cls(TriggerKind.MISSED_WINDOW)

    @classmethod
    def early_consumption(cls) -> "TriggerType":
        return cls(TriggerKind.EARLY_CONSUMPTION)

    @classmethod
    def late_consumption(cls) -> "TriggerType":
        return cls(TriggerKind.LATE_CONSUMPTION)

    def to_dict(self) -> dict[str, object]:
        return {"kind": self.kind.value, "percent": self.percent}


@dataclass(frozen=True)
class RedistributionTrigger:
    """A deviation event evaluated against a single window."""

    trigger_window: MealWindow
    trigger_type: TriggerType
    deviation: float
    total_consumed: MacroTargets
    current_time: datetime


@dataclass(frozen=True)
class AdjustedWindow:
    """Proposed new targets for one window."""

    window_id: str
    original_macros: MacroTargets
    adjusted_macros: MacroTargets
    adjustment_ratio: float
    reason: str

    @property
    def calorie_delta(self) -> int:
        """Signed calorie change from original to adjusted."""
        return self.adjusted_macros.calories - self.original_macros.calories

    def to_dict(self) -> dict[str, object]:
        return {
            "window_id": self.window_id,
            "original_macros": self.original_macros.to_dict(),
            "adjusted_macros": self.adjusted_macros.to_dict(),
            "adjustment_ratio": self.adjustment_ratio,
            "calorie_delta": self.calorie_delta,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class RedistributionResult:
    """Full output of one engine run."""

    adjusted_windows: list[AdjustedWindow]
    trigger: TriggerType
    confidence_score: float
    total_redistributed: MacroTargets
    explanation: str
    educational_tip: str | None = None
    source_window_id: str | None = None

    @property
    def is_empty(self) -> bool:
        """Return True when no window was adjusted."""
        return not self.adjusted_windows

    def to_dict(self) -> dict[str, object]:
        return {
            "adjusted_windows": [item.to_dict() for item in self.adjusted_windows],
            "trigger": self.trigger.to_dict(),
            "confidence_score": self.confidence_score,
            "total_redistributed": self.total_redistributed.to_dict(),
            "explanation": self.explanation,
            "educational_tip": self.educational_tip,
            "source_window_id": self.source_window_id,
        }


class OrchestratorState(StrEnum):
    """Lifecycle states of a day's pending redistribution."""

    IDLE = "idle"
    EVALUATING = "evaluating"
    PROPOSED = "proposed"
    APPLIED = "applied"
    REJECTED = "rejected"


class PendingPolicy(StrEnum):
    """What to do when a trigger fires while a result is proposed."""

    REJECT_NEW = "reject"
    OVERWRITE = "overwrite"


@dataclass(frozen=True)
class RedistributionHistory:
    """A proposed result the user accepted or rejected."""

    timestamp: datetime
    source_window_id: str | None
    affected_window_ids: list[str]
    adjustments: list[MacroTargets]
    trigger_kind: TriggerKind
    user_accepted: bool
    user_feedback: str | None = None
    id: UUID = field(default_factory=uuid4)


class RedistributionPattern(StrEnum):
    """Recurring deviation habits detected from history."""

    CONSISTENT_OVEREATING = "consistent_overeating"
    CONSISTENT_UNDEREATING = "consistent_undereating"
    FREQUENT_MISSED_WINDOWS = "frequent_missed_windows"
