"""Supabase repository for redistribution history."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from meal_windows.domain.macros import MacroTargets
from meal_windows.domain.redistribution import RedistributionHistory, TriggerKind
from meal_windows.services.history import HistoryRepository


@dataclass
class SupabaseHistoryRepository(HistoryRepository):
    """Supabase implementation for redistribution history."""

    client: Client

    def create_entry(self, user_id: UUID, entry: RedistributionHistory) -> None:
        """Insert a history row."""
        response = (
            self.client.table("redistribution_history")
            .insert(
                {
                    "id": str(entry.id),
                    "user_id": str(user_id),
                    "recorded_at": entry.timestamp.isoformat(),
                    "source_window_id": entry.source_window_id,
                    "affected_window_ids": entry.affected_window_ids,
                    "adjustments": [
                        {"protein": item.protein, "carbs": item.carbs, "fat": item.fat}
                        for item in entry.adjustments
                    ],
                    "trigger_kind": entry.trigger_kind.value,
                    "user_accepted": entry.user_accepted,
                    "user_feedback": entry.user_feedback,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create redistribution history entry")

    def list_entries(self, user_id: UUID, limit: int) -> list[RedistributionHistory]:
        """Return the most recent history rows."""
        response = (
            self.client.table("redistribution_history")
            .select(
                "id, recorded_at, source_window_id, affected_window_ids, "
                "adjustments, trigger_kind, user_accepted, user_feedback"
            )
            .eq("user_id", str(user_id))
            .order("recorded_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_row_to_entry(row) for row in response.data or []]


def _row_to_entry(row: dict[str, object]) -> RedistributionHistory:
    adjustments = row.get("adjustments") or []
    return RedistributionHistory(
        id=UUID(str(row["id"])),
        timestamp=datetime.fromisoformat(str(row["recorded_at"])),
        source_window_id=row.get("source_window_id"),
        affected_window_ids=list(row.get("affected_window_ids") or []),
        adjustments=[
            MacroTargets(
                protein=int(item.get("protein", 0)),
                carbs=int(item.get("carbs", 0)),
                fat=int(item.get("fat", 0)),
            )
            for item in adjustments
            if isinstance(item, dict)
        ],
        trigger_kind=TriggerKind(str(row["trigger_kind"])),
        user_accepted=bool(row.get("user_accepted")),
        user_feedback=row.get("user_feedback"),
    )
