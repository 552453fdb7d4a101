"""Supabase repository for meal windows."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from supabase import Client

from meal_windows.domain.macros import ConsumedMacros, MacroTargets
from meal_windows.domain.windows import MealWindow, WindowFlexibility, WindowPurpose
from meal_windows.services.windows import WindowRepository

_WINDOW_COLUMNS = (
    "id, name, day, start_time, end_time, purpose, flexibility, "
    "target_protein, target_carbs, target_fat, consumed_calories, "
    "consumed_protein, consumed_carbs, consumed_fat, is_marked_as_fasted, "
    "redistribution_reason"
)


@dataclass
class SupabaseWindowRepository(WindowRepository):
    """Supabase implementation for meal windows."""

    client: Client

    def list_windows(self, user_id: UUID, day: date) -> list[MealWindow]:
        """Return the windows of a day ordered by start time."""
        response = (
            self.client.table("meal_windows")
            .select(_WINDOW_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("day", day.isoformat())
            .order("start_time")
            .execute()
        )
        return [_row_to_window(row) for row in response.data or []]

    def update_consumed(self, window_id: str, consumed: ConsumedMacros) -> None:
        """Store a window's accumulated consumption."""
        response = (
            self.client.table("meal_windows")
            .update(
                {
                    "consumed_calories": consumed.calories,
                    "consumed_protein": consumed.protein,
                    "consumed_carbs": consumed.carbs,
                    "consumed_fat": consumed.fat,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("id", window_id)
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to update consumption for window {window_id}")

    def update_targets(
        self, window_id: str, macros: MacroTargets, reason: str | None
    ) -> None:
        """Overwrite a window's target macros."""
        response = (
            self.client.table("meal_windows")
            .update(
                {
                    "target_protein": macros.protein,
                    "target_carbs": macros.carbs,
                    "target_fat": macros.fat,
                    "target_calories": macros.calories,
                    "redistribution_reason": reason,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("id", window_id)
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to update targets for window {window_id}")


def _row_to_window(row: dict[str, object]) -> MealWindow:
    return MealWindow(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        day=date.fromisoformat(str(row["day"])) if row.get("day") else None,
        start_time=datetime.fromisoformat(str(row["start_time"])),
        end_time=datetime.fromisoformat(str(row["end_time"])),
        purpose=WindowPurpose(str(row.get("purpose") or "sustained-energy")),
        flexibility=WindowFlexibility(str(row.get("flexibility") or "moderate")),
        target_macros=MacroTargets(
            protein=int(row.get("target_protein") or 0),
            carbs=int(row.get("target_carbs") or 0),
            fat=int(row.get("target_fat") or 0),
        ),
        consumed=ConsumedMacros(
            calories=int(row.get("consumed_calories") or 0),
            protein=int(row.get("consumed_protein") or 0),
            carbs=int(row.get("consumed_carbs") or 0),
            fat=int(row.get("consumed_fat") or 0),
        ),
        is_marked_as_fasted=bool(row.get("is_marked_as_fasted")),
        redistribution_reason=row.get("redistribution_reason"),
    )
