"""Supabase repository for per-user constraint overrides."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from meal_windows.services.constraints import ConstraintOverridesRepository


@dataclass
class SupabaseConstraintRepository(ConstraintOverridesRepository):
    """Supabase implementation for constraint overrides."""

    client: Client

    def get_overrides(self, user_id: UUID) -> dict[str, object] | None:
        """Return the stored overrides for a user."""
        response = (
            self.client.table("redistribution_settings")
            .select("overrides")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        overrides = response.data[0].get("overrides")
        return overrides if isinstance(overrides, dict) else None

    def set_overrides(self, user_id: UUID, overrides: dict[str, object]) -> None:
        """Insert or replace the user's overrides."""
        self.client.table("redistribution_settings").upsert(
            {
                "user_id": str(user_id),
                "overrides": overrides,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).execute()
