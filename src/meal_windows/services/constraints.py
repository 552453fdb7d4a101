"""Per-user constraint overrides."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from meal_windows.domain.constraints import RedistributionConstraints


class ConstraintOverridesRepository(Protocol):
    """Persistence interface for per-user constraint overrides."""

    def get_overrides(self, user_id: UUID) -> dict[str, object] | None:
        """Return stored overrides for a user, if any."""

    def set_overrides(self, user_id: UUID, overrides: dict[str, object]) -> None:
        """Store overrides for a user."""


@dataclass
class ConstraintService:
    """Resolves the constraint policy that applies to a user."""

    repository: ConstraintOverridesRepository
    defaults: RedistributionConstraints

    def for_user(self, user_id: UUID) -> RedistributionConstraints:
        """Return defaults with the user's overrides applied."""
        overrides = self.repository.get_overrides(user_id)
        if not overrides:
            return self.defaults
        return self.defaults.with_overrides(overrides)

    def set_overrides(
        self, user_id: UUID, overrides: dict[str, object]
    ) -> RedistributionConstraints:
        """Validate and persist overrides; raises ValueError on invalid values."""
        resolved = self.defaults.with_overrides(overrides)
        self.repository.set_overrides(user_id, overrides)
        return resolved
