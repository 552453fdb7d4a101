"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from meal_windows.adapters.supabase_constraint_repository import (
    SupabaseConstraintRepository,
)
from meal_windows.adapters.supabase_history_repository import (
    SupabaseHistoryRepository,
)
from meal_windows.adapters.supabase_window_repository import SupabaseWindowRepository
from meal_windows.config import Settings, default_constraints
from meal_windows.services.constraints import ConstraintService
from meal_windows.services.engine import ProximityEngine
from meal_windows.services.history import RedistributionHistoryService
from meal_windows.services.redistribution import RedistributionService
from meal_windows.services.windows import WindowService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    window_service: WindowService
    constraint_service: ConstraintService
    history_service: RedistributionHistoryService
    redistribution_service: RedistributionService


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    window_service = WindowService(SupabaseWindowRepository(supabase_client))
    constraint_service = ConstraintService(
        repository=SupabaseConstraintRepository(supabase_client),
        defaults=default_constraints(resolved_settings),
    )
    history_service = RedistributionHistoryService(
        SupabaseHistoryRepository(supabase_client)
    )
    redistribution_service = RedistributionService(
        engine=ProximityEngine(),
        window_service=window_service,
        constraint_service=constraint_service,
        history_service=history_service,
        pending_policy=resolved_settings.pending_policy,
    )
    return AppContainer(
        settings=resolved_settings,
        window_service=window_service,
        constraint_service=constraint_service,
        history_service=history_service,
        redistribution_service=redistribution_service,
    )
