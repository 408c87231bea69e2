"""Dependency container wiring for the application."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from pantry_planner.adapters.openai_meal_client import OpenAIMealClient
from pantry_planner.adapters.supabase_consumption_repository import (
    SupabaseConsumptionRepository,
)
from pantry_planner.adapters.supabase_history_repository import (
    SupabaseHistoryRepository,
)
from pantry_planner.adapters.supabase_pantry_repository import SupabasePantryRepository
from pantry_planner.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from pantry_planner.config import Settings
from pantry_planner.services.consumption import PantryConsumptionService
from pantry_planner.services.diversity import DiversityManager
from pantry_planner.services.generation import CulturalMealService
from pantry_planner.services.orchestrator import MealOrchestrator
from pantry_planner.services.planning import MealPlanningService
from pantry_planner.services.profiles import ProfileAnalyzer
from pantry_planner.services.quality import QualityValidator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    orchestrator: MealOrchestrator
    planning_service: MealPlanningService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    pantry_repository = SupabasePantryRepository(supabase_client)
    profile_repository = SupabaseProfileRepository(supabase_client)
    history_repository = SupabaseHistoryRepository(supabase_client)
    consumption_repository = SupabaseConsumptionRepository(supabase_client)
    openai_client = OpenAIMealClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
        store=resolved_settings.openai_store,
        timeout_seconds=resolved_settings.generation_timeout_seconds,
    )

    analyzer = ProfileAnalyzer()
    diversity = DiversityManager(
        history_repository=history_repository,
        history_days=resolved_settings.history_days,
    )
    cultural = CulturalMealService(
        client=openai_client,
        validator=QualityValidator(),
        analyzer=analyzer,
        timeout_seconds=resolved_settings.generation_timeout_seconds,
        semaphore=asyncio.Semaphore(resolved_settings.generation_concurrency),
    )
    orchestrator = MealOrchestrator(
        analyzer=analyzer,
        diversity=diversity,
        cultural=cultural,
        default_options=resolved_settings.generation_options(),
    )
    consumption = PantryConsumptionService(
        pantry_repository=pantry_repository,
        consumption_repository=consumption_repository,
        window_days=resolved_settings.consumption_window_days,
    )
    planning_service = MealPlanningService(
        orchestrator=orchestrator,
        diversity=diversity,
        consumption=consumption,
        pantry_repository=pantry_repository,
        profile_repository=profile_repository,
    )

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        orchestrator=orchestrator,
        planning_service=planning_service,
        close_resources=close_resources,
    )
