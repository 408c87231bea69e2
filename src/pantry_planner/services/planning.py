"""User-facing meal planning: load state, generate, accept."""

import logging
from dataclasses import dataclass

from pantry_planner.domain.generation import DayPlan, GenerationOptions, GenerationResult
from pantry_planner.domain.history import DiversityRecommendations
from pantry_planner.domain.meals import Meal
from pantry_planner.domain.pantry import ConsumptionReport, DepletionForecast
from pantry_planner.services.consumption import PantryConsumptionService, PantryRepository
from pantry_planner.services.diversity import DiversityManager
from pantry_planner.services.orchestrator import MealOrchestrator
from pantry_planner.services.profiles import ProfileRepository

_logger = logging.getLogger(__name__)


@dataclass
class MealPlanningService:
    """Loads a user's pantry, profile and history around the orchestrator.

    Nothing is written until ``accept_meal``.
    """

    orchestrator: MealOrchestrator
    diversity: DiversityManager
    consumption: PantryConsumptionService
    pantry_repository: PantryRepository
    profile_repository: ProfileRepository

    async def generate_meal(
        self,
        user_id: str,
        meal_type: str,
        options: GenerationOptions | None = None,
        previous_meals: list[Meal] | None = None,
    ) -> GenerationResult:
        """Generate one meal for a user."""
        pantry = self.pantry_repository.list_items(user_id)
        profile = self.profile_repository.get_profile(user_id)
        history = self.diversity.load_history(user_id)
        return await self.orchestrator.generate(
            meal_type,
            pantry,
            profile,
            history,
            options,
            previous_meals or [],
            user_id,
        )

    async def generate_day_plan(
        self,
        user_id: str,
        options: GenerationOptions | None = None,
        concurrent: bool = True,
    ) -> DayPlan:
        """Generate all meal slots of a day for a user."""
        pantry = self.pantry_repository.list_items(user_id)
        profile = self.profile_repository.get_profile(user_id)
        history = self.diversity.load_history(user_id)
        return await self.orchestrator.generate_day_plan(
            pantry, profile, history, options, user_id, concurrent
        )

    def accept_meal(self, user_id: str, meal: Meal) -> ConsumptionReport:
        """Consume an accepted meal's ingredients and record it in history."""
        pantry = self.pantry_repository.list_items(user_id)
        report = self.consumption.consume_ingredients(meal, pantry, user_id)
        self.diversity.save_meal_to_history(user_id, meal)
        _logger.info(
            "Accepted meal %s for user %s (%d missing ingredients)",
            meal.id,
            user_id,
            len(report.missing_ingredients),
        )
        return report

    def depletion_forecast(self, user_id: str) -> list[DepletionForecast]:
        return self.consumption.forecast_for_user(user_id)

    def diversity_recommendations(self, user_id: str) -> DiversityRecommendations:
        return self.diversity.get_diversity_recommendations(
            self.diversity.load_history(user_id)
        )
