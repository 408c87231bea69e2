"""Multi-strategy meal generation with best-candidate tracking and fallback."""

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from pantry_planner.domain.errors import ExhaustionError, ExternalServiceError
from pantry_planner.domain.generation import (
    Candidate,
    CulturalCandidate,
    DayPlan,
    FallbackCandidate,
    GenerationInsights,
    GenerationOptions,
    GenerationResult,
    PersonalizedCandidate,
)
from pantry_planner.domain.history import (
    DiversityRecommendations,
    PantryCombo,
    UsageIndex,
)
from pantry_planner.domain.meals import GenerationMethod, Meal
from pantry_planner.domain.pantry import Ingredient, PantryItem
from pantry_planner.domain.profiles import DetailedProfile, UserProfile
from pantry_planner.services.diversity import (
    DiversityManager,
    build_usage_index,
    meal_diversity_score,
)
from pantry_planner.services.generation import CulturalMealService
from pantry_planner.services.matching import match_ingredients
from pantry_planner.services.profiles import ProfileAnalyzer
from pantry_planner.services.quality import restriction_hits

_logger = logging.getLogger(__name__)

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")
CULTURAL_DIVERSITY_RELAXATION = 0.8
PREP_MINUTES = {"easy": 10, "medium": 20, "hard": 30}
COOK_MINUTES = {"easy": 10, "medium": 20, "hard": 35}
HIGH_SCORE = 7
LATE_BREAKFAST_HOUR = 9
WEEKEND_DAYS = frozenset({5, 6})


class GenerationState(str, Enum):
    """States of a single generation request."""

    ATTEMPT = "attempt"
    TRY_PERSONALIZED = "try_personalized"
    TRY_CULTURAL = "try_cultural"
    EVALUATE = "evaluate"
    ACCEPT = "accept"
    NEXT_ATTEMPT = "next_attempt"
    BEST_CANDIDATE = "best_candidate"
    FALLBACK = "fallback"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class FallbackTemplate:
    name: str
    preferred: tuple[str, ...]
    max_items: int
    calories: float
    protein: float
    carbs: float
    fat: float


FALLBACK_TEMPLATES = {
    "breakfast": FallbackTemplate(
        "Quick Pantry Breakfast", ("eggs", "bread", "milk", "banana"), 3, 320, 15, 35, 12
    ),
    "lunch": FallbackTemplate(
        "Simple Pantry Lunch", ("rice", "chicken", "vegetables", "oil"), 3, 450, 25, 50, 15
    ),
    "dinner": FallbackTemplate(
        "Easy Pantry Dinner", ("pasta", "tomato", "cheese", "herbs"), 4, 550, 20, 65, 18
    ),
    "snack": FallbackTemplate(
        "Healthy Pantry Snack", ("apple", "nuts", "yogurt"), 2, 180, 8, 20, 8
    ),
}


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def overall_score(candidate: Candidate, options: GenerationOptions) -> float:
    """Weighted score used to rank candidates across strategies."""
    diversity_weight = 0.4 if options.prioritize_diversity else 0.2
    personalization_weight = 0.4 if options.prioritize_personalization else 0.2
    method_bonus = 0.2 if candidate.method is GenerationMethod.PERSONALIZED else 0.1
    return (
        candidate.diversity_score * diversity_weight
        + candidate.personalization_score * personalization_weight
        + candidate.pantry_utilization * 0.2
        + method_bonus * 100
    )


def combo_personalization_score(
    combo: PantryCombo, profile: DetailedProfile, meal_type: str, now: datetime
) -> float:
    """Rank a combo for a user: combo score plus preference bonuses."""
    score = combo.score
    if combo.complexity == "easy" and profile.convenience_preference > HIGH_SCORE:
        score += 20
    elif combo.complexity == "hard" and profile.adventurousness > HIGH_SCORE:
        score += 15
    elif combo.complexity == "medium":
        score += 10

    preferred = {cuisine.lower() for cuisine in profile.profile.cuisine_preferences}
    if combo.cuisine_match.lower() in preferred:
        score += 25
    if profile.health_consciousness > HIGH_SCORE and combo.nutrition_balance > 80:  # noqa: PLR2004
        score += 20
    if (
        meal_type == "breakfast"
        and now.hour > LATE_BREAKFAST_HOUR
        and profile.convenience_preference > 6  # noqa: PLR2004
        and combo.complexity == "easy"
    ):
        score += 15
    if (
        now.weekday() in WEEKEND_DAYS
        and profile.adventurousness > 6  # noqa: PLR2004
        and combo.complexity != "easy"
    ):
        score += 10
    return score


def estimate_personalization(meal: Meal, profile: UserProfile | None) -> float:
    """Rough personalization score for meals the service generated."""
    if profile is None:
        return 50
    score = 60
    tags = [tag.lower() for tag in meal.tags]
    if any(
        pref.lower() in tag for pref in profile.cuisine_preferences for tag in tags
    ):
        score += 15
    if profile.dietary_restrictions:
        names = " ".join(name.lower() for name in meal.ingredient_names)
        violated = any(
            restriction_hits(names, restriction)
            for restriction in profile.dietary_restrictions
        )
        score += -20 if violated else 10
    if "weight_loss" in profile.health_goals and meal.calories < 400:  # noqa: PLR2004
        score += 10
    if "muscle_gain" in profile.health_goals and meal.protein >= 20:  # noqa: PLR2004
        score += 10
    return max(0, min(100, score))


def diversity_tips(recommendations: DiversityRecommendations) -> list[str]:
    tips = []
    if recommendations.suggest_cuisines:
        tips.append(f"Try {recommendations.suggest_cuisines[0]} cuisine next")
    if recommendations.suggest_cooking_methods:
        tips.append(
            f"Experiment with {recommendations.suggest_cooking_methods[0]} cooking"
        )
    if len(recommendations.avoid_ingredients) > 3:  # noqa: PLR2004
        tips.append("Consider taking a break from frequently used ingredients")
    return tips or ["Keep experimenting with new ingredient combinations!"]


def next_suggestions(meal: Meal, profile: UserProfile | None) -> list[str]:
    suggestions = []
    cuisine = next(
        (
            tag
            for tag in meal.tags
            if tag in {"Italian", "Asian", "Mexican", "Indian", "Mediterranean"}
        ),
        None,
    )
    if cuisine:
        suggestions.append(f"Explore more {cuisine} recipes this week")
    if len(meal.ingredients) < 4:  # noqa: PLR2004
        suggestions.append("Try adding more vegetables for nutrition variety")
    if profile is not None and "weight_loss" in profile.health_goals:
        suggestions.append("Consider lighter meals for the rest of the day")
    return suggestions or ["Keep up the great meal planning!"]


def _utilization(used: int, pantry: Sequence[PantryItem]) -> float:
    return round(used / max(len(pantry), 1) * 100)


@dataclass
class MealOrchestrator:
    """Runs the personalized and cultural strategies and picks a meal.

    Attempts run sequentially. A candidate meeting both thresholds is
    returned at once; otherwise the best-scoring candidate seen wins, then
    the fallback meal, then ``ExhaustionError``.
    """

    analyzer: ProfileAnalyzer
    diversity: DiversityManager
    cultural: CulturalMealService | None = None
    default_options: GenerationOptions = field(default_factory=GenerationOptions)
    clock: Callable[[], datetime] = _utcnow

    async def generate(  # noqa: PLR0913
        self,
        meal_type: str,
        pantry: Sequence[PantryItem],
        profile: UserProfile | None,
        history: UsageIndex,
        options: GenerationOptions | None = None,
        previous_meals: Sequence[Meal] = (),
        user_id: str = "",
    ) -> GenerationResult:
        """Return a scored meal for the slot, or raise ``ExhaustionError``."""
        opts = options or self.default_options
        detailed = self.analyzer.analyze(profile, user_id)
        usage = history
        if previous_meals:
            usage = build_usage_index(
                [*history.entries, *self.diversity.entries_for_meals(user_id, previous_meals)]
            )
        recommendations = self.diversity.get_diversity_recommendations(usage)

        best: Candidate | None = None
        best_score = 0.0
        for attempt in range(1, opts.max_attempts + 1):
            self._transition(GenerationState.ATTEMPT, meal_type, attempt)

            self._transition(GenerationState.TRY_PERSONALIZED, meal_type, attempt)
            try:
                personalized = self._personalized(
                    meal_type, pantry, detailed, usage, recommendations
                )
            except Exception:
                _logger.exception("Personalized strategy failed (attempt %s)", attempt)
                personalized = None

            if personalized is not None:
                self._transition(GenerationState.EVALUATE, meal_type, attempt)
                score = overall_score(personalized, opts)
                if score > best_score:
                    best, best_score = personalized, score
                if (
                    personalized.diversity_score >= opts.diversity_threshold
                    and personalized.personalization_score
                    >= opts.personalization_threshold
                ):
                    self._transition(GenerationState.ACCEPT, meal_type, attempt)
                    return personalized.to_result()

            if self.cultural is not None:
                self._transition(GenerationState.TRY_CULTURAL, meal_type, attempt)
                try:
                    cultural = await self._cultural(
                        self.cultural,
                        meal_type,
                        pantry,
                        detailed,
                        profile,
                        previous_meals,
                        recommendations,
                    )
                except ExternalServiceError as exc:
                    _logger.warning("Cultural strategy failed (attempt %s): %s", attempt, exc)
                    cultural = None
                except Exception:
                    _logger.exception("Cultural strategy crashed (attempt %s)", attempt)
                    cultural = None

                if cultural is not None:
                    self._transition(GenerationState.EVALUATE, meal_type, attempt)
                    score = overall_score(cultural, opts)
                    if score > best_score:
                        best, best_score = cultural, score
                    if (
                        cultural.diversity_score
                        >= opts.diversity_threshold * CULTURAL_DIVERSITY_RELAXATION
                    ):
                        self._transition(GenerationState.ACCEPT, meal_type, attempt)
                        return cultural.to_result()

            self._transition(GenerationState.NEXT_ATTEMPT, meal_type, attempt)

        if best is not None:
            self._transition(GenerationState.BEST_CANDIDATE, meal_type, opts.max_attempts)
            return best.to_result()
        if opts.allow_fallback:
            self._transition(GenerationState.FALLBACK, meal_type, opts.max_attempts)
            return self.fallback(meal_type, pantry).to_result()
        self._transition(GenerationState.EXHAUSTED, meal_type, opts.max_attempts)
        raise ExhaustionError(
            f"No {meal_type} meal after {opts.max_attempts} attempts and fallback disabled"
        )

    async def generate_day_plan(  # noqa: PLR0913
        self,
        pantry: Sequence[PantryItem],
        profile: UserProfile | None,
        history: UsageIndex,
        options: GenerationOptions | None = None,
        user_id: str = "",
        concurrent: bool = True,
    ) -> DayPlan:
        """Generate every meal slot of a day.

        Concurrent plans share one read-only snapshot; sequential plans pass
        the meals generated so far as ``previous_meals``.
        """
        results: dict[str, GenerationResult] = {}
        if concurrent:
            generated = await asyncio.gather(
                *(
                    self.generate(meal_type, pantry, profile, history, options, (), user_id)
                    for meal_type in MEAL_TYPES
                )
            )
            results = dict(zip(MEAL_TYPES, generated, strict=True))
        else:
            previous: list[Meal] = []
            for meal_type in MEAL_TYPES:
                result = await self.generate(
                    meal_type, pantry, profile, history, options, previous, user_id
                )
                results[meal_type] = result
                previous.append(result.meal)

        values = list(results.values())
        return DayPlan(
            results=results,
            average_diversity_score=round(
                sum(r.diversity_score for r in values) / len(values)
            ),
            average_personalization_score=round(
                sum(r.personalization_score for r in values) / len(values)
            ),
            average_pantry_utilization=round(
                sum(r.pantry_utilization for r in values) / len(values)
            ),
            methods=[r.method for r in values],
        )

    def fallback(self, meal_type: str, pantry: Sequence[PantryItem]) -> FallbackCandidate:
        """Build the deterministic fallback meal from whatever the pantry has."""
        template = FALLBACK_TEMPLATES.get(meal_type, FALLBACK_TEMPLATES["lunch"])
        selected = _select_available(pantry, template.preferred, template.max_items)
        ingredients = [
            Ingredient(
                name=item.name,
                amount=1,
                unit=item.unit,
                category=item.category or "General",
                from_pantry=True,
            )
            for item in selected
        ]
        meal = Meal(
            id=f"fallback_{meal_type}_{uuid.uuid4().hex[:12]}",
            name=template.name,
            meal_type=meal_type,
            ingredients=ingredients,
            calories=template.calories,
            protein=template.protein,
            carbs=template.carbs,
            fat=template.fat,
            fiber=5,
            prep_time=10,
            cook_time=15,
            servings=1,
            difficulty="Easy",
            provenance=GenerationMethod.FALLBACK,
            instructions=[
                "Gather available ingredients from your pantry",
                "Combine ingredients using basic cooking methods",
                "Season to taste and serve",
            ],
            tags=["fallback", "simple", "pantry-based"],
            match=match_ingredients(ingredients, pantry),
            created_at=self.clock(),
        )
        return FallbackCandidate(
            meal=meal,
            pantry_utilization=_utilization(len(selected), pantry),
            insights=GenerationInsights(
                reasoning="Generated fallback meal due to insufficient pantry variety "
                "or generation issues",
                adaptations=[
                    "Used available pantry ingredients",
                    "Kept complexity simple",
                ],
                diversity_tips=[
                    "Add more variety to your pantry",
                    "Try shopping for ingredients from different cuisines",
                    "Stock up on versatile ingredients like herbs and spices",
                ],
                next_suggestions=[
                    "Consider adding more proteins to your pantry",
                    "Stock fresh vegetables for better meal variety",
                    "Try exploring new cuisines this week",
                ],
            ),
        )

    def _personalized(
        self,
        meal_type: str,
        pantry: Sequence[PantryItem],
        profile: DetailedProfile,
        usage: UsageIndex,
        recommendations: DiversityRecommendations,
    ) -> PersonalizedCandidate | None:
        combos = self.diversity.generate_combinations(pantry, meal_type, profile, usage, 5)
        if not combos:
            _logger.info("No pantry combinations for %s", meal_type)
            return None

        now = self.clock()
        ranked = [
            (combo_personalization_score(combo, profile, meal_type, now), combo)
            for combo in combos
        ]
        ranked_score, combo = max(ranked, key=lambda pair: pair[0])
        meal = self._combo_to_meal(combo, meal_type, profile, pantry)
        return PersonalizedCandidate(
            meal=meal,
            diversity_score=meal_diversity_score(meal, recommendations),
            personalization_score=min(95, 60 + ranked_score / 10),
            pantry_utilization=_utilization(len(combo.ingredients), pantry),
            insights=GenerationInsights(
                reasoning=(
                    f"Selected based on your {profile.profile.cooking_skill_level} "
                    f"skill level, {profile.adventurousness}/10 adventurousness, "
                    f"and preference for {combo.cuisine_match} cuisine."
                ),
                adaptations=_adaptations(profile),
                diversity_tips=diversity_tips(recommendations),
                next_suggestions=next_suggestions(meal, profile.profile),
            ),
        )

    async def _cultural(  # noqa: PLR0913
        self,
        service: CulturalMealService,
        meal_type: str,
        pantry: Sequence[PantryItem],
        profile: DetailedProfile,
        raw_profile: UserProfile | None,
        previous_meals: Sequence[Meal],
        recommendations: DiversityRecommendations,
    ) -> CulturalCandidate:
        meal = await service.generate(meal_type, pantry, profile, previous_meals)
        return CulturalCandidate(
            meal=meal,
            diversity_score=meal_diversity_score(meal, recommendations),
            personalization_score=estimate_personalization(meal, raw_profile),
            pantry_utilization=round(meal.match.match_percentage) if meal.match else 0,
            insights=GenerationInsights(
                reasoning="Cultural generation based on cuisine preferences and "
                "pantry optimization",
                adaptations=[
                    "Applied cultural cooking patterns",
                    "Optimized for pantry ingredients",
                ],
                diversity_tips=diversity_tips(recommendations),
                next_suggestions=next_suggestions(meal, raw_profile),
            ),
        )

    def _combo_to_meal(
        self,
        combo: PantryCombo,
        meal_type: str,
        profile: DetailedProfile,
        pantry: Sequence[PantryItem],
    ) -> Meal:
        calories = self.analyzer.meal_calorie_target(meal_type, profile)
        ingredients = [
            Ingredient(
                name=item.name,
                amount=1,
                unit=item.unit,
                category=item.category or "General",
                from_pantry=True,
            )
            for item in combo.ingredients
        ]
        return Meal(
            id=f"personalized_{meal_type}_{uuid.uuid4().hex[:12]}",
            name=_meal_name(combo, meal_type, profile),
            meal_type=meal_type,
            ingredients=ingredients,
            calories=calories,
            protein=round(calories * 0.25 / 4),
            carbs=round(calories * 0.45 / 4),
            fat=round(calories * 0.30 / 9),
            fiber=round(calories * 0.05),
            prep_time=PREP_MINUTES[combo.complexity],
            cook_time=COOK_MINUTES[combo.complexity],
            servings=2 if profile.social_eating else 1,
            difficulty=combo.complexity.capitalize(),
            provenance=GenerationMethod.PERSONALIZED,
            instructions=_instructions(combo, profile),
            tags=[combo.cuisine_match, meal_type, combo.complexity, "personalized"],
            match=match_ingredients(ingredients, pantry),
            created_at=self.clock(),
        )

    def _transition(self, state: GenerationState, meal_type: str, attempt: int) -> None:
        _logger.info("Generation %s: state=%s attempt=%s", meal_type, state.value, attempt)


def _select_available(
    pantry: Sequence[PantryItem], preferred: Sequence[str], max_items: int
) -> list[PantryItem]:
    selected: list[PantryItem] = []
    for name in preferred:
        found = next((item for item in pantry if name in item.name.lower()), None)
        if found and found not in selected and len(selected) < max_items:
            selected.append(found)
    for item in pantry:
        if len(selected) >= max_items:
            break
        if all(item.id != chosen.id for chosen in selected):
            selected.append(item)
    return selected


def _meal_name(combo: PantryCombo, meal_type: str, profile: DetailedProfile) -> str:
    main = combo.ingredients[0].name if combo.ingredients else "Mixed"
    if profile.profile.cooking_skill_level == "beginner":
        return f"Simple {main} {meal_type}"
    if profile.adventurousness > HIGH_SCORE:
        return f"{combo.cuisine_match} {combo.cooking_method} {main} Fusion"
    return f"{combo.cooking_method.capitalize()} {main} {combo.cuisine_match} Style"


def _instructions(combo: PantryCombo, profile: DetailedProfile) -> list[str]:
    names = ", ".join(item.name for item in combo.ingredients)
    method = combo.cooking_method
    skill = profile.profile.cooking_skill_level
    if skill == "beginner":
        return [
            f"Prepare {names}",
            f"Cook the ingredients ({method}) according to package directions",
            "Season to taste and serve hot",
        ]
    if skill == "expert":
        return [
            f"Mise en place: prep {names}",
            f"Use a {method} technique for optimal flavor development",
            "Adjust seasoning and plate for a restaurant-quality presentation",
        ]
    return [
        f"Gather and prep {names}",
        f"Cook the ingredients ({method}) until properly done",
        "Season well and serve immediately",
    ]


def _adaptations(profile: DetailedProfile) -> list[str]:
    adaptations = []
    if profile.profile.cooking_skill_level == "beginner":
        adaptations.append("Simplified cooking method for easy preparation")
    elif profile.adventurousness > HIGH_SCORE:
        adaptations.append("Added fusion elements to challenge your culinary skills")
    if "weight_loss" in profile.profile.health_goals:
        adaptations.append("Reduced calorie density while maintaining protein")
    if "muscle_gain" in profile.profile.health_goals:
        adaptations.append("Increased protein content for muscle building")
    if profile.convenience_preference > HIGH_SCORE:
        adaptations.append("Optimized for quick preparation and minimal cleanup")
    return adaptations
