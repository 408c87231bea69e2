"""Meal generation through an external text-generation service."""

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol

from pydantic import ValidationError

from pantry_planner.domain.errors import ExternalServiceError
from pantry_planner.domain.generation import MealPayload
from pantry_planner.domain.meals import GenerationMethod, Meal
from pantry_planner.domain.pantry import Ingredient, PantryItem
from pantry_planner.domain.profiles import DetailedProfile
from pantry_planner.domain.quality import QualityAssessment
from pantry_planner.services.diversity import categorize, detect_cuisine
from pantry_planner.services.matching import find_pantry_item, match_ingredients
from pantry_planner.services.profiles import ProfileAnalyzer
from pantry_planner.services.quality import QualityValidator

_logger = logging.getLogger(__name__)

_INGREDIENT_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "amount": {"type": "number", "minimum": 0},
        "unit": {"type": "string"},
        "category": {"type": "string"},
    },
    "required": ["name", "amount", "unit", "category"],
    "additionalProperties": False,
}

MEAL_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "ingredients": {"type": "array", "items": _INGREDIENT_SCHEMA},
        "calories": {"type": "number"},
        "protein": {"type": "number"},
        "carbs": {"type": "number"},
        "fat": {"type": "number"},
        "fiber": {"type": "number"},
        "prepTime": {"type": "integer", "minimum": 0},
        "cookTime": {"type": "integer", "minimum": 0},
        "servings": {"type": "integer", "minimum": 1},
        "difficulty": {"type": "string", "enum": ["Easy", "Medium", "Hard"]},
        "instructions": {"type": "array", "items": {"type": "string"}},
        "tags": {"type": "array", "items": {"type": "string"}},
        "policy_violation": {"type": "boolean"},
    },
    "required": [
        "name",
        "ingredients",
        "calories",
        "protein",
        "carbs",
        "fat",
        "fiber",
        "prepTime",
        "cookTime",
        "servings",
        "difficulty",
        "instructions",
        "tags",
        "policy_violation",
    ],
    "additionalProperties": False,
}

_MEAL_TYPE_GUIDANCE = {
    "breakfast": "Make a satisfying breakfast, such as an omelet, a breakfast bowl or "
    "a creative egg dish, rather than plain toast.",
    "lunch": "Make a filling lunch, such as a grain bowl, a hearty salad with protein "
    "or a wrap.",
    "dinner": "Make a complete dinner main course, optionally with a simple side.",
    "snack": "Make a small, nutritious snack such as a dip, energy bites or a "
    "stuffed vegetable.",
}

_SKILL_GUIDANCE = {
    "beginner": "Keep techniques simple, with few steps and common equipment.",
    "intermediate": "Moderate techniques are fine; keep the step count reasonable.",
    "expert": "Advanced techniques are welcome.",
}


class MealGenerationClient(Protocol):
    """Interface for the structured text-generation service."""

    async def complete(self, prompt: str, schema: dict[str, object]) -> dict[str, object]:
        """Return a structured meal payload for the prompt."""


def build_meal_prompt(
    meal_type: str,
    pantry: Sequence[PantryItem],
    profile: DetailedProfile,
    previous_meals: Sequence[Meal],
    calorie_target: int,
) -> str:
    """Build a pantry-focused recipe prompt."""
    user = profile.profile
    skill = _SKILL_GUIDANCE.get(
        user.cooking_skill_level or "", _SKILL_GUIDANCE["intermediate"]
    )

    def names(bucket: str) -> str:
        return ", ".join(item.name for item in categorize(pantry, bucket)) or "None"

    inventory = ", ".join(
        f"{item.name} ({item.quantity:g} {item.unit or 'units'})" for item in pantry
    )
    recent = list(
        dict.fromkeys(
            ingredient.name.lower()
            for meal in previous_meals
            for ingredient in meal.ingredients
        )
    )[:8]

    lines = [
        f"Create one {meal_type} recipe that uses the user's pantry as much as possible.",
        "",
        "Requirements:",
    ]
    if user.allergens:
        lines.append(f"- Never include these allergens: {', '.join(user.allergens)}.")
    if user.dietary_restrictions:
        lines.append(f"- The meal must be {', '.join(user.dietary_restrictions)}.")
    guidance = _MEAL_TYPE_GUIDANCE.get(meal_type.lower())
    if guidance:
        lines.append(f"- {guidance}")
    lines.extend(
        [
            "- Use at least 80% pantry ingredients.",
            "- Give at least two instruction steps.",
            "- Set policy_violation to true if the request cannot be fulfilled safely.",
            "",
            "Pantry:",
            f"- Proteins: {names('protein')}",
            f"- Vegetables: {names('vegetable')}",
            f"- Grains: {names('grain')}",
            f"- Everything: {inventory or 'empty'}",
            "",
            f"Target calories: about {calorie_target}.",
            f"Cooking skill: {skill}",
            f"Suggested cuisine: {detect_cuisine(pantry)}.",
        ]
    )
    if user.cuisine_preferences:
        lines.append(f"Preferred cuisines: {', '.join(user.cuisine_preferences)}.")
    if recent:
        lines.append(f"Avoid repeating: {', '.join(recent)}.")
    lines.append("Tag the recipe with its cuisine and meal type.")
    return "\n".join(lines)


def _new_id(meal_type: str) -> str:
    return f"cultural_{meal_type}_{uuid.uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _default_semaphore() -> asyncio.Semaphore:
    return asyncio.Semaphore(2)


@dataclass
class CulturalMealService:
    """Asks the generation service for a meal and runs it through the quality gate.

    Up to ``max_attempts`` payloads are requested. The first one passing the
    gate is returned; otherwise the best-scoring one is returned flagged with
    ``quality_warning``.
    """

    client: MealGenerationClient
    validator: QualityValidator
    analyzer: ProfileAnalyzer
    timeout_seconds: float = 30
    max_attempts: int = 3
    semaphore: asyncio.Semaphore = field(default_factory=_default_semaphore)
    clock: Callable[[], datetime] = _utcnow

    async def generate(
        self,
        meal_type: str,
        pantry: Sequence[PantryItem],
        profile: DetailedProfile,
        previous_meals: Sequence[Meal] = (),
    ) -> Meal:
        """Return a quality-checked meal or raise ``ExternalServiceError``."""
        prompt = build_meal_prompt(
            meal_type,
            pantry,
            profile,
            previous_meals,
            self.analyzer.meal_calorie_target(meal_type, profile),
        )
        best: tuple[Meal, QualityAssessment] | None = None
        last_error: ExternalServiceError | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                payload = await self._request(prompt)
            except ExternalServiceError as exc:
                _logger.warning(
                    "Generation attempt %s/%s failed: %s", attempt, self.max_attempts, exc
                )
                last_error = exc
                continue

            meal = self._to_meal(payload, meal_type, pantry)
            assessment = self.validator.validate(meal, pantry, profile)
            _logger.info(
                "Quality gate for %s: pass=%s confidence=%.1f (attempt %s)",
                meal.name,
                assessment.overall_pass,
                assessment.average_confidence,
                attempt,
            )
            if assessment.overall_pass:
                return replace(meal, quality_score=assessment.average_confidence)
            if best is None or assessment.average_confidence > best[1].average_confidence:
                best = (meal, assessment)

        if best is None:
            raise ExternalServiceError(
                "Generation service produced no usable meal"
            ) from last_error
        meal, assessment = best
        _logger.warning("Using best unvalidated meal %s", meal.name)
        return replace(
            meal, quality_score=assessment.average_confidence, quality_warning=True
        )

    async def _request(self, prompt: str) -> MealPayload:
        async with self.semaphore:
            try:
                raw = await asyncio.wait_for(
                    self.client.complete(prompt, MEAL_SCHEMA), timeout=self.timeout_seconds
                )
            except TimeoutError as exc:
                raise ExternalServiceError(
                    f"Generation timed out after {self.timeout_seconds}s"
                ) from exc
            except ExternalServiceError:
                raise
            except Exception as exc:
                raise ExternalServiceError(f"Generation request failed: {exc}") from exc

        try:
            payload = MealPayload.model_validate(raw)
        except ValidationError as exc:
            raise ExternalServiceError("Generation service returned a malformed meal") from exc
        if payload.policy_violation:
            raise ExternalServiceError("Generation service flagged a policy violation")
        return payload

    def _to_meal(
        self, payload: MealPayload, meal_type: str, pantry: Sequence[PantryItem]
    ) -> Meal:
        ingredients = []
        for line in payload.ingredients:
            ingredient = Ingredient(
                name=line.name, amount=line.amount, unit=line.unit, category=line.category
            )
            in_pantry = find_pantry_item(ingredient, pantry) is not None
            ingredients.append(replace(ingredient, from_pantry=in_pantry))
        return Meal(
            id=_new_id(meal_type),
            name=payload.name,
            meal_type=meal_type,
            ingredients=ingredients,
            calories=payload.calories,
            protein=payload.protein,
            carbs=payload.carbs,
            fat=payload.fat,
            fiber=payload.fiber,
            prep_time=payload.prep_time,
            cook_time=payload.cook_time,
            servings=payload.servings,
            difficulty=payload.difficulty,
            provenance=GenerationMethod.CULTURAL,
            instructions=payload.instructions,
            tags=payload.tags,
            match=match_ingredients(ingredients, pantry),
            created_at=self.clock(),
        )
