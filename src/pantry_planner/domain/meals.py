"""Domain models for generated meals."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pantry_planner.domain.pantry import Ingredient, MatchResult


class GenerationMethod(str, Enum):
    """Strategy that produced a meal."""

    PERSONALIZED = "personalized"
    CULTURAL = "cultural"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Meal:
    """Candidate or accepted meal."""

    id: str
    name: str
    meal_type: str
    ingredients: list[Ingredient]
    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float
    prep_time: int
    cook_time: int
    servings: int
    difficulty: str
    provenance: GenerationMethod
    instructions: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    quality_score: float | None = None
    quality_warning: bool = False
    match: MatchResult | None = None
    created_at: datetime | None = None

    @property
    def ingredient_names(self) -> list[str]:
        """Return ingredient names in recipe order."""
        return [ingredient.name for ingredient in self.ingredients]

    def to_payload(self) -> dict[str, object]:
        """Return the flat record exchanged with the generation service."""
        return {
            "name": self.name,
            "ingredients": [
                {
                    "name": ingredient.name,
                    "amount": ingredient.amount,
                    "unit": ingredient.unit,
                    "category": ingredient.category,
                }
                for ingredient in self.ingredients
            ],
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
            "fiber": self.fiber,
            "prepTime": self.prep_time,
            "cookTime": self.cook_time,
            "servings": self.servings,
            "difficulty": self.difficulty,
            "instructions": list(self.instructions),
            "tags": list(self.tags),
        }
