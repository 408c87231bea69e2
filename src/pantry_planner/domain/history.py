"""Domain models for meal history and ingredient rotation."""

from dataclasses import dataclass, field
from datetime import datetime

from pantry_planner.domain.pantry import PantryItem


@dataclass(frozen=True)
class MealHistoryEntry:
    """Append-only record of a served meal."""

    user_id: str
    meal_name: str
    ingredients: list[str]
    meal_type: str
    created_at: datetime
    cuisine_type: str | None = None
    cooking_method: str | None = None


@dataclass
class IngredientUsage:
    """Usage statistics for one ingredient over the rotation window."""

    name: str
    last_used: datetime
    usage_count: int
    meal_types: list[str] = field(default_factory=list)
    cuisine_types: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class UsageIndex:
    """Ingredient usage rebuilt from history for a single request.

    ``entries`` are ordered newest first.
    """

    entries: list[MealHistoryEntry]
    usage: dict[str, IngredientUsage]

    def get(self, name: str) -> IngredientUsage | None:
        """Return usage stats for an ingredient name, if any."""
        return self.usage.get(name.lower())


@dataclass(frozen=True)
class PantryCombo:
    """Candidate ingredient subset for one meal."""

    ingredients: list[PantryItem]
    score: float
    cuisine_match: str
    cooking_method: str
    complexity: str
    nutrition_balance: int
    novelty_score: int


@dataclass(frozen=True)
class DiversityRecommendations:
    """Ingredients to rest and cuisines or methods worth trying."""

    avoid_ingredients: list[str]
    suggest_cuisines: list[str]
    suggest_cooking_methods: list[str]
    variety_tips: list[str]
