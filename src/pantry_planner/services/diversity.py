"""Ingredient rotation and novelty-scored pantry combinations."""

import logging
import random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from pantry_planner.domain.history import (
    DiversityRecommendations,
    IngredientUsage,
    MealHistoryEntry,
    PantryCombo,
    UsageIndex,
)
from pantry_planner.domain.meals import Meal
from pantry_planner.domain.pantry import PantryItem
from pantry_planner.domain.profiles import DetailedProfile
from pantry_planner.services.matching import CATEGORY_KEYWORDS
from pantry_planner.services.quality import is_forbidden

_logger = logging.getLogger(__name__)

CUISINE_CATALOG = ["Italian", "Asian", "Mexican", "Indian", "Mediterranean", "American"]
COOKING_METHODS = ["stir-fry", "roasted", "grilled", "sautéed", "braised", "steamed"]
COMBO_COOKING_METHODS = COOKING_METHODS[:5]
VARIETY_TIPS = [
    "Try a new protein source this week",
    "Experiment with a different cooking method",
    "Add colorful vegetables for nutrition variety",
    "Use herbs and spices from different cuisines",
]
COMPLEXITY_BONUS = {"easy": 15, "medium": 20, "hard": 10}
NUTRITION_POINTS = {"protein": 40, "vegetable": 35, "grain": 25}
RECENT_NOVELTY_ENTRIES = 5
RECENT_METHOD_ENTRIES = 3
OVERUSED_COUNT = 2
EASY_MAX_INGREDIENTS = 4
MEDIUM_MAX_INGREDIENTS = 7


class HistoryRepository(Protocol):
    """Persistence interface for meal history."""

    def append(self, entry: MealHistoryEntry) -> None:
        """Append a history entry."""

    def query(self, user_id: str, since: datetime) -> list[MealHistoryEntry]:
        """Return entries created at or after ``since``."""


@dataclass(frozen=True)
class DiversityCheck:
    """Quick diversity verdict for an existing meal."""

    diversity_score: int
    issues: list[str]
    suggestions: list[str]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class DiversityManager:
    """Tracks ingredient usage and proposes rotated ingredient combinations."""

    history_repository: HistoryRepository
    history_days: int = 7
    max_same_ingredient_days: int = 2
    max_recent_uses: int = 2
    min_ingredient_variety: int = 3
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], datetime] = _utcnow

    def load_history(self, user_id: str, days: int | None = None) -> UsageIndex:
        """Build the usage index from the user's recent history."""
        window = self.history_days if days is None else days
        since = self.clock() - timedelta(days=window)
        try:
            entries = self.history_repository.query(user_id, since)
        except Exception:
            _logger.exception("Failed to load meal history for user %s", user_id)
            entries = []
        return build_usage_index(entries)

    def entries_for_meals(
        self, user_id: str, meals: Iterable[Meal]
    ) -> list[MealHistoryEntry]:
        """Describe unsaved meals as history entries stamped now."""
        now = self.clock()
        return [history_entry_for_meal(user_id, meal, now) for meal in meals]

    def get_filtered_pantry_items(
        self, pantry: Sequence[PantryItem], meal_type: str, usage: UsageIndex
    ) -> list[PantryItem]:
        """Drop items used too often for this meal type within the rotation window."""
        now = self.clock()
        window = timedelta(days=self.max_same_ingredient_days)
        kept = []
        for item in pantry:
            stats = usage.get(item.name)
            if (
                stats is not None
                and now - stats.last_used < window
                and meal_type in stats.meal_types
                and stats.usage_count >= self.max_recent_uses
            ):
                continue
            kept.append(item)
        return kept

    def generate_combinations(
        self,
        pantry: Sequence[PantryItem],
        meal_type: str,
        profile: DetailedProfile | None,
        usage: UsageIndex,
        target_count: int = 5,
    ) -> list[PantryCombo]:
        """Return the best-ranked ingredient combinations for a meal slot."""
        items = self.get_filtered_pantry_items(pantry, meal_type, usage)
        if profile is not None:
            items = _compatible_items(items, profile)
        buckets = {
            bucket: self._rotate(categorize(items, bucket), usage)
            for bucket in CATEGORY_KEYWORDS
        }

        combos: list[PantryCombo] = []
        seen: set[frozenset[str]] = set()
        for index in range(target_count * 2):
            combo = self._build_combo(buckets, index, meal_type, usage)
            if combo is None:
                continue
            key = frozenset(item.id for item in combo.ingredients)
            if key in seen:
                continue
            seen.add(key)
            combos.append(combo)

        combos.sort(key=lambda combo: combo.score, reverse=True)
        return combos[:target_count]

    def save_meal_to_history(self, user_id: str, meal: Meal) -> MealHistoryEntry:
        """Append an accepted meal to the user's history."""
        entry = history_entry_for_meal(user_id, meal, self.clock())
        self.history_repository.append(entry)
        _logger.info("Saved meal %s to history for user %s", meal.name, user_id)
        return entry

    def get_diversity_recommendations(
        self, usage: UsageIndex
    ) -> DiversityRecommendations:
        """Return ingredients to rest and cuisines or methods not tried lately."""
        recent = usage.entries[:RECENT_NOVELTY_ENTRIES]
        recent_cuisines = {entry.cuisine_type for entry in recent if entry.cuisine_type}
        recent_methods = {
            entry.cooking_method for entry in recent if entry.cooking_method
        }
        return DiversityRecommendations(
            avoid_ingredients=[
                name
                for name, stats in usage.usage.items()
                if stats.usage_count > OVERUSED_COUNT
            ],
            suggest_cuisines=[c for c in CUISINE_CATALOG if c not in recent_cuisines],
            suggest_cooking_methods=[
                m for m in COOKING_METHODS if m not in recent_methods
            ],
            variety_tips=list(VARIETY_TIPS),
        )

    def _rotate(
        self, items: list[PantryItem], usage: UsageIndex
    ) -> list[PantryItem]:
        """Order items so unused, rarely used and long-unused come first."""
        now = self.clock()

        def key(item: PantryItem) -> tuple[int, float]:
            stats = usage.get(item.name)
            if stats is None:
                return (0, float("-inf"))
            idle_days = (now - stats.last_used).total_seconds() / 86400
            return (stats.usage_count, -idle_days)

        return sorted(items, key=key)

    def _build_combo(
        self,
        buckets: dict[str, list[PantryItem]],
        index: int,
        meal_type: str,
        usage: UsageIndex,
    ) -> PantryCombo | None:
        selected: list[PantryItem] = []

        def add(candidates: list[PantryItem]) -> None:
            for item in candidates:
                if all(item.id != chosen.id for chosen in selected):
                    selected.append(item)

        add(_pick(buckets["protein"], index, 1))
        add(_pick(buckets["vegetable"], index, 2))
        add(_pick(buckets["grain"], index, 1))
        if buckets["dairy"] and self.rng.random() > 0.5:  # noqa: PLR2004
            add(_pick(buckets["dairy"], index, 1))
        if meal_type in {"breakfast", "snack"}:
            add(_pick(buckets["fruit"], index, 1))
        else:
            add(_pick(buckets["oil"], index, 1))
        add(_pick(buckets["spice"], index, 2))

        if len(selected) < self.min_ingredient_variety:
            return None

        complexity = determine_complexity(selected)
        nutrition = nutrition_balance(selected)
        novelty = novelty_score(selected, usage)
        return PantryCombo(
            ingredients=selected,
            score=combo_score(nutrition, novelty, len(selected), complexity),
            cuisine_match=detect_cuisine(selected),
            cooking_method=self._suggest_cooking_method(selected, meal_type, usage),
            complexity=complexity,
            nutrition_balance=nutrition,
            novelty_score=novelty,
        )

    def _suggest_cooking_method(
        self, items: list[PantryItem], meal_type: str, usage: UsageIndex
    ) -> str:
        if meal_type == "breakfast":
            return "pan-fried" if categorize(items, "protein") else "mixed"
        recent = {
            entry.cooking_method
            for entry in usage.entries[:RECENT_METHOD_ENTRIES]
            if entry.cooking_method
        }
        options = [m for m in COMBO_COOKING_METHODS if m not in recent]
        return self.rng.choice(options or COMBO_COOKING_METHODS)


def build_usage_index(entries: Iterable[MealHistoryEntry]) -> UsageIndex:
    """Aggregate history entries into per-ingredient usage stats."""
    ordered = sorted(entries, key=lambda entry: entry.created_at, reverse=True)
    usage: dict[str, IngredientUsage] = {}
    for entry in ordered:
        for ingredient in entry.ingredients:
            key = ingredient.lower()
            stats = usage.get(key)
            if stats is None:
                stats = IngredientUsage(
                    name=ingredient, last_used=entry.created_at, usage_count=0
                )
                usage[key] = stats
            stats.usage_count += 1
            stats.last_used = max(stats.last_used, entry.created_at)
            if entry.meal_type not in stats.meal_types:
                stats.meal_types.append(entry.meal_type)
            if entry.cuisine_type and entry.cuisine_type not in stats.cuisine_types:
                stats.cuisine_types.append(entry.cuisine_type)
    return UsageIndex(entries=ordered, usage=usage)


def history_entry_for_meal(
    user_id: str, meal: Meal, created_at: datetime
) -> MealHistoryEntry:
    """Describe a meal as a history entry."""
    return MealHistoryEntry(
        user_id=user_id,
        meal_name=meal.name,
        ingredients=meal.ingredient_names,
        meal_type=meal.meal_type or "unknown",
        created_at=created_at,
        cuisine_type=cuisine_from_tags(meal.tags),
        cooking_method=extract_cooking_method(meal.instructions),
    )


def categorize(items: Iterable[PantryItem], bucket: str) -> list[PantryItem]:
    """Return items whose name or category carries a keyword of the bucket."""
    keywords = CATEGORY_KEYWORDS.get(bucket, [])
    matched = []
    for item in items:
        name = item.name.lower()
        category = (item.category or "").lower()
        if any(keyword in name or keyword in category for keyword in keywords):
            matched.append(item)
    return matched


def detect_cuisine(items: Iterable[PantryItem]) -> str:
    """Guess a cuisine from ingredient names."""
    names = " ".join(item.name.lower() for item in items)
    if "soy sauce" in names or "ginger" in names or "sesame" in names:
        return "Asian"
    if ("tomato" in names and "basil" in names) or "pasta" in names:
        return "Italian"
    if "cumin" in names or "paprika" in names or "chili" in names:
        return "Mexican"
    if "curry" in names or "turmeric" in names or "cardamom" in names:
        return "Indian"
    if "olive" in names or "feta" in names or "oregano" in names:
        return "Mediterranean"
    return "International"


def determine_complexity(items: Sequence[PantryItem]) -> str:
    if len(items) <= EASY_MAX_INGREDIENTS:
        return "easy"
    if len(items) <= MEDIUM_MAX_INGREDIENTS:
        return "medium"
    return "hard"


def nutrition_balance(items: Sequence[PantryItem]) -> int:
    """Score macro coverage: protein 40, vegetables 35, grains 25."""
    score = sum(
        points for bucket, points in NUTRITION_POINTS.items() if categorize(items, bucket)
    )
    return min(100, score)


def novelty_score(items: Sequence[PantryItem], usage: UsageIndex) -> int:
    """Percentage of ingredients absent from the most recent meals."""
    if not items:
        return 0
    recent = {
        ingredient.lower()
        for entry in usage.entries[:RECENT_NOVELTY_ENTRIES]
        for ingredient in entry.ingredients
    }
    unique = sum(1 for item in items if item.name.lower() not in recent)
    return round(unique / len(items) * 100)


def combo_score(
    nutrition: float, novelty: float, ingredient_count: int, complexity: str
) -> float:
    return (
        nutrition * 0.4
        + novelty * 0.3
        + ingredient_count * 5 * 0.2
        + COMPLEXITY_BONUS[complexity] * 0.1
    )


def cuisine_from_tags(tags: Iterable[str]) -> str | None:
    """Return the first catalog cuisine named in the tags."""
    catalog = {cuisine.lower(): cuisine for cuisine in CUISINE_CATALOG}
    for tag in tags:
        cuisine = catalog.get(tag.lower())
        if cuisine:
            return cuisine
    return None


def extract_cooking_method(instructions: Iterable[str]) -> str:
    """Infer the cooking method from instruction text."""
    text = " ".join(instructions).lower()
    if "stir fry" in text or "stir-fry" in text:
        return "stir-fry"
    if "roast" in text or "bake" in text:
        return "roasted"
    if "grill" in text:
        return "grilled"
    if "sauté" in text or "saute" in text or "pan fry" in text:
        return "sautéed"
    if "braise" in text or "simmer" in text:
        return "braised"
    if "steam" in text:
        return "steamed"
    return "mixed"


def meal_diversity_score(meal: Meal, recommendations: DiversityRecommendations) -> int:
    """Score a meal against what the user has eaten a lot of lately."""
    avoid = set(recommendations.avoid_ingredients)
    overused = [name for name in meal.ingredient_names if name.lower() in avoid]
    score = 100 - len(overused) * 20
    if any(tag in recommendations.suggest_cuisines for tag in meal.tags):
        score += 10
    if len(meal.ingredients) >= EASY_MAX_INGREDIENTS:
        score += 5
    return max(0, min(100, score))


def check_meal_diversity(meal: Meal, usage: UsageIndex) -> DiversityCheck:
    """Quick verdict on whether a meal repeats overused ingredients."""
    avoid = {
        name for name, stats in usage.usage.items() if stats.usage_count > OVERUSED_COUNT
    }
    overused = [name for name in meal.ingredient_names if name.lower() in avoid]
    if overused:
        return DiversityCheck(
            diversity_score=max(0, 100 - len(overused) * 25),
            issues=[f"Recently overused ingredients: {', '.join(overused)}"],
            suggestions=[
                "Try different protein sources",
                "Explore new vegetables",
                "Change cooking method",
            ],
        )
    return DiversityCheck(
        diversity_score=100,
        issues=[],
        suggestions=["Great variety! Keep exploring new combinations"],
    )


def _pick(items: list[PantryItem], offset: int, count: int) -> list[PantryItem]:
    if not items:
        return []
    return [items[(offset + step) % len(items)] for step in range(min(count, len(items)))]


def _compatible_items(
    items: list[PantryItem], profile: DetailedProfile
) -> list[PantryItem]:
    user = profile.profile
    if not (user.dietary_restrictions or user.allergens):
        return items
    return [
        item
        for item in items
        if not is_forbidden(item.name, user.dietary_restrictions, user.allergens)
    ]
