"""Pantry decrements after a meal is accepted, and depletion forecasts."""

import logging
import math
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from pantry_planner.domain.errors import DataIntegrityError, ExternalServiceError
from pantry_planner.domain.meals import Meal
from pantry_planner.domain.pantry import (
    ConsumptionRecord,
    ConsumptionReport,
    DepletionForecast,
    Ingredient,
    PantryItem,
)
from pantry_planner.services.matching import normalize_name

_logger = logging.getLogger(__name__)

INGREDIENT_ALIASES: dict[str, list[str]] = {
    "chicken": [
        "chicken breast",
        "chicken thigh",
        "chicken meat",
        "poultry",
        "rotisserie chicken",
        "grilled chicken",
    ],
    "beef": ["ground beef", "beef mince", "minced beef", "hamburger meat", "ground chuck"],
    "fish": ["salmon", "tuna", "cod", "tilapia", "trout", "halibut", "sea bass"],
    "eggs": ["egg", "whole eggs", "large eggs", "fresh eggs"],
    "tofu": ["firm tofu", "silken tofu", "extra firm tofu", "soft tofu"],
    "milk": ["whole milk", "skim milk", "2% milk", "low fat milk", "dairy milk"],
    "cheese": ["cheddar", "mozzarella", "parmesan", "swiss cheese", "cheese slices"],
    "yogurt": ["greek yogurt", "plain yogurt", "vanilla yogurt", "low fat yogurt"],
    "butter": ["unsalted butter", "salted butter", "stick butter"],
    "bread": ["white bread", "whole wheat bread", "sourdough", "toast", "sandwich bread"],
    "rice": ["white rice", "brown rice", "jasmine rice", "basmati rice", "long grain rice"],
    "pasta": ["spaghetti", "penne", "macaroni", "linguine", "fettuccine", "rigatoni"],
    "oats": ["rolled oats", "old fashioned oats", "quick oats", "steel cut oats"],
    "tomato": ["tomatoes", "cherry tomatoes", "grape tomatoes", "roma tomatoes"],
    "lettuce": ["romaine", "iceberg lettuce", "butter lettuce", "mixed greens"],
    "onion": ["yellow onion", "white onion", "red onion", "sweet onion"],
    "pepper": ["bell pepper", "red pepper", "green pepper", "yellow pepper"],
    "carrot": ["carrots", "baby carrots", "mini carrots"],
    "apple": ["red apple", "green apple", "granny smith", "gala apple", "fuji apple"],
    "berries": ["strawberries", "blueberries", "raspberries", "blackberries"],
    "citrus": ["lemon", "lime", "orange", "grapefruit", "tangerine"],
    "oil": ["olive oil", "vegetable oil", "canola oil", "cooking oil"],
    "vinegar": ["balsamic vinegar", "apple cider vinegar", "white vinegar", "rice vinegar"],
    "sauce": ["tomato sauce", "marinara sauce", "pasta sauce", "pizza sauce"],
    "herbs": ["fresh herbs", "dried herbs", "italian herbs", "herb seasoning"],
    "spices": ["seasoning", "spice blend", "mixed spices", "seasoning mix"],
}

UNIT_CONVERSIONS: dict[str, dict[str, float]] = {
    "cup": {"ml": 240, "l": 0.24},
    "tbsp": {"ml": 15},
    "tsp": {"ml": 5},
    "piece": {"pcs": 1, "unit": 1},
    "unit": {"piece": 1, "pcs": 1},
    "g": {"kg": 0.001},
    "kg": {"g": 1000},
}

_UNIT_NAMES = {
    "cups": "cup",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "pieces": "piece",
    "units": "unit",
    "gram": "g",
    "grams": "g",
    "kilogram": "kg",
    "kilograms": "kg",
    "milliliter": "ml",
    "milliliters": "ml",
    "liter": "l",
    "liters": "l",
}

URGENT_DAYS = 3
SOON_DAYS = 7


class PantryRepository(Protocol):
    """Persistence interface for pantry inventory."""

    def list_items(self, user_id: str) -> list[PantryItem]:
        """Return the user's pantry items."""

    def get_item(self, item_id: str) -> PantryItem | None:
        """Return the current state of one item, or None when it is gone."""

    def decrement(self, item_id: str, amount: float) -> PantryItem:
        """Atomically lower an item's quantity, floored at zero."""

    def stamp_usage(self, item_id: str, used_at: datetime) -> None:
        """Record that an item was just used."""


class ConsumptionRepository(Protocol):
    """Persistence interface for the consumption audit trail."""

    def append(self, record: ConsumptionRecord) -> None:
        """Append a consumption record."""

    def list_records(self, user_id: str, since: datetime) -> list[ConsumptionRecord]:
        """Return records consumed at or after ``since``."""


def normalize_unit(unit: str | None) -> str:
    cleaned = (unit or "").strip().lower().rstrip(".")
    return _UNIT_NAMES.get(cleaned, cleaned)


def find_best_pantry_match(
    ingredient: Ingredient, pantry: Sequence[PantryItem]
) -> PantryItem | None:
    """Resolve an ingredient to a pantry item: exact, substring, then alias."""
    required = normalize_name(ingredient.name)
    if not required:
        return None
    normalized = [(item, normalize_name(item.name)) for item in pantry]
    for item, name in normalized:
        if name == required:
            return item
    for item, name in normalized:
        if name and (name in required or required in name):
            return item
    aliases = [normalize_name(alias) for alias in INGREDIENT_ALIASES.get(required, [])]
    for item, name in normalized:
        if any(alias == name or alias in name for alias in aliases):
            return item
    return None


def calculate_consumption(ingredient: Ingredient, item: PantryItem) -> float:
    """Return how much of a pantry item an ingredient line uses up.

    Never more than what is available. Units without a known conversion
    consume a single unit.
    """
    required = ingredient.amount or 1
    available = max(0.0, item.quantity)
    required_unit = normalize_unit(ingredient.unit)
    pantry_unit = normalize_unit(item.unit)
    if required_unit == pantry_unit:
        return min(required, available)
    factor = UNIT_CONVERSIONS.get(required_unit, {}).get(pantry_unit)
    if factor is not None:
        return min(required * factor, available)
    return min(1.0, available)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class PantryConsumptionService:
    """Applies accepted meals to the pantry and forecasts depletion."""

    pantry_repository: PantryRepository
    consumption_repository: ConsumptionRepository
    window_days: int = 30
    clock: Callable[[], datetime] = _utcnow
    _locks: dict[str, threading.Lock] = field(default_factory=dict, init=False, repr=False)
    _locks_guard: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def consume_ingredients(
        self, meal: Meal, pantry: Sequence[PantryItem], user_id: str
    ) -> ConsumptionReport:
        """Decrement the pantry for every matched ingredient of a meal.

        Unmatched or vanished ingredients are skipped and reported, never fatal.
        Records hold what the repository actually removed, not what the
        snapshot suggested.
        """
        snapshot = list(pantry)
        records: list[ConsumptionRecord] = []
        missing: list[str] = []
        for ingredient in meal.ingredients:
            try:
                item = self._resolve(ingredient, snapshot)
                record = self._consume(ingredient, item, meal.id, user_id)
            except (DataIntegrityError, ExternalServiceError) as exc:
                _logger.warning("Skipping ingredient for meal %s: %s", meal.id, exc)
                missing.append(ingredient.name)
                continue
            if record is not None:
                records.append(record)

        _logger.info(
            "Consumed %d ingredients for meal %s, %d missing",
            len(records),
            meal.id,
            len(missing),
        )
        return ConsumptionReport(records=records, missing_ingredients=missing)

    def consumption_history(
        self, user_id: str, days: int | None = None
    ) -> list[ConsumptionRecord]:
        """Return the user's consumption records within the window."""
        window = self.window_days if days is None else days
        since = self.clock() - timedelta(days=window)
        return self.consumption_repository.list_records(user_id, since)

    def predict_depletion(
        self, pantry: Sequence[PantryItem], history: Sequence[ConsumptionRecord]
    ) -> list[DepletionForecast]:
        """Forecast days left per item, most urgent first."""
        now = self.clock()
        forecasts = [self._forecast(item, history, now) for item in pantry]
        return sorted(
            forecasts,
            key=lambda forecast: (
                forecast.estimated_days_left is None,
                forecast.estimated_days_left or 0,
            ),
        )

    def forecast_for_user(self, user_id: str) -> list[DepletionForecast]:
        """Load pantry and history for a user and forecast depletion."""
        pantry = self.pantry_repository.list_items(user_id)
        return self.predict_depletion(pantry, self.consumption_history(user_id))

    def _resolve(self, ingredient: Ingredient, pantry: Sequence[PantryItem]) -> PantryItem:
        item = find_best_pantry_match(ingredient, pantry)
        if item is None:
            raise DataIntegrityError(f"No pantry match for {ingredient.name!r}")
        return item

    def _consume(
        self, ingredient: Ingredient, item: PantryItem, meal_id: str, user_id: str
    ) -> ConsumptionRecord | None:
        with self._lock_for(item.id):
            current = self.pantry_repository.get_item(item.id)
            if current is None:
                raise DataIntegrityError(f"Pantry item {item.id} not found")
            amount = calculate_consumption(ingredient, current)
            if amount <= 0:
                _logger.info("Pantry item %s is empty, nothing consumed", item.id)
                return None
            updated = self.pantry_repository.decrement(item.id, amount)
        removed = min(amount, max(0.0, current.quantity - updated.quantity))
        if removed <= 0:
            return None
        used_at = self.clock()
        self.pantry_repository.stamp_usage(item.id, used_at)
        record = ConsumptionRecord(
            pantry_item_id=item.id,
            recipe_id=meal_id,
            consumed_quantity=removed,
            unit=current.unit,
            consumed_at=used_at,
            user_id=user_id,
        )
        self.consumption_repository.append(record)
        return record

    def _lock_for(self, item_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(item_id, threading.Lock())

    def _forecast(
        self, item: PantryItem, history: Sequence[ConsumptionRecord], now: datetime
    ) -> DepletionForecast:
        records = [record for record in history if record.pantry_item_id == item.id]
        total = sum(record.consumed_quantity for record in records)
        if not records or total <= 0:
            return DepletionForecast(
                item=item,
                daily_rate=0.0,
                estimated_days_left=None,
                urgency="monitor",
                recommended_action="Monitor usage",
            )

        earliest = min(record.consumed_at for record in records)
        tracked_days = max(1, min(self.window_days, (now - earliest).days))
        daily_rate = total / tracked_days
        days_left = math.floor(max(0.0, item.quantity) / daily_rate)
        if days_left <= URGENT_DAYS:
            urgency, action = "urgent", "Add to shopping list urgently"
        elif days_left <= SOON_DAYS:
            urgency, action = "soon", "Add to shopping list soon"
        else:
            urgency, action = "monitor", "Continue monitoring"
        return DepletionForecast(
            item=item,
            daily_rate=daily_rate,
            estimated_days_left=days_left,
            urgency=urgency,
            recommended_action=action,
        )
