"""Tests for pantry consumption and depletion forecasts."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import timedelta

import pytest

from pantry_planner.domain.errors import ExternalServiceError
from pantry_planner.domain.pantry import ConsumptionRecord, Ingredient, PantryItem
from pantry_planner.services.consumption import (
    PantryConsumptionService,
    calculate_consumption,
    find_best_pantry_match,
    normalize_unit,
)
from tests.conftest import (
    FIXED_NOW,
    InMemoryConsumptionRepository,
    InMemoryPantryRepository,
    fixed_clock,
    make_item,
    make_meal,
)


def _service(
    pantry_repository: InMemoryPantryRepository,
    consumption_repository: InMemoryConsumptionRepository | None = None,
) -> PantryConsumptionService:
    return PantryConsumptionService(
        pantry_repository=pantry_repository,
        consumption_repository=consumption_repository or InMemoryConsumptionRepository(),
        clock=fixed_clock,
    )


def _record(item_id: str, quantity: float, days_ago: int) -> ConsumptionRecord:
    return ConsumptionRecord(
        pantry_item_id=item_id,
        recipe_id="meal-1",
        consumed_quantity=quantity,
        unit="unit",
        consumed_at=FIXED_NOW - timedelta(days=days_ago),
        user_id="user-1",
    )


def test_consume_ingredients_decrements_and_reports_missing() -> None:
    pantry_repository = InMemoryPantryRepository.with_items(
        make_item("chicken breast", 3, "unit"),
        make_item("rice", 2, "cup"),
        make_item("olive oil", 500, "ml"),
    )
    consumption_repository = InMemoryConsumptionRepository()
    meal = make_meal(
        Ingredient(name="chicken", amount=1, unit="unit"),
        Ingredient(name="rice", amount=1, unit="cup"),
        Ingredient(name="olive oil", amount=1, unit="tbsp"),
        Ingredient(name="saffron", amount=1, unit="pinch"),
    )

    report = _service(pantry_repository, consumption_repository).consume_ingredients(
        meal, pantry_repository.list_items("user-1"), "user-1"
    )

    assert report.missing_ingredients == ["saffron"]
    assert [record.pantry_item_id for record in report.records] == [
        "chicken-breast",
        "rice",
        "olive-oil",
    ]
    assert pantry_repository.items["chicken-breast"].quantity == 2
    assert pantry_repository.items["rice"].quantity == 1
    assert pantry_repository.items["olive-oil"].quantity == 485
    assert consumption_repository.records == report.records
    assert report.records[2].unit == "ml"
    assert report.records[2].consumed_quantity == 15
    assert [stamp[0] for stamp in pantry_repository.stamps] == [
        "chicken-breast",
        "rice",
        "olive-oil",
    ]


def test_quantities_never_increase_or_go_negative() -> None:
    pantry_repository = InMemoryPantryRepository.with_items(make_item("rice", 2, "cup"))
    service = _service(pantry_repository)
    meal = make_meal(Ingredient(name="rice", amount=1.5, unit="cup"))

    seen = [pantry_repository.items["rice"].quantity]
    for _ in range(3):
        service.consume_ingredients(meal, pantry_repository.list_items("user-1"), "user-1")
        seen.append(pantry_repository.items["rice"].quantity)

    assert seen == [2, 0.5, 0, 0]
    assert seen == sorted(seen, reverse=True)


def test_empty_item_records_nothing() -> None:
    pantry_repository = InMemoryPantryRepository.with_items(make_item("rice", 0, "cup"))
    consumption_repository = InMemoryConsumptionRepository()

    report = _service(pantry_repository, consumption_repository).consume_ingredients(
        make_meal("rice"), pantry_repository.list_items("user-1"), "user-1"
    )

    assert report.records == []
    assert report.missing_ingredients == []
    assert consumption_repository.records == []


def test_vanished_item_is_reported_missing_and_rest_consumed() -> None:
    rice = make_item("rice", 2, "cup")
    chicken = make_item("chicken", 3, "unit")
    pantry_repository = InMemoryPantryRepository.with_items(chicken)
    consumption_repository = InMemoryConsumptionRepository()

    report = _service(pantry_repository, consumption_repository).consume_ingredients(
        make_meal("rice", "chicken"), [rice, chicken], "user-1"
    )

    assert report.missing_ingredients == ["rice"]
    assert [record.pantry_item_id for record in report.records] == ["chicken"]
    assert pantry_repository.items["chicken"].quantity == 2
    assert consumption_repository.records == report.records


@dataclass
class ContendedPantryRepository(InMemoryPantryRepository):
    """Pantry whose decrements for one item always lose the race."""

    contended_id: str = ""

    def decrement(self, item_id: str, amount: float) -> PantryItem:
        if item_id == self.contended_id:
            raise ExternalServiceError(f"Pantry item {item_id} kept changing")
        return super().decrement(item_id, amount)


def test_abandoned_decrement_skips_only_that_ingredient() -> None:
    pantry_repository = ContendedPantryRepository(contended_id="rice")
    for item in (make_item("rice", 2, "cup"), make_item("carrot", 4)):
        pantry_repository.items[item.id] = item

    report = _service(pantry_repository).consume_ingredients(
        make_meal("rice", "carrot"), pantry_repository.list_items("user-1"), "user-1"
    )

    assert report.missing_ingredients == ["rice"]
    assert [record.pantry_item_id for record in report.records] == ["carrot"]
    assert pantry_repository.items["rice"].quantity == 2
    assert pantry_repository.stamps == [("carrot", FIXED_NOW)]


def test_records_hold_what_was_actually_removed() -> None:
    pantry_repository = InMemoryPantryRepository.with_items(make_item("milk", 1))
    consumption_repository = InMemoryConsumptionRepository()
    service = _service(pantry_repository, consumption_repository)
    stale_snapshot = pantry_repository.list_items("user-1")
    meal = make_meal(Ingredient(name="milk", amount=1, unit="unit"))

    first = service.consume_ingredients(meal, stale_snapshot, "user-1")
    second = service.consume_ingredients(meal, stale_snapshot, "user-1")

    assert pantry_repository.items["milk"].quantity == 0
    assert [record.consumed_quantity for record in first.records] == [1]
    assert second.records == []
    assert second.missing_ingredients == []
    assert sum(r.consumed_quantity for r in consumption_repository.records) == 1


def test_concurrent_consumption_on_same_item() -> None:
    pantry_repository = InMemoryPantryRepository.with_items(make_item("eggs", 20, "unit"))
    service = _service(pantry_repository)
    meal = make_meal(Ingredient(name="eggs", amount=1, unit="unit"))

    def consume(_: int) -> None:
        service.consume_ingredients(meal, pantry_repository.list_items("user-1"), "user-1")

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(consume, range(10)))

    assert pantry_repository.items["eggs"].quantity == 10


def test_best_match_tiers() -> None:
    pantry = [
        make_item("spaghetti", item_id="spaghetti"),
        make_item("brown rice", item_id="brown-rice"),
        make_item("rice", item_id="rice"),
    ]

    def matched_id(name: str) -> str | None:
        item = find_best_pantry_match(Ingredient(name=name), pantry)
        return item.id if item else None

    assert matched_id("Rice") == "rice"
    assert matched_id("brown") == "brown-rice"
    assert matched_id("pasta") == "spaghetti"
    assert find_best_pantry_match(Ingredient(name="quinoa"), pantry) is None


def test_calculate_consumption_converts_units() -> None:
    assert calculate_consumption(
        Ingredient(name="milk", amount=1, unit="cup"), make_item("milk", 1, "l")
    ) == pytest.approx(0.24)
    assert calculate_consumption(
        Ingredient(name="flour", amount=500, unit="g"), make_item("flour", 2, "kg")
    ) == pytest.approx(0.5)
    assert calculate_consumption(
        Ingredient(name="stock", amount=2, unit="Cups"), make_item("stock", 1000, "ml")
    ) == 480
    assert calculate_consumption(
        Ingredient(name="eggs", amount=2, unit="piece"), make_item("eggs", 6, "unit")
    ) == 2


def test_calculate_consumption_clamps_and_defaults() -> None:
    assert calculate_consumption(
        Ingredient(name="rice", amount=5, unit="cup"), make_item("rice", 2, "cup")
    ) == 2
    assert calculate_consumption(
        Ingredient(name="salt", amount=1, unit="pinch"), make_item("salt", 100, "g")
    ) == 1
    assert calculate_consumption(
        Ingredient(name="salt", amount=1, unit="pinch"), make_item("salt", 0, "g")
    ) == 0


def test_normalize_unit() -> None:
    assert normalize_unit("Tablespoons") == "tbsp"
    assert normalize_unit("tsp.") == "tsp"
    assert normalize_unit(None) == ""


def test_predict_depletion_orders_by_urgency() -> None:
    pantry = [
        make_item("carrot", 10),
        make_item("salt", 5),
        make_item("rice", 1),
    ]
    history = [
        _record("rice", 2, 8),
        _record("rice", 2, 1),
        _record("carrot", 1, 2),
        _record("carrot", 1, 1),
    ]

    forecasts = _service(InMemoryPantryRepository()).predict_depletion(pantry, history)

    assert [forecast.item.name for forecast in forecasts] == ["rice", "carrot", "salt"]
    rice, carrot, salt = forecasts
    assert rice.daily_rate == 0.5
    assert rice.estimated_days_left == 2
    assert rice.urgency == "urgent"
    assert rice.recommended_action == "Add to shopping list urgently"
    assert carrot.estimated_days_left == 10
    assert carrot.urgency == "monitor"
    assert salt.estimated_days_left is None
    assert salt.recommended_action == "Monitor usage"


def test_forecast_for_user_reads_recent_history() -> None:
    pantry_repository = InMemoryPantryRepository.with_items(make_item("oats", 6))
    consumption_repository = InMemoryConsumptionRepository(
        records=[_record("oats", 1, 1), _record("oats", 50, 45)]
    )

    forecasts = _service(pantry_repository, consumption_repository).forecast_for_user(
        "user-1"
    )

    assert len(forecasts) == 1
    assert forecasts[0].daily_rate == 1
    assert forecasts[0].estimated_days_left == 6
    assert forecasts[0].urgency == "soon"
