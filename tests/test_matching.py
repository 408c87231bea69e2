"""Tests for pantry ingredient matching."""

from pantry_planner.domain.pantry import Ingredient
from pantry_planner.services.matching import (
    category_bucket,
    find_pantry_item,
    is_quantity_sufficient,
    match_ingredients,
    normalize_name,
)
from tests.conftest import make_item


def test_match_reports_missing_ingredients() -> None:
    pantry = [make_item("chicken", 3), make_item("rice", 2), make_item("broccoli", 1)]
    required = [
        Ingredient(name="chicken"),
        Ingredient(name="rice"),
        Ingredient(name="broccoli"),
        Ingredient(name="oil"),
    ]

    result = match_ingredients(required, pantry)

    assert result.match_count == 3
    assert result.total_ingredients == 4
    assert result.match_percentage == 75
    assert result.missing == ["oil"]
    assert result.available == ["chicken", "rice", "broccoli"]


def test_match_with_no_ingredients_is_zero_percent() -> None:
    result = match_ingredients([], [make_item("rice")])

    assert result.match_count == 0
    assert result.total_ingredients == 0
    assert result.match_percentage == 0


def test_exact_name_wins_over_substring() -> None:
    pantry = [make_item("brown rice", item_id="brown"), make_item("Rice", item_id="plain")]

    item = find_pantry_item(Ingredient(name="rice"), pantry)

    assert item is not None
    assert item.id == "plain"


def test_substring_match_in_either_direction() -> None:
    pantry = [make_item("chicken")]

    assert find_pantry_item(Ingredient(name="Chicken Breast"), pantry) is not None
    assert find_pantry_item(Ingredient(name="chick"), pantry) is not None


def test_category_keyword_match_requires_same_bucket() -> None:
    pantry = [
        make_item("smoked salmon fillet", category="Protein"),
        make_item("salmon crackers", category="Snacks"),
    ]

    item = find_pantry_item(
        Ingredient(name="grilled salmon steak", category="Proteins"), pantry
    )

    assert item is not None
    assert item.name == "smoked salmon fillet"


def test_no_match_for_unrelated_ingredient() -> None:
    pantry = [make_item("apple", category="Fruits")]

    assert find_pantry_item(Ingredient(name="tofu", category="Protein"), pantry) is None
    assert find_pantry_item(Ingredient(name="  "), pantry) is None


def test_quantity_is_compared_only_for_matching_units() -> None:
    item = make_item("rice", 2, "cup")

    assert is_quantity_sufficient(Ingredient(name="rice", amount=1, unit="cup"), item)
    assert not is_quantity_sufficient(Ingredient(name="rice", amount=3, unit="cup"), item)
    assert is_quantity_sufficient(Ingredient(name="rice", amount=500, unit="g"), item)


def test_normalize_name_and_category_bucket() -> None:
    assert normalize_name("  Olive-Oil, Extra  Virgin ") == "olive oil extra virgin"
    assert category_bucket("Vegetables") == "vegetable"
    assert category_bucket("herbs") == "spice"
    assert category_bucket("Snacks") is None
    assert category_bucket(None) is None
