"""Fuzzy matching of recipe ingredients against pantry inventory."""

import re
from collections.abc import Sequence

from pantry_planner.domain.pantry import Ingredient, MatchResult, PantryItem

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "protein": [
        "chicken",
        "beef",
        "fish",
        "salmon",
        "tuna",
        "eggs",
        "tofu",
        "beans",
        "lentils",
        "turkey",
        "pork",
        "lamb",
        "cheese",
    ],
    "vegetable": [
        "tomato",
        "onion",
        "pepper",
        "broccoli",
        "spinach",
        "carrot",
        "potato",
        "zucchini",
        "mushroom",
        "lettuce",
        "cucumber",
        "corn",
        "eggplant",
    ],
    "grain": ["rice", "pasta", "bread", "quinoa", "oats", "barley", "flour", "noodles"],
    "spice": [
        "salt",
        "pepper",
        "garlic",
        "ginger",
        "cumin",
        "paprika",
        "oregano",
        "basil",
        "thyme",
        "rosemary",
    ],
    "dairy": ["milk", "cheese", "butter", "cream", "yogurt"],
    "fruit": ["apple", "banana", "orange", "berry", "lemon", "lime", "avocado"],
    "oil": ["olive oil", "vegetable oil", "coconut oil", "sesame oil"],
}

_CATEGORY_LABELS = {
    "protein": "protein",
    "meat": "protein",
    "vegetable": "vegetable",
    "veggie": "vegetable",
    "produce": "vegetable",
    "grain": "grain",
    "carb": "grain",
    "spice": "spice",
    "herb": "spice",
    "seasoning": "spice",
    "dairy": "dairy",
    "fruit": "fruit",
    "oil": "oil",
}

_NON_WORD = re.compile(r"[^a-z0-9% ]+")
_SPACES = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Lowercase a name and collapse punctuation and whitespace."""
    cleaned = _NON_WORD.sub(" ", name.lower())
    return _SPACES.sub(" ", cleaned).strip()


def category_bucket(category: str | None) -> str | None:
    """Map a free-form category label to a keyword bucket."""
    if not category:
        return None
    label = normalize_name(category)
    if label.endswith("s"):
        label = label[:-1]
    return _CATEGORY_LABELS.get(label)


def find_pantry_item(
    ingredient: Ingredient, pantry: Sequence[PantryItem]
) -> PantryItem | None:
    """Return the first pantry item matching an ingredient, if any.

    Exact normalized names win over substring containment, which wins over
    the category keyword heuristic.
    """
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
    bucket = category_bucket(ingredient.category)
    if bucket is None:
        return None
    keywords = [keyword for keyword in CATEGORY_KEYWORDS[bucket] if keyword in required]
    if not keywords:
        return None
    for item, name in normalized:
        if category_bucket(item.category) != bucket:
            continue
        if any(keyword in name for keyword in keywords):
            return item
    return None


def is_quantity_sufficient(ingredient: Ingredient, item: PantryItem) -> bool:
    """Return whether the pantry holds enough of an ingredient.

    Quantities are compared only when units match; otherwise the pantry is
    assumed to hold enough.
    """
    if normalize_name(ingredient.unit) != normalize_name(item.unit):
        return True
    return item.quantity >= ingredient.amount


def match_ingredients(
    required: Sequence[Ingredient], pantry: Sequence[PantryItem]
) -> MatchResult:
    """Match recipe ingredients against the pantry."""
    missing: list[str] = []
    available: list[str] = []
    for ingredient in required:
        if find_pantry_item(ingredient, pantry) is None:
            missing.append(ingredient.name)
        else:
            available.append(ingredient.name)

    total = len(required)
    match_count = len(available)
    percentage = match_count / total * 100 if total else 0.0
    return MatchResult(
        match_count=match_count,
        total_ingredients=total,
        match_percentage=percentage,
        missing=missing,
        available=available,
    )
