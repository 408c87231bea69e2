"""Five-stage quality gate for candidate meals."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from pantry_planner.domain.meals import Meal
from pantry_planner.domain.pantry import PantryItem
from pantry_planner.domain.profiles import DetailedProfile, UserProfile
from pantry_planner.domain.quality import QualityAssessment, StageResult

_logger = logging.getLogger(__name__)

_MEAT = ["chicken", "beef", "pork", "fish", "salmon", "tuna", "turkey", "lamb", "meat"]
RESTRICTION_KEYWORDS: dict[str, list[str]] = {
    "vegetarian": _MEAT,
    "vegan": [*_MEAT, "milk", "cheese", "yogurt", "butter", "cream", "egg", "honey", "dairy"],
    "gluten-free": ["wheat", "bread", "pasta", "flour", "barley", "rye"],
    "dairy-free": ["milk", "cheese", "butter", "cream", "yogurt"],
}
PLANT_LOOKALIKES = (
    "eggplant",
    "butternut",
    "coconut milk",
    "coconut cream",
    "almond milk",
    "oat milk",
    "soy milk",
    "peanut butter",
    "almond butter",
)

CONFLICTING_COMBINATIONS = [
    ("chocolate", "salmon"),
    ("ice cream", "curry"),
    ("sugar", "raw meat"),
    ("dessert", "fish"),
    ("sweet", "savory meat"),
]

STAGE_NAMES = {
    1: "Structure",
    2: "Pantry Availability",
    3: "Dietary Compliance",
    4: "Logical Consistency",
    5: "Nutrition Balance",
}


def restriction_key(restriction: str) -> str:
    """Normalize labels such as ``Gluten Free`` or ``gluten_free``."""
    return "-".join(restriction.lower().replace("_", " ").replace("-", " ").split())


def mentions_keyword(text: str, keyword: str) -> bool:
    """Substring match that ignores plant foods named after animal products."""
    lowered = text.lower()
    for lookalike in PLANT_LOOKALIKES:
        lowered = lowered.replace(lookalike, " ")
    return keyword in lowered


def restriction_hits(text: str, restriction: str) -> list[str]:
    keywords = RESTRICTION_KEYWORDS.get(restriction_key(restriction), [])
    return [keyword for keyword in keywords if mentions_keyword(text, keyword)]


def is_forbidden(
    name: str, restrictions: Iterable[str], allergens: Iterable[str] = ()
) -> bool:
    """Return True when an ingredient breaks a restriction or holds an allergen."""
    if any(restriction_hits(name, restriction) for restriction in restrictions):
        return True
    lowered = name.lower()
    needles = [allergen.lower().strip() for allergen in allergens]
    return any(needle and needle in lowered for needle in needles)


@dataclass
class QualityValidator:
    """Runs the structure, pantry, dietary, logic and nutrition stages.

    ``validate`` is pure: it never raises and returns the same assessment for
    the same inputs.
    """

    pass_confidence: float = 70
    max_failed_stages: int = 1
    max_calories: float = 2000
    weight_loss_max_calories: float = 600
    muscle_gain_min_protein: float = 25

    def validate(
        self,
        meal: Meal | Mapping[str, object],
        pantry: Sequence[PantryItem] | None = None,
        profile: DetailedProfile | UserProfile | None = None,
    ) -> QualityAssessment:
        """Return the combined assessment of all five stages."""
        try:
            record = _as_record(meal)
            user = profile.profile if isinstance(profile, DetailedProfile) else profile
            stages = [
                self._structure(record),
                self._pantry_availability(record, pantry),
                self._dietary_compliance(record, user),
                self._logical_consistency(record),
                self._nutrition_balance(record, user),
            ]
        except Exception as exc:
            _logger.exception("Quality validation crashed")
            stages = [
                StageResult(
                    stage=0,
                    name="Validation Error",
                    passed=False,
                    confidence=0,
                    issues=[f"Validation error: {exc}"],
                )
            ]

        average = sum(stage.confidence for stage in stages) / len(stages)
        failed = sum(1 for stage in stages if not stage.passed)
        return QualityAssessment(
            overall_pass=average >= self.pass_confidence
            and failed <= self.max_failed_stages,
            average_confidence=average,
            stages=stages,
        )

    def _structure(self, record: dict[str, object]) -> StageResult:
        issues = []
        confidence = 100
        if not str(record.get("name") or "").strip():
            issues.append("Meal name is missing")
            confidence -= 30
        ingredients = record.get("ingredients")
        if not isinstance(ingredients, list) or not ingredients:
            issues.append("Ingredients are missing or not a list")
            confidence -= 50
        calories = _number(record.get("calories"))
        if calories is None or calories <= 0:
            issues.append("Calories must be positive")
            confidence -= 20
        return self._stage(1, confidence, issues)

    def _pantry_availability(
        self, record: dict[str, object], pantry: Sequence[PantryItem] | None
    ) -> StageResult:
        if not pantry:
            return StageResult(
                stage=2,
                name=STAGE_NAMES[2],
                passed=True,
                confidence=50,
                issues=["No pantry snapshot supplied; availability not checked"],
            )
        names = _ingredient_names(record)
        if not names:
            return StageResult(
                stage=2,
                name=STAGE_NAMES[2],
                passed=False,
                confidence=0,
                issues=["Meal has no ingredients to check against the pantry"],
            )
        pantry_names = [item.name.lower() for item in pantry]
        missing = [
            name
            for name in names
            if not any(
                item in name.lower() or name.lower() in item for item in pantry_names
            )
        ]
        ratio = (len(names) - len(missing)) / len(names)
        issues = []
        passed = len(missing) * 2 <= len(names)
        if not passed:
            issues.append(f"Missing from pantry: {', '.join(missing)}")
        return StageResult(
            stage=2,
            name=STAGE_NAMES[2],
            passed=passed,
            confidence=round(ratio * 100),
            issues=issues,
        )

    def _dietary_compliance(
        self, record: dict[str, object], user: UserProfile | None
    ) -> StageResult:
        if user is None or not (user.dietary_restrictions or user.allergens):
            return StageResult(
                stage=3, name=STAGE_NAMES[3], passed=True, confidence=100
            )
        names = [name.lower() for name in _ingredient_names(record)]
        issues = []
        confidence = 100
        for restriction in user.dietary_restrictions:
            hits = sorted(
                {hit for name in names for hit in restriction_hits(name, restriction)}
            )
            if hits:
                issues.append(f"Violates {restriction} diet: {', '.join(hits)}")
                confidence -= 40
        for allergen in user.allergens:
            needle = allergen.lower().strip()
            if needle and any(needle in name for name in names):
                issues.append(f"Contains allergen: {allergen}")
                confidence -= 40
        return StageResult(
            stage=3,
            name=STAGE_NAMES[3],
            passed=not issues,
            confidence=max(0, confidence),
            issues=issues,
        )

    def _logical_consistency(self, record: dict[str, object]) -> StageResult:
        names = [name.lower() for name in _ingredient_names(record)]
        issues = []
        confidence = 100
        for first, second in CONFLICTING_COMBINATIONS:
            if any(first in name for name in names) and any(
                second in name for name in names
            ):
                issues.append(f"Conflicting ingredients: {first} with {second}")
                confidence -= 30
        instructions = record.get("instructions")
        if not isinstance(instructions, list) or len(instructions) < 2:  # noqa: PLR2004
            issues.append("Needs at least two instruction steps")
            confidence -= 20
        if len(names) < 2:  # noqa: PLR2004
            issues.append("Needs at least two ingredients")
            confidence -= 25
        return self._stage(4, confidence, issues)

    def _nutrition_balance(
        self, record: dict[str, object], user: UserProfile | None
    ) -> StageResult:
        issues = []
        confidence = 100
        calories = _number(record.get("calories"))
        protein = _number(record.get("protein"))
        if calories is None or calories <= 0:
            issues.append("Calories are missing or invalid")
            confidence -= 25
        if protein is None or protein <= 0:
            issues.append("Protein is missing or invalid")
            confidence -= 25
        if calories is not None and calories > self.max_calories:
            issues.append(f"Calories exceed {self.max_calories:g}")
            confidence -= 15
        goals = user.health_goals if user else []
        if (
            "weight_loss" in goals
            and calories is not None
            and calories > self.weight_loss_max_calories
        ):
            issues.append("Too many calories for a weight loss goal")
            confidence -= 15
        if "muscle_gain" in goals and (
            protein is None or protein < self.muscle_gain_min_protein
        ):
            issues.append("Too little protein for a muscle gain goal")
            confidence -= 15
        return self._stage(5, confidence, issues)

    def _stage(self, stage: int, confidence: float, issues: list[str]) -> StageResult:
        confidence = max(0, confidence)
        return StageResult(
            stage=stage,
            name=STAGE_NAMES[stage],
            passed=confidence >= self.pass_confidence,
            confidence=confidence,
            issues=issues,
        )


def _as_record(meal: Meal | Mapping[str, object]) -> dict[str, object]:
    if isinstance(meal, Meal):
        return meal.to_payload()
    return dict(meal)


def _ingredient_names(record: dict[str, object]) -> list[str]:
    ingredients = record.get("ingredients")
    if not isinstance(ingredients, list):
        return []
    names = []
    for ingredient in ingredients:
        if isinstance(ingredient, Mapping):
            name = ingredient.get("name")
        else:
            name = getattr(ingredient, "name", ingredient)
        if isinstance(name, str) and name.strip():
            names.append(name)
    return names


def _number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)
