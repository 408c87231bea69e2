"""Profile analysis: calorie targets, macros and personality scores."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from pantry_planner.domain.profiles import DetailedProfile, MacroTargets, UserProfile

_logger = logging.getLogger(__name__)

DEFAULT_CALORIE_TARGET = 2000
NEUTRAL_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10
HEALTH_FOCUSED_GOALS = frozenset({"heart_health", "blood_sugar_control", "digestive_health"})
HIGH_ACTIVITY_LEVELS = frozenset({"very_active", "extra_active"})
LARGE_FAMILY_SIZE = 3


class ProfileRepository(Protocol):
    """Persistence interface for user profiles."""

    def get_profile(self, user_id: str) -> UserProfile | None:
        """Return the stored profile for a user, if present."""


def _default_activity_multipliers() -> dict[str, float]:
    return {
        "sedentary": 1.2,
        "lightly_active": 1.375,
        "moderately_active": 1.55,
        "very_active": 1.725,
        "extra_active": 1.9,
    }


def _default_meal_distribution() -> dict[str, float]:
    return {"breakfast": 0.25, "lunch": 0.35, "dinner": 0.35, "snack": 0.05}


def _default_goal_macros() -> dict[str, tuple[float, float, float]]:
    return {
        "muscle_gain": (0.30, 0.40, 0.30),
        "weight_loss": (0.30, 0.35, 0.35),
        "heart_health": (0.20, 0.50, 0.30),
    }


@dataclass
class ProfileAnalyzer:
    """Derives nutrition targets and behaviour scores from a raw profile.

    The numbers are heuristics; every one of them can be overridden per
    instance.
    """

    activity_multipliers: dict[str, float] = field(
        default_factory=_default_activity_multipliers
    )
    default_activity_multiplier: float = 1.55
    weight_loss_factor: float = 0.85
    muscle_gain_factor: float = 1.15
    meal_distribution: dict[str, float] = field(
        default_factory=_default_meal_distribution
    )
    default_macro_ratios: tuple[float, float, float] = (0.25, 0.45, 0.30)
    goal_macro_ratios: dict[str, tuple[float, float, float]] = field(
        default_factory=_default_goal_macros
    )
    base_fiber_g: int = 25
    digestive_fiber_g: int = 35

    def analyze(self, profile: UserProfile | None, user_id: str = "") -> DetailedProfile:
        """Return the detailed profile, or the default one when absent."""
        if profile is None:
            _logger.info("No profile for user %s, using defaults", user_id or "n/a")
            return self.default_profile(user_id)
        calories = self.daily_calorie_target(profile)
        return DetailedProfile(
            profile=profile,
            daily_calorie_target=calories,
            macro_targets=self.macro_targets(calories, profile.health_goals),
            adventurousness=adventurousness_score(profile),
            convenience_preference=convenience_score(profile),
            health_consciousness=health_consciousness_score(profile),
            social_eating=(profile.family_size or 1) > 1,
        )

    def default_profile(self, user_id: str = "") -> DetailedProfile:
        """Return the profile used when a user has none."""
        profile = UserProfile(
            id=user_id,
            activity_level="moderately_active",
            health_goals=["balanced_nutrition"],
            cooking_skill_level="beginner",
            cuisine_preferences=["international"],
            dietary_preferences=["balanced"],
        )
        return DetailedProfile(
            profile=profile,
            daily_calorie_target=DEFAULT_CALORIE_TARGET,
            macro_targets=self.macro_targets(DEFAULT_CALORIE_TARGET, []),
            adventurousness=NEUTRAL_SCORE,
            convenience_preference=NEUTRAL_SCORE,
            health_consciousness=NEUTRAL_SCORE,
            social_eating=False,
        )

    def daily_calorie_target(self, profile: UserProfile) -> int:
        """Mifflin-St Jeor BMR scaled by activity and goal."""
        if not (
            profile.age and profile.height_cm and profile.weight_kg and profile.gender
        ):
            return DEFAULT_CALORIE_TARGET

        bmr = 10 * profile.weight_kg + 6.25 * profile.height_cm - 5 * profile.age
        bmr += 5 if profile.gender.lower() == "male" else -161

        multiplier = self.activity_multipliers.get(
            profile.activity_level or "", self.default_activity_multiplier
        )
        total = bmr * multiplier
        if "weight_loss" in profile.health_goals:
            total *= self.weight_loss_factor
        elif "muscle_gain" in profile.health_goals:
            total *= self.muscle_gain_factor
        return round(total)

    def macro_targets(self, calories: int, health_goals: list[str]) -> MacroTargets:
        """Return macro grams for a calorie budget."""
        protein_ratio, carb_ratio, fat_ratio = self.default_macro_ratios
        for goal in ("muscle_gain", "weight_loss", "heart_health"):
            if goal in health_goals and goal in self.goal_macro_ratios:
                protein_ratio, carb_ratio, fat_ratio = self.goal_macro_ratios[goal]
                break
        fiber = (
            self.digestive_fiber_g
            if "digestive_health" in health_goals
            else self.base_fiber_g
        )
        return MacroTargets(
            protein=round(calories * protein_ratio / 4),
            carbs=round(calories * carb_ratio / 4),
            fat=round(calories * fat_ratio / 9),
            fiber=fiber,
        )

    def meal_calorie_target(self, meal_type: str, profile: DetailedProfile) -> int:
        """Share of the daily calorie target for a meal slot."""
        share = self.meal_distribution.get(meal_type, self.meal_distribution["breakfast"])
        return round(profile.daily_calorie_target * share)


def adventurousness_score(profile: UserProfile) -> int:
    """How keen the user is to try new dishes."""
    score = NEUTRAL_SCORE
    cuisine_count = len(profile.cuisine_preferences)
    if cuisine_count > 5:  # noqa: PLR2004
        score += 2
    elif cuisine_count > 3:  # noqa: PLR2004
        score += 1

    skill = profile.cooking_skill_level
    if skill == "expert":
        score += 2
    elif skill == "intermediate":
        score += 1
    elif skill == "beginner":
        score -= 1
    return _clamp(score)


def convenience_score(profile: UserProfile) -> int:
    """How strongly the user prefers quick, simple meals."""
    score = NEUTRAL_SCORE
    if profile.activity_level in HIGH_ACTIVITY_LEVELS:
        score += 2
    if (profile.family_size or 0) > LARGE_FAMILY_SIZE:
        score += 1
    if profile.cooking_skill_level == "expert":
        score -= 1
    return _clamp(score)


def health_consciousness_score(profile: UserProfile) -> int:
    """How much weight the user puts on nutrition."""
    score = NEUTRAL_SCORE
    goal_count = len(profile.health_goals)
    if goal_count > 3:  # noqa: PLR2004
        score += 2
    elif goal_count > 1:
        score += 1
    if profile.dietary_restrictions:
        score += 1
    if profile.allergens:
        score += 1
    if any(goal in HEALTH_FOCUSED_GOALS for goal in profile.health_goals):
        score += 2
    return _clamp(score)


def _clamp(score: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, score))
