"""Tests for profile analysis."""

from pantry_planner.domain.profiles import UserProfile
from pantry_planner.services.profiles import (
    ProfileAnalyzer,
    adventurousness_score,
    convenience_score,
    health_consciousness_score,
)


def _profile(**overrides: object) -> UserProfile:
    values: dict[str, object] = {
        "id": "user-1",
        "age": 30,
        "gender": "male",
        "height_cm": 180,
        "weight_kg": 80,
        "activity_level": "moderately_active",
    }
    values.update(overrides)
    return UserProfile(**values)  # type: ignore[arg-type]


def test_calorie_target_uses_bmr_activity_and_goal() -> None:
    analyzer = ProfileAnalyzer()

    assert analyzer.daily_calorie_target(_profile()) == 2759
    assert analyzer.daily_calorie_target(_profile(health_goals=["weight_loss"])) == 2345


def test_calorie_target_defaults_when_measurements_missing() -> None:
    analyzer = ProfileAnalyzer()

    assert analyzer.daily_calorie_target(_profile(age=None)) == 2000


def test_female_bmr_offset() -> None:
    analyzer = ProfileAnalyzer()

    target = analyzer.daily_calorie_target(
        _profile(gender="female", activity_level="sedentary")
    )

    # (800 + 1125 - 150 - 161) * 1.2
    assert target == 1937


def test_macro_targets_follow_goal() -> None:
    analyzer = ProfileAnalyzer()

    default = analyzer.macro_targets(2000, [])
    muscle = analyzer.macro_targets(2000, ["muscle_gain"])
    digestive = analyzer.macro_targets(2000, ["digestive_health"])

    assert (default.protein, default.carbs, default.fat, default.fiber) == (125, 225, 67, 25)
    assert (muscle.protein, muscle.carbs, muscle.fat) == (150, 200, 67)
    assert digestive.fiber == 35


def test_meal_calorie_target_splits_daily_budget() -> None:
    analyzer = ProfileAnalyzer()
    detailed = analyzer.default_profile("user-1")

    assert analyzer.meal_calorie_target("lunch", detailed) == 700
    assert analyzer.meal_calorie_target("snack", detailed) == 100
    assert analyzer.meal_calorie_target("brunch", detailed) == 500


def test_missing_profile_uses_defaults() -> None:
    detailed = ProfileAnalyzer().analyze(None, "user-9")

    assert detailed.profile.id == "user-9"
    assert detailed.daily_calorie_target == 2000
    assert detailed.adventurousness == 5
    assert detailed.convenience_preference == 5
    assert detailed.health_consciousness == 5
    assert detailed.social_eating is False


def test_personality_scores() -> None:
    explorer = _profile(
        cuisine_preferences=["a", "b", "c", "d", "e", "f"],
        cooking_skill_level="expert",
        activity_level="very_active",
        family_size=4,
    )
    cautious = _profile(cooking_skill_level="beginner")
    careful = _profile(
        health_goals=["heart_health", "weight_loss", "energy", "sleep"],
        dietary_restrictions=["vegan"],
        allergens=["peanuts"],
    )

    assert adventurousness_score(explorer) == 9
    assert adventurousness_score(cautious) == 4
    assert convenience_score(explorer) == 7
    assert health_consciousness_score(careful) == 10
    assert health_consciousness_score(cautious) == 5


def test_analyze_marks_social_eating_for_families() -> None:
    detailed = ProfileAnalyzer().analyze(_profile(family_size=3))

    assert detailed.social_eating is True
    assert detailed.daily_calorie_target == 2759
