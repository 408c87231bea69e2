"""Domain models for user profiles."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class UserProfile:
    """Raw profile captured during onboarding."""

    id: str
    age: int | None = None
    gender: str | None = None
    height_cm: float | None = None
    weight_kg: float | None = None
    activity_level: str | None = None
    health_goals: list[str] = field(default_factory=list)
    dietary_restrictions: list[str] = field(default_factory=list)
    dietary_preferences: list[str] = field(default_factory=list)
    allergens: list[str] = field(default_factory=list)
    cuisine_preferences: list[str] = field(default_factory=list)
    cooking_skill_level: str | None = None
    family_size: int | None = None


@dataclass(frozen=True)
class MacroTargets:
    """Daily macronutrient targets in grams."""

    protein: int
    carbs: int
    fat: int
    fiber: int


@dataclass(frozen=True)
class DetailedProfile:
    """Profile enriched with calorie targets and personality scores."""

    profile: UserProfile
    daily_calorie_target: int
    macro_targets: MacroTargets
    adventurousness: int
    convenience_preference: int
    health_consciousness: int
    social_eating: bool = False
