"""Models for meal generation requests, payloads and results."""

from dataclasses import dataclass, field
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from pantry_planner.domain.meals import GenerationMethod, Meal


class PayloadIngredient(BaseModel):
    """Ingredient line as returned by the generation service."""

    model_config = ConfigDict(extra="ignore")

    name: str
    amount: float = Field(default=1.0, ge=0.0)
    unit: str = "unit"
    category: str = "General"


class MealPayload(BaseModel):
    """Flat meal record exchanged with the generation service."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    ingredients: list[PayloadIngredient] = Field(default_factory=list)
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    prep_time: int = Field(default=15, alias="prepTime", ge=0)
    cook_time: int = Field(default=15, alias="cookTime", ge=0)
    servings: int = Field(default=1, ge=1)
    difficulty: str = "Easy"
    instructions: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    policy_violation: bool = False


@dataclass(frozen=True)
class GenerationOptions:
    """Tunables for a single generation request."""

    diversity_threshold: float = 70
    personalization_threshold: float = 60
    max_attempts: int = 3
    allow_fallback: bool = True
    prioritize_diversity: bool = True
    prioritize_personalization: bool = True


@dataclass(frozen=True)
class GenerationInsights:
    """Human-readable explanation attached to a generated meal."""

    reasoning: str
    adaptations: list[str] = field(default_factory=list)
    diversity_tips: list[str] = field(default_factory=list)
    next_suggestions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class GenerationResult:
    """Meal returned to the caller with its scores and provenance."""

    meal: Meal
    diversity_score: float
    personalization_score: float
    pantry_utilization: float
    method: GenerationMethod
    insights: GenerationInsights


@dataclass(frozen=True)
class PersonalizedCandidate:
    """Meal assembled from pantry combinations scored against the profile."""

    method: ClassVar[GenerationMethod] = GenerationMethod.PERSONALIZED

    meal: Meal
    diversity_score: float
    personalization_score: float
    pantry_utilization: float
    insights: GenerationInsights

    def to_result(self) -> GenerationResult:
        """Return the caller-facing result."""
        return GenerationResult(
            meal=self.meal,
            diversity_score=self.diversity_score,
            personalization_score=self.personalization_score,
            pantry_utilization=self.pantry_utilization,
            method=self.method,
            insights=self.insights,
        )


@dataclass(frozen=True)
class CulturalCandidate:
    """Meal produced by the text-generation service and the quality gate."""

    method: ClassVar[GenerationMethod] = GenerationMethod.CULTURAL

    meal: Meal
    diversity_score: float
    personalization_score: float
    pantry_utilization: float
    insights: GenerationInsights

    def to_result(self) -> GenerationResult:
        """Return the caller-facing result."""
        return GenerationResult(
            meal=self.meal,
            diversity_score=self.diversity_score,
            personalization_score=self.personalization_score,
            pantry_utilization=self.pantry_utilization,
            method=self.method,
            insights=self.insights,
        )


@dataclass(frozen=True)
class FallbackCandidate:
    """Deterministic meal used when no strategy produced a candidate.

    Its scores are fixed and never computed.
    """

    method: ClassVar[GenerationMethod] = GenerationMethod.FALLBACK
    diversity_score: ClassVar[float] = 50
    personalization_score: ClassVar[float] = 40

    meal: Meal
    pantry_utilization: float
    insights: GenerationInsights

    def to_result(self) -> GenerationResult:
        """Return the caller-facing result."""
        return GenerationResult(
            meal=self.meal,
            diversity_score=self.diversity_score,
            personalization_score=self.personalization_score,
            pantry_utilization=self.pantry_utilization,
            method=self.method,
            insights=self.insights,
        )


Candidate = PersonalizedCandidate | CulturalCandidate | FallbackCandidate


@dataclass(frozen=True)
class DayPlan:
    """Generated meals for every slot of one day."""

    results: dict[str, GenerationResult]
    average_diversity_score: int
    average_personalization_score: int
    average_pantry_utilization: int
    methods: list[GenerationMethod]
