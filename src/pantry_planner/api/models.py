"""Pydantic request models for the meal planning API."""

from dataclasses import replace
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from pantry_planner.domain.generation import GenerationOptions, PayloadIngredient
from pantry_planner.domain.meals import GenerationMethod, Meal
from pantry_planner.domain.pantry import Ingredient

MealType = Literal["breakfast", "lunch", "dinner", "snack"]


class OptionsModel(BaseModel):
    """Overrides for the default generation options."""

    diversity_threshold: float | None = Field(default=None, ge=0, le=100)
    personalization_threshold: float | None = Field(default=None, ge=0, le=100)
    max_attempts: int | None = Field(default=None, ge=1, le=10)
    allow_fallback: bool | None = None
    prioritize_diversity: bool | None = None
    prioritize_personalization: bool | None = None

    def merge(self, defaults: GenerationOptions) -> GenerationOptions:
        """Return the defaults with every provided override applied."""
        overrides = self.model_dump(exclude_none=True)
        return replace(defaults, **overrides)


class MealModel(BaseModel):
    """Meal as sent back by a caller."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    meal_type: MealType
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
    provenance: GenerationMethod = GenerationMethod.PERSONALIZED
    instructions: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    def to_meal(self) -> Meal:
        """Convert to the domain model."""
        return Meal(
            id=self.id,
            name=self.name,
            meal_type=self.meal_type,
            ingredients=[
                Ingredient(
                    name=line.name,
                    amount=line.amount,
                    unit=line.unit,
                    category=line.category,
                )
                for line in self.ingredients
            ],
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            fiber=self.fiber,
            prep_time=self.prep_time,
            cook_time=self.cook_time,
            servings=self.servings,
            difficulty=self.difficulty,
            provenance=self.provenance,
            instructions=self.instructions,
            tags=self.tags,
        )


class GenerateMealRequest(BaseModel):
    """Request body for generating a single meal."""

    user_id: str
    meal_type: MealType
    options: OptionsModel | None = None
    previous_meals: list[MealModel] = Field(default_factory=list)


class DayPlanRequest(BaseModel):
    """Request body for generating a full day."""

    user_id: str
    options: OptionsModel | None = None
    concurrent: bool = True


class AcceptMealRequest(BaseModel):
    """Request body for accepting a generated meal."""

    user_id: str
    meal: MealModel
