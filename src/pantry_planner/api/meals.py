"""Meal planning API endpoints with token auth."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from pantry_planner.api.models import (  # noqa: TC001
    AcceptMealRequest,
    DayPlanRequest,
    GenerateMealRequest,
    OptionsModel,
)

if TYPE_CHECKING:
    from pantry_planner.containers import AppContainer
    from pantry_planner.domain.generation import GenerationOptions, GenerationResult
    from pantry_planner.domain.meals import Meal

router = APIRouter(tags=["meals"])


def _get_api_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.api_token


async def require_token(
    x_api_token: str | None = Header(default=None),
    api_token: str = Depends(_get_api_token),
) -> None:
    """Ensure requests include a valid API token."""
    if not x_api_token or x_api_token != api_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post("/meals/generate", dependencies=[Depends(require_token)])
async def generate_meal(body: GenerateMealRequest, request: Request) -> dict[str, object]:
    """Generate one meal for a meal slot."""
    container: AppContainer = request.app.state.container
    options = _options(body.options, container)
    result = await container.planning_service.generate_meal(
        body.user_id,
        body.meal_type,
        options,
        [meal.to_meal() for meal in body.previous_meals],
    )
    return _result_payload(result)


@router.post("/meals/plan", dependencies=[Depends(require_token)])
async def generate_plan(body: DayPlanRequest, request: Request) -> dict[str, object]:
    """Generate every meal slot of a day."""
    container: AppContainer = request.app.state.container
    options = _options(body.options, container)
    plan = await container.planning_service.generate_day_plan(
        body.user_id, options, body.concurrent
    )
    return {
        "meals": {
            meal_type: _result_payload(result)
            for meal_type, result in plan.results.items()
        },
        "summary": {
            "average_diversity_score": plan.average_diversity_score,
            "average_personalization_score": plan.average_personalization_score,
            "average_pantry_utilization": plan.average_pantry_utilization,
            "methods": [method.value for method in plan.methods],
        },
    }


@router.post("/meals/accept", dependencies=[Depends(require_token)])
async def accept_meal(body: AcceptMealRequest, request: Request) -> dict[str, object]:
    """Record an accepted meal and consume its pantry ingredients."""
    container: AppContainer = request.app.state.container
    report = container.planning_service.accept_meal(body.user_id, body.meal.to_meal())
    return {
        "consumed": [asdict(record) for record in report.records],
        "missing_ingredients": report.missing_ingredients,
    }


@router.get("/pantry/{user_id}/depletion", dependencies=[Depends(require_token)])
async def pantry_depletion(user_id: str, request: Request) -> dict[str, object]:
    """Return depletion forecasts for a user's pantry, most urgent first."""
    container: AppContainer = request.app.state.container
    forecasts = container.planning_service.depletion_forecast(user_id)
    return {
        "forecasts": [
            {
                "item_id": forecast.item.id,
                "name": forecast.item.name,
                "quantity": forecast.item.quantity,
                "unit": forecast.item.unit,
                "daily_rate": forecast.daily_rate,
                "estimated_days_left": forecast.estimated_days_left,
                "urgency": forecast.urgency,
                "recommended_action": forecast.recommended_action,
            }
            for forecast in forecasts
        ]
    }


@router.get("/diversity/{user_id}/recommendations", dependencies=[Depends(require_token)])
async def diversity_recommendations(user_id: str, request: Request) -> dict[str, object]:
    """Return ingredients to rest and cuisines or methods to try."""
    container: AppContainer = request.app.state.container
    return asdict(container.planning_service.diversity_recommendations(user_id))


def _meal_payload(meal: Meal) -> dict[str, object]:
    payload = meal.to_payload()
    payload.update(
        {
            "id": meal.id,
            "meal_type": meal.meal_type,
            "provenance": meal.provenance.value,
            "quality_score": meal.quality_score,
            "quality_warning": meal.quality_warning,
            "match": asdict(meal.match) if meal.match else None,
        }
    )
    return payload


def _result_payload(result: GenerationResult) -> dict[str, object]:
    return {
        "meal": _meal_payload(result.meal),
        "diversity_score": result.diversity_score,
        "personalization_score": result.personalization_score,
        "pantry_utilization": result.pantry_utilization,
        "method": result.method.value,
        "insights": asdict(result.insights),
    }


def _options(
    overrides: OptionsModel | None, container: AppContainer
) -> GenerationOptions | None:
    if overrides is None:
        return None
    return overrides.merge(container.settings.generation_options())
