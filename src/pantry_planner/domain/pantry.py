"""Domain models for pantry inventory and consumption."""

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class PantryItem:
    """Ingredient tracked in a user's pantry."""

    id: str
    name: str
    category: str
    quantity: float
    unit: str
    user_id: str | None = None
    expiry_date: date | None = None
    last_used_at: datetime | None = None
    times_used: int = 0


@dataclass(frozen=True)
class Ingredient:
    """Single recipe line of a meal."""

    name: str
    amount: float = 1.0
    unit: str = "unit"
    category: str = "General"
    from_pantry: bool = False


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching recipe ingredients against the pantry."""

    match_count: int
    total_ingredients: int
    match_percentage: float
    missing: list[str] = field(default_factory=list)
    available: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConsumptionRecord:
    """Audit entry for a pantry decrement."""

    pantry_item_id: str
    recipe_id: str
    consumed_quantity: float
    unit: str
    consumed_at: datetime
    user_id: str


@dataclass(frozen=True)
class ConsumptionReport:
    """Result of consuming a meal's ingredients."""

    records: list[ConsumptionRecord]
    missing_ingredients: list[str]


@dataclass(frozen=True)
class DepletionForecast:
    """Predicted depletion of a pantry item.

    ``estimated_days_left`` is ``None`` when no consumption was observed.
    """

    item: PantryItem
    daily_rate: float
    estimated_days_left: int | None
    urgency: str
    recommended_action: str
