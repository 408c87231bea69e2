"""Supabase repository for meal history."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from pantry_planner.domain.history import MealHistoryEntry
from pantry_planner.services.diversity import HistoryRepository


@dataclass
class SupabaseHistoryRepository(HistoryRepository):
    """Append-only meal history stored in Supabase."""

    client: Client

    def append(self, entry: MealHistoryEntry) -> None:
        """Insert a history row."""
        self.client.table("meal_history").insert(
            {
                "user_id": entry.user_id,
                "meal_name": entry.meal_name,
                "ingredients": list(entry.ingredients),
                "meal_type": entry.meal_type,
                "cuisine_type": entry.cuisine_type,
                "cooking_method": entry.cooking_method,
                "created_at": entry.created_at.isoformat(),
            }
        ).execute()

    def query(self, user_id: str, since: datetime) -> list[MealHistoryEntry]:
        """Return history rows created since a point in time, newest first."""
        response = (
            self.client.table("meal_history")
            .select("*")
            .eq("user_id", user_id)
            .gte("created_at", since.isoformat())
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_entry(row) for row in response.data or []]


def _parse_entry(row: dict[str, object]) -> MealHistoryEntry:
    ingredients = row.get("ingredients")
    return MealHistoryEntry(
        user_id=str(row["user_id"]),
        meal_name=str(row.get("meal_name", "")),
        ingredients=[str(name) for name in ingredients]
        if isinstance(ingredients, list)
        else [],
        meal_type=str(row.get("meal_type") or "unknown"),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        cuisine_type=row.get("cuisine_type"),
        cooking_method=row.get("cooking_method"),
    )
