"""Supabase repository for the pantry consumption audit trail."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from pantry_planner.domain.pantry import ConsumptionRecord
from pantry_planner.services.consumption import ConsumptionRepository


@dataclass
class SupabaseConsumptionRepository(ConsumptionRepository):
    """Supabase implementation for consumption records."""

    client: Client

    def append(self, record: ConsumptionRecord) -> None:
        """Insert a consumption record."""
        self.client.table("pantry_consumption").insert(
            {
                "pantry_item_id": record.pantry_item_id,
                "recipe_id": record.recipe_id,
                "consumed_quantity": record.consumed_quantity,
                "unit": record.unit,
                "consumed_at": record.consumed_at.isoformat(),
                "user_id": record.user_id,
            }
        ).execute()

    def list_records(self, user_id: str, since: datetime) -> list[ConsumptionRecord]:
        """Return a user's consumption records since a point in time."""
        response = (
            self.client.table("pantry_consumption")
            .select("*")
            .eq("user_id", user_id)
            .gte("consumed_at", since.isoformat())
            .order("consumed_at")
            .execute()
        )
        return [
            ConsumptionRecord(
                pantry_item_id=str(row["pantry_item_id"]),
                recipe_id=str(row.get("recipe_id") or "unknown"),
                consumed_quantity=float(row.get("consumed_quantity") or 0),
                unit=str(row.get("unit") or "unit"),
                consumed_at=datetime.fromisoformat(str(row["consumed_at"])),
                user_id=str(row["user_id"]),
            )
            for row in response.data or []
        ]
