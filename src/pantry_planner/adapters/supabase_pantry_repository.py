"""Supabase repository for pantry inventory."""

from dataclasses import dataclass
from datetime import UTC, date, datetime

from supabase import Client

from pantry_planner.domain.errors import DataIntegrityError, ExternalServiceError
from pantry_planner.domain.pantry import PantryItem
from pantry_planner.services.consumption import PantryRepository


@dataclass
class SupabasePantryRepository(PantryRepository):
    """Supabase-backed pantry repository.

    Decrements are compare-and-set updates on the current quantity, so two
    writers never subtract from the same stale value.
    """

    client: Client
    max_retries: int = 3

    def list_items(self, user_id: str) -> list[PantryItem]:
        """Return all pantry items of a user."""
        response = (
            self.client.table("pantry_items")
            .select("*")
            .eq("user_id", user_id)
            .order("name")
            .execute()
        )
        return [_parse_item(row) for row in response.data or []]

    def get_item(self, item_id: str) -> PantryItem | None:
        """Return one pantry item by id."""
        response = (
            self.client.table("pantry_items")
            .select("*")
            .eq("id", item_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_item(response.data[0])

    def decrement(self, item_id: str, amount: float) -> PantryItem:
        """Lower the quantity of an item, never below zero."""
        for _ in range(self.max_retries):
            response = (
                self.client.table("pantry_items")
                .select("quantity")
                .eq("id", item_id)
                .limit(1)
                .execute()
            )
            if not response.data:
                raise DataIntegrityError(f"Pantry item {item_id} not found")
            current = float(response.data[0].get("quantity") or 0)
            updated = (
                self.client.table("pantry_items")
                .update(
                    {
                        "quantity": max(0.0, current - amount),
                        "updated_at": datetime.now(tz=UTC).isoformat(),
                    }
                )
                .eq("id", item_id)
                .eq("quantity", current)
                .execute()
            )
            if updated.data:
                return _parse_item(updated.data[0])
        raise ExternalServiceError(
            f"Pantry item {item_id} kept changing, decrement abandoned"
        )

    def stamp_usage(self, item_id: str, used_at: datetime) -> None:
        """Set the last-used time and bump the usage counter."""
        response = (
            self.client.table("pantry_items")
            .select("times_used")
            .eq("id", item_id)
            .limit(1)
            .execute()
        )
        current = 0
        if response.data:
            current = int(response.data[0].get("times_used") or 0)
        self.client.table("pantry_items").update(
            {
                "times_used": current + 1,
                "last_used_date": used_at.isoformat(),
            }
        ).eq("id", item_id).execute()


def _parse_item(row: dict[str, object]) -> PantryItem:
    """Parse a pantry row into a domain model."""
    expiry_raw = row.get("expiry_date")
    last_used_raw = row.get("last_used_date")
    return PantryItem(
        id=str(row["id"]),
        user_id=str(row["user_id"]) if row.get("user_id") else None,
        name=str(row.get("name", "")),
        category=str(row.get("category") or "General"),
        quantity=max(0.0, float(row.get("quantity") or 0)),
        unit=str(row.get("unit") or "unit"),
        expiry_date=(
            date.fromisoformat(expiry_raw[:10])
            if isinstance(expiry_raw, str) and expiry_raw
            else None
        ),
        last_used_at=(
            datetime.fromisoformat(last_used_raw)
            if isinstance(last_used_raw, str) and last_used_raw
            else None
        ),
        times_used=int(row.get("times_used") or 0),
    )
