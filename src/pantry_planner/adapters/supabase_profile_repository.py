"""Supabase repository for user profiles."""

from dataclasses import dataclass

from supabase import Client

from pantry_planner.domain.profiles import UserProfile
from pantry_planner.services.profiles import ProfileRepository


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for user profiles."""

    client: Client

    def get_profile(self, user_id: str) -> UserProfile | None:
        """Return the stored profile for a user."""
        response = (
            self.client.table("user_profiles")
            .select("*")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_profile(response.data[0])


def _list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(entry) for entry in value if entry]


def _parse_profile(row: dict[str, object]) -> UserProfile:
    """Parse a profile row into a domain model."""
    return UserProfile(
        id=str(row["id"]),
        age=row.get("age"),
        gender=row.get("gender"),
        height_cm=row.get("height_cm"),
        weight_kg=row.get("weight_kg"),
        activity_level=row.get("activity_level"),
        health_goals=_list(row.get("health_goals")),
        dietary_restrictions=_list(row.get("dietary_restrictions")),
        dietary_preferences=_list(row.get("dietary_preferences")),
        allergens=_list(row.get("allergens")),
        cuisine_preferences=_list(row.get("cuisine_preferences")),
        cooking_skill_level=row.get("cooking_skill_level"),
        family_size=row.get("family_size"),
    )
