"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from pantry_planner.domain.generation import GenerationOptions

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    api_token: str
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_store: bool = False
    generation_timeout_seconds: float = 30
    generation_concurrency: int = 2
    history_days: int = 7
    consumption_window_days: int = 30
    diversity_threshold: float = 70
    personalization_threshold: float = 60
    max_attempts: int = 3
    allow_fallback: bool = True
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def generation_options(self) -> GenerationOptions:
        """Return the default generation options."""
        return GenerationOptions(
            diversity_threshold=self.diversity_threshold,
            personalization_threshold=self.personalization_threshold,
            max_attempts=self.max_attempts,
            allow_fallback=self.allow_fallback,
        )
