"""OpenAI Responses API client for structured meal generation."""

import json
from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI

from pantry_planner.domain.errors import ExternalServiceError
from pantry_planner.services.generation import MealGenerationClient

SYSTEM_PROMPT = (
    "You are a professional chef who maximizes pantry ingredient usage. "
    "Always answer with the requested JSON only."
)


@dataclass
class OpenAIMealClient(MealGenerationClient):
    """Meal generation client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    model: str
    store: bool = False

    @classmethod
    def create(
        cls, api_key: str, model: str, store: bool = False, timeout_seconds: float = 30
    ) -> "OpenAIMealClient":
        """Create an OpenAI meal client."""
        client = AsyncOpenAI(
            api_key=api_key,
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            max_retries=0,
        )
        return cls(client=client, model=model, store=store)

    async def complete(self, prompt: str, schema: dict[str, object]) -> dict[str, object]:
        """Call OpenAI Responses API with structured outputs."""
        response = await self.client.responses.create(
            model=self.model,
            instructions=SYSTEM_PROMPT,
            input=[
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            text={
                "format": {
                    "type": "json_schema",
                    "name": "pantry_meal",
                    "strict": True,
                    "schema": schema,
                }
            },
            store=self.store,
        )
        output_text = response.output_text
        if not output_text:
            raise ExternalServiceError("OpenAI returned an empty response")
        try:
            payload = json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise ExternalServiceError("OpenAI returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ExternalServiceError("OpenAI returned a non-object payload")
        return payload

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
