"""Tests for the OpenAI meal generation adapter."""

import asyncio
import json

import pytest

from pantry_planner.adapters.openai_meal_client import OpenAIMealClient
from pantry_planner.domain.errors import ExternalServiceError
from pantry_planner.services.generation import MEAL_SCHEMA


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, output_text: str) -> None:
        self.responses = _FakeResponses(output_text)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def test_openai_meal_client_parses_output() -> None:
    fake = _FakeOpenAI(json.dumps({"name": "Omelet"}))
    client = OpenAIMealClient(client=fake, model="gpt-4o-mini")  # type: ignore[arg-type]

    result = asyncio.run(client.complete("Make breakfast", MEAL_SCHEMA))

    assert result == {"name": "Omelet"}
    payload = fake.responses.last_payload
    assert payload is not None
    assert payload["model"] == "gpt-4o-mini"
    assert payload["store"] is False
    assert payload["text"]["format"]["schema"] is MEAL_SCHEMA  # type: ignore[index]
    assert payload["text"]["format"]["strict"] is True  # type: ignore[index]


@pytest.mark.parametrize("output_text", ["", "not json", "[1, 2]"])
def test_openai_meal_client_rejects_unusable_output(output_text: str) -> None:
    client = OpenAIMealClient(client=_FakeOpenAI(output_text), model="m")  # type: ignore[arg-type]

    with pytest.raises(ExternalServiceError):
        asyncio.run(client.complete("Make lunch", MEAL_SCHEMA))


def test_openai_meal_client_close() -> None:
    fake = _FakeOpenAI("{}")
    client = OpenAIMealClient(client=fake, model="m")  # type: ignore[arg-type]

    asyncio.run(client.close())

    assert fake.closed is True
