from __future__ import annotations

import pytest
from pydantic import BaseModel

from config.registry import SCORER_KEY, bind_model
from llm_gateway import LlmGatewayError, generate_json, generate_text, generator_for


class _Shape(BaseModel):
    value: int


def test_generate_json_strips_code_fences():
    parsed = generate_json("p", _Shape, generate=lambda prompt: "```json\n{\"value\": 3}\n```")
    assert parsed.value == 3


def test_generate_json_retries_with_hint():
    prompts = []
    replies = iter(["not json", '{"value": 7}'])

    def fake(prompt: str) -> str:
        prompts.append(prompt)
        return next(replies)

    assert generate_json("base", _Shape, generate=fake).value == 7
    assert len(prompts) == 2
    assert "previous reply failed validation" in prompts[1]


def test_generate_json_gives_up_after_retries():
    with pytest.raises(LlmGatewayError):
        generate_json("base", _Shape, generate=lambda prompt: "{}", max_retries=1)


def test_generate_text_wraps_generator_errors():
    def broken(prompt: str) -> str:
        raise ConnectionError("offline")

    with pytest.raises(LlmGatewayError):
        generate_text("p", generate=broken)
    with pytest.raises(LlmGatewayError):
        generate_text("p", generate=lambda prompt: "   ")


def test_generator_for_prefers_bound_model():
    bind_model(SCORER_KEY, lambda prompt: "bound")
    assert generator_for(SCORER_KEY)("x") == "bound"


def test_generator_for_without_key_raises():
    with pytest.raises(LlmGatewayError):
        generator_for("models.unbound")
