from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    LlmGatewayError,
    TextGenerator,
    gemini_generator,
    generate_json,
    generate_text,
    generator_for,
)

__all__ = [
    "LlmGatewayError",
    "TextGenerator",
    "gemini_generator",
    "generate_json",
    "generate_text",
    "generator_for",
]
