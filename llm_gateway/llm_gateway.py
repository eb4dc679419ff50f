from __future__ import annotations  # Generative text model gateway module

import json
import logging
from typing import Callable, Optional, Type, TypeVar

from google import genai
from pydantic import BaseModel, ValidationError

from config.registry import get_model
from config.settings import settings


logger = logging.getLogger(__name__)  # Module logger setup

TextGenerator = Callable[[str], str]


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


T = TypeVar("T", bound=BaseModel)


def gemini_generator(*, api_key: Optional[str] = None, model: Optional[str] = None) -> TextGenerator:  # Build a prompt -> text callable backed by Gemini
    key = api_key if api_key is not None else settings.GEMINI_API_KEY
    model_name = model or settings.GEMINI_MODEL
    if not key:
        raise LlmGatewayError("GEMINI_API_KEY is not configured")
    client = genai.Client(api_key=key)

    def _generate(prompt: str) -> str:
        try:
            response = client.models.generate_content(model=model_name, contents=prompt)
        except Exception as exc:  # noqa: BLE001
            logger.error("Gemini transport failure: %s", exc)
            raise LlmGatewayError("Gemini request failed") from exc
        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise LlmGatewayError("Gemini response missing content")
        return text

    return _generate


def generate_text(prompt: str, *, generate: TextGenerator) -> str:  # Invoke generator and normalise failures
    preview = _preview(prompt)
    logger.info("LLM text request start preview=%s", preview)
    try:
        text = generate(prompt)
    except LlmGatewayError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.error("LLM text request failed: %s", exc)
        raise LlmGatewayError("LLM request failed") from exc
    if not isinstance(text, str) or not text.strip():
        raise LlmGatewayError("LLM returned empty text")
    logger.info("LLM text request done chars=%d", len(text))
    return text.strip()


def generate_json(
    prompt: str,
    schema: Type[T],
    *,
    generate: TextGenerator,
    max_retries: int = 1,
) -> T:  # Invoke generator and validate JSON output against schema
    attempts = max_retries + 1
    last_error: Optional[Exception] = None
    last_error_text: Optional[str] = None
    for attempt in range(attempts):
        attempt_prompt = prompt
        if attempt > 0:
            attempt_prompt = prompt + "\n\n" + _retry_hint(last_error_text)
        content = generate_text(attempt_prompt, generate=generate)
        try:
            parsed = _validate(schema, content)
            logger.info("LLM JSON request done attempt=%d/%d", attempt + 1, attempts)
            return parsed
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("LLM output validation failed: %s", exc)
            last_error = exc
            last_error_text = str(exc)
            continue
    raise LlmGatewayError("LLM output validation failed") from last_error


def _preview(prompt: str) -> str:  # Build preview string for logging
    for line in prompt.splitlines():
        text = line.strip()
        if text:
            return text if len(text) <= 120 else text[:117] + "..."
    return ""


def _validate(schema: Type[T], content: str) -> T:  # Parse JSON content with schema
    cleaned = _strip_code_fences(content)
    return schema.model_validate_json(cleaned)


def _strip_code_fences(content: str) -> str:  # Remove common markdown fences from LLM output
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        if lines:
            lines = lines[1:]
            while lines and lines[0].strip() == "":
                lines = lines[1:]
            while lines and lines[-1].strip() == "":
                lines = lines[:-1]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines).strip()
    return text


def _retry_hint(error_text: Optional[str]) -> str:  # Compose retry instructions including last error
    base = "The previous reply failed validation."
    if error_text:
        truncated = error_text.splitlines()[0].strip()
        if len(truncated) > 200:
            truncated = truncated[:197] + "..."
        base += f" Reason: {truncated}."
    return base + " Return a single JSON object that matches the requested structure."


def generator_for(key: str) -> TextGenerator:  # Resolve a bound model or fall back to Gemini
    try:
        return get_model(key)
    except KeyError:
        return gemini_generator()
