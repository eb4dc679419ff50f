"""Persona prompt composition for the AI interviewer."""
from __future__ import annotations

import logging
from textwrap import dedent
from typing import Optional

from config.registry import PERSONA_KEY
from llm_gateway import LlmGatewayError, generate_text, generator_for

logger = logging.getLogger(__name__)


def fallback_instructions(job_title: str, user_name: str = "") -> str:
    greeting = f"Hello {user_name}! " if user_name else "Hello! "
    return (
        f"{greeting}I'm ready to conduct your mock interview for the {job_title} role. "
        "Let's begin with this question: Tell me about yourself and why you're interested in this role."
    )


def _generation_prompt(job_title: str) -> str:
    return (
        "You are an expert career coach. Generate instructions for an AI interviewer. "
        f"The user is practicing for a '{job_title}' role. Include a friendly opening, "
        "5-7 relevant behavioral and technical questions, and a closing statement. "
        "The questions must be unique. Do not use markdown."
    )


def generate_instructions(job_title: str, user_name: str = "") -> str:
    """Ask the text model for interviewer instructions, or use the template on failure."""

    try:
        generate = generator_for(PERSONA_KEY)
        return generate_text(_generation_prompt(job_title), generate=generate)
    except LlmGatewayError as exc:
        logger.warning("Persona generation failed, using fallback instructions: %s", exc)
        return fallback_instructions(job_title, user_name)


def build_persona_prompt(
    job_title: str,
    user_name: str,
    custom_instructions: Optional[str] = None,
    custom_criteria: Optional[str] = None,
) -> str:
    """Compose the full system prompt handed to the vendor persona."""

    instructions = (custom_instructions or "").strip()
    if not instructions:
        instructions = generate_instructions(job_title, user_name)
    sections = [
        dedent(
            f"""
            You are a professional interviewer running a mock interview for the role of {job_title}.
            The candidate's name is {user_name}. Speak naturally, ask one question at a time,
            and listen fully before following up.
            """
        ).strip(),
        instructions,
    ]
    criteria = (custom_criteria or "").strip()
    if criteria:
        sections.append("Evaluation focus:\n" + criteria)
    return "\n\n".join(sections)


def greeting_for(job_title: str, user_name: str) -> str:
    return f"Hi {user_name}, thanks for joining. Ready to start your {job_title} practice interview?"


__all__ = ["build_persona_prompt", "fallback_instructions", "generate_instructions", "greeting_for"]
