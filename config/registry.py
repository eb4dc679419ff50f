"""Registry of prompt -> text callables used for persona writing and interview scoring.

Unbound keys fall back to Gemini (see ``llm_gateway.generator_for``); tests
bind deterministic fakes.
"""
from typing import Callable, Dict, List

TextModel = Callable[[str], str]

PERSONA_KEY = "models.persona_writer"
SCORER_KEY = "models.interview_scorer"

_BOUND: Dict[str, TextModel] = {}


def bind_model(key: str, fn: TextModel) -> None:
    _BOUND[key] = fn


def unbind_model(key: str) -> None:
    _BOUND.pop(key, None)


def get_model(key: str) -> TextModel:
    """Return the callable bound to ``key``.

    Raises:
        KeyError: If nothing is bound for ``key``.
    """

    try:
        return _BOUND[key]
    except KeyError:
        raise KeyError(f"No text model bound for {key}") from None


def bound_keys() -> List[str]:
    return sorted(_BOUND)


__all__ = ["PERSONA_KEY", "SCORER_KEY", "TextModel", "bind_model", "bound_keys", "get_model", "unbind_model"]
