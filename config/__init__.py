"""Settings and text-model registry for the mock interview backend."""
from .registry import PERSONA_KEY, SCORER_KEY, bind_model, bound_keys, get_model, unbind_model
from .settings import Settings, settings

__all__ = [
    "PERSONA_KEY",
    "SCORER_KEY",
    "Settings",
    "bind_model",
    "bound_keys",
    "get_model",
    "settings",
    "unbind_model",
]
