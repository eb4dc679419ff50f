"""Typed outcomes for best-effort steps."""
from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple, TypeVar

from pydantic import BaseModel

from observability import log_event

logger = logging.getLogger(__name__)

R = TypeVar("R")


class StepResult(BaseModel):
    step: str
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def success(cls, step: str) -> "StepResult":
        return cls(step=step, ok=True)

    @classmethod
    def failed(cls, step: str, reason: str) -> "StepResult":
        return cls(step=step, ok=False, reason=reason)

    @classmethod
    def skipped(cls, step: str, reason: str) -> "StepResult":  # Nothing to do counts as done
        return cls(step=step, ok=True, reason=f"skipped: {reason}")


def attempt(step: str, fn: Callable[[], R], *, conversation_id: Optional[str] = None) -> Tuple[StepResult, Optional[R]]:
    """Run ``fn`` and report its outcome instead of raising.

    The caller decides whether a failed step is logged, retried, or surfaced.
    """

    try:
        value = fn()
    except Exception as exc:  # noqa: BLE001
        reason = str(exc) or exc.__class__.__name__
        logger.warning("Step %s failed for %s: %s", step, conversation_id, reason)
        log_event("step", conversation_id, step=step, ok=False, reason=reason[:200])
        return StepResult.failed(step, reason), None
    log_event("step", conversation_id, step=step, ok=True)
    return StepResult.success(step), value


__all__ = ["StepResult", "attempt"]
