"""Timing helper for outbound vendor and storage calls."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator, Optional

from .logger import log_event


@contextmanager
def span(name: str, conversation_id: Optional[str] = None) -> Iterator[None]:
    started = time.perf_counter()
    reason: Optional[str] = None
    try:
        yield
    except BaseException as exc:
        reason = exc.__class__.__name__
        raise
    finally:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        log_event("span", conversation_id, step=name, ms=elapsed_ms, ok=reason is None, reason=reason)


__all__ = ["span"]
