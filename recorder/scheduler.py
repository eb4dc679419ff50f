"""Repeating timers for the session recorder."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def active(self) -> bool: ...


class Scheduler(Protocol):
    def every(self, interval_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class _ThreadTimer:  # Daemon thread firing until cancelled
    def __init__(self, interval_s: float, callback: Callable[[], None], name: str) -> None:
        self._interval = interval_s
        self._callback = callback
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            try:
                self._callback()
            except Exception:  # noqa: BLE001
                logger.exception("Timer callback failed")

    def cancel(self) -> None:
        self._stopped.set()

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()


class ThreadScheduler:
    def __init__(self) -> None:
        self._count = 0

    def every(self, interval_s: float, callback: Callable[[], None]) -> TimerHandle:
        self._count += 1
        return _ThreadTimer(interval_s, callback, name=f"recorder-timer-{self._count}")


@dataclass
class _ManualTimer:
    interval_s: float
    callback: Callable[[], None]
    due: float
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not self.cancelled


@dataclass
class ManualScheduler:
    """Deterministic scheduler driven by ``advance``; used to step the recorder in tests and tools."""

    now: float = 0.0
    timers: List[_ManualTimer] = field(default_factory=list)

    def every(self, interval_s: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(interval_s=interval_s, callback=callback, due=self.now + interval_s)
        self.timers.append(timer)
        return timer

    @property
    def active_count(self) -> int:
        return sum(1 for timer in self.timers if timer.active)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            pending = [timer for timer in self.timers if timer.active and timer.due <= target]
            if not pending:
                break
            timer = min(pending, key=lambda item: item.due)
            self.now = timer.due
            timer.due += timer.interval_s
            timer.callback()
        self.now = target


__all__ = ["ManualScheduler", "Scheduler", "ThreadScheduler", "TimerHandle"]
