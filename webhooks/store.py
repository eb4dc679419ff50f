"""Bounded, TTL-evicting key-value store for webhook-delivered data."""
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

V = TypeVar("V")


class WebhookStore(Generic[V]):
    """Thread-safe cache keyed by conversation id.

    Entries expire ``ttl_seconds`` after their last write. When more than
    ``capacity`` ids are held, the least recently written is evicted. Readers
    may block on :meth:`wait_for` until a writer publishes a value.
    """

    def __init__(
        self,
        *,
        capacity: int,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._capacity = capacity
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, V]]" = OrderedDict()
        self._cond = threading.Condition(threading.Lock())

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def put(self, key: str, value: V) -> None:
        with self._cond:
            expires_at = self._clock() + self._ttl
            self._entries[key] = (expires_at, value)
            self._entries.move_to_end(key)
            self._evict_locked()
            self._cond.notify_all()

    def get(self, key: str) -> Optional[V]:
        with self._cond:
            return self._get_locked(key)

    def delete(self, key: str) -> bool:
        with self._cond:
            return self._entries.pop(key, None) is not None

    def keys(self) -> List[str]:
        with self._cond:
            self._purge_expired_locked()
            return list(self._entries.keys())

    def __len__(self) -> int:
        with self._cond:
            self._purge_expired_locked()
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def wait_for(self, key: str, timeout: float) -> Optional[V]:
        """Return the value for ``key``, waiting up to ``timeout`` seconds for a write."""

        deadline = time.monotonic() + max(0.0, timeout)
        with self._cond:
            while True:
                value = self._get_locked(key)
                if value is not None:
                    return value
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)

    def _get_locked(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

    def _purge_expired_locked(self) -> None:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def _evict_locked(self) -> None:
        self._purge_expired_locked()
        while len(self._entries) > self._capacity:
            self._entries.popitem(last=False)


__all__ = ["WebhookStore"]
