from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Generic, TypeVar

V = TypeVar("V")


class TokenCache(Generic[V]):
    """Bounded token -> value memo with a fixed time-to-live.

    Expired entries are dropped when read and swept once the cache grows past
    ``max_size``. If every entry is still fresh, the least recently used one
    is evicted instead.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, V]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, token: str) -> V | None:
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self._ttl:
                del self._entries[token]
                return None
            self._entries.move_to_end(token)
            return value

    def set(self, token: str, value: V) -> None:
        with self._lock:
            self._entries[token] = (self._clock(), value)
            self._entries.move_to_end(token)
            if len(self._entries) > self._max_size:
                self._sweep_locked()
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)

    def cleanup_expired(self) -> int:
        with self._lock:
            return self._sweep_locked()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _sweep_locked(self) -> int:
        now = self._clock()
        expired = [key for key, (stored_at, _) in self._entries.items() if now - stored_at >= self._ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)
