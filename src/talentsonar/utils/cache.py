"""
In-process TTL cache keyed by content signature.

LLM responses and embeddings are expensive and deterministic enough to reuse
for a few minutes. Keys are SHA-1 signatures of the content that produced the
value, so identical inputs hit the cache regardless of where they came from.
"""

import hashlib
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional


def content_signature(*parts: Any) -> str:
    """Stable SHA-1 hex digest of the given parts joined by '|'."""
    joined = "|".join("" if p is None else str(p) for p in parts)
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()


class TTLCache:
    """Thread-safe cache whose entries expire `ttl_seconds` after being set.

    Args:
        ttl_seconds: Entry lifetime.
        max_entries: Capacity; the oldest entry is evicted when full.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._store: "OrderedDict[str, tuple]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, created_at = entry
            if self._clock() - created_at > self.ttl_seconds:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._store:
                del self._store[key]
            elif len(self._store) >= self.max_entries:
                self._store.popitem(last=False)
            self._store[key] = (value, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
