"""Process-local cache for LLM prompt results.

Entries live for a fixed TTL and the cache holds at most ``max_entries``.
When full, expired entries go first, then the oldest insert. A miss just
means the caller talks to the model again, so nothing here is durable.
"""
import hashlib
import json
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

from app.core.config import settings


def make_cache_key(*parts: Any) -> str:
    raw = json.dumps(parts, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class AICache:
    def __init__(
        self,
        ttl_seconds: float = 600,
        max_entries: int = 200,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            stored_at, value = item
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                self._evict()
            self._entries[key] = (self._clock(), value)

    def _evict(self) -> None:
        now = self._clock()
        stale = [k for k, (ts, _) in self._entries.items() if now - ts > self.ttl_seconds]
        for k in stale:
            del self._entries[k]
        while len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


ai_cache = AICache(
    ttl_seconds=settings.AI_CACHE_TTL_SECONDS,
    max_entries=settings.AI_CACHE_MAX_ENTRIES,
)
