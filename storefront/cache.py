"""
In-process TTL caches for hot Square lookups.

The commerce API is always the source of truth; these caches only save
round-trips for data that changes rarely:

- location id           (TTL 10 min)
- obj:{object_id}       individual catalog objects (TTL 5 min)
- list:{type}           full paginated catalog lists (TTL 5 min)

Entries expire on wall-clock time only. There is no size bound and no
invalidation; two requests racing to fill the same key both write, which
is harmless.
"""
import threading
import time
from typing import Any, Dict, Optional, Tuple


class TTLCache:
    """Very small in-process TTL cache suitable for single-worker setups."""

    def __init__(self):
        self._store: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        now = time.time()
        with self._lock:
            item = self._store.get(key)
            if not item:
                return None
            value, expires_at = item
            if expires_at <= now:
                self._store.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._store[key] = (value, time.time() + ttl_seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


location_cache = TTLCache()
catalog_object_cache = TTLCache()
catalog_list_cache = TTLCache()


def clear_all() -> None:
    """Drop every cached Square lookup."""
    location_cache.clear()
    catalog_object_cache.clear()
    catalog_list_cache.clear()
