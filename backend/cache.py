"""
Caller-owned cache of streak results.

The engine stays stateless; this cache sits in the service layer and is
keyed by `(entity_id, timezone)`. Entries expire after a TTL or as soon
as a new event for the entity is written. Expired entries are kept only
as "last known" values for the degraded path, and the whole map is an
LRU capped at `max_entries`, so its size never exceeds that cap.

Stale-write protection: read `generation(entity_id)` before fetching the
progress log and pass it to `put()`. If the entity was invalidated while
the fetch was in flight, the generation has moved and the late result is
discarded instead of overwriting fresher data.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from models import StreakResult

CacheKey = Tuple[str, str]


@dataclass
class _Entry:
    value: StreakResult
    stored_at: float


class StreakCache:
    def __init__(
        self,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 1024,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._max_entries = max(1, max_entries)
        self._lock = threading.Lock()
        self._entries: "OrderedDict[CacheKey, _Entry]" = OrderedDict()
        self._generations: Dict[str, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def generation(self, entity_id: str) -> int:
        with self._lock:
            return self._generations.get(entity_id, 0)

    def get(self, key: CacheKey) -> Optional[StreakResult]:
        """Fresh value for `key`, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at > self._ttl:
                return None
            self._entries.move_to_end(key)
            return entry.value

    def last_known(self, key: CacheKey) -> Optional[StreakResult]:
        """Most recent value for `key`, expired or not."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.value if entry else None

    def put(self, key: CacheKey, value: StreakResult, generation: int) -> bool:
        """Store `value` unless `key`'s entity moved past `generation`."""
        entity_id = key[0]
        with self._lock:
            if self._generations.get(entity_id, 0) != generation:
                return False
            self._entries[key] = _Entry(value=value, stored_at=self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
            return True

    def invalidate(self, entity_id: str) -> None:
        with self._lock:
            self._generations[entity_id] = self._generations.get(entity_id, 0) + 1
            # expire rather than drop, so last_known() can still serve them
            for key, entry in self._entries.items():
                if key[0] == entity_id:
                    entry.stored_at = float("-inf")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generations.clear()
