"""In-memory enhancement cache with TTL and an injectable clock."""

import threading
import time
from typing import Callable, Optional

from surf_ai.app_types import CachedEnhancement
from surf_ai.cache.base import EnhancementCache
from surf_ai.domain import EnhancementResult

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache/in_memory_enhancement_cache")


class InMemoryEnhancementCache(EnhancementCache):
    """Thread-safe, TTL-aware in-memory cache; entries expire lazily on read."""

    def __init__(self, ttl_seconds: float = 1800, clock: Callable[[], float] = time.monotonic) -> None:
        logger.debug("Initializing InMemoryEnhancementCache (ttl=%ss)", ttl_seconds)
        self.ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CachedEnhancement] = {}
        self._lock = threading.Lock()

    def _expired(self, entry: CachedEnhancement) -> bool:
        return self._clock() - entry.stored_at >= self.ttl

    def get(self, key: str) -> Optional[EnhancementResult]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry):
                self._entries.pop(key, None)
                return None
            return entry.result

    def set(self, key: str, result: EnhancementResult) -> None:
        with self._lock:
            self._entries[key] = CachedEnhancement(result=result, stored_at=self._clock())

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
