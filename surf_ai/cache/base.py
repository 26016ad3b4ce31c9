"""Shared protocol and key derivation for enhancement caches."""

import hashlib
import json
from typing import Optional, Protocol

from surf_ai.domain import EnhancementContext, EnhancementResult


def make_cache_key(narrative: str, context: EnhancementContext | None) -> str:
    """Deterministic hash of a narrative and its numeric context."""
    body = json.dumps(
        {
            "narrative": narrative,
            "context": (context or EnhancementContext()).model_dump(mode="json"),
        },
        sort_keys=True,
        ensure_ascii=False,
    )
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


class EnhancementCache(Protocol):
    """Protocol for enhancement cache backends."""

    def get(self, key: str) -> Optional[EnhancementResult]:
        """Return the cached result, or None if missing or expired."""

    def set(self, key: str, result: EnhancementResult) -> None:
        """Store a result under `key`, replacing any previous entry."""

    def delete(self, key: str) -> None:
        """Remove an entry without raising if it is absent."""

    def clear(self) -> None:
        """Drop every cached entry."""
