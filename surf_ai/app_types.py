"""Shared dataclasses and lightweight types used across modules."""

from dataclasses import dataclass

from surf_ai.domain import EnhancementResult


@dataclass
class CachedEnhancement:
    """EnhancementResult with the clock reading at which it was stored."""
    result: EnhancementResult
    stored_at: float
