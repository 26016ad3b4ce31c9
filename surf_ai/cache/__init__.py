"""Enhancement result cache backends."""

from .base import EnhancementCache, make_cache_key
from .memory import InMemoryEnhancementCache
from .redis import RedisEnhancementCache

__all__ = [
    "EnhancementCache",
    "make_cache_key",
    "InMemoryEnhancementCache",
    "RedisEnhancementCache",
]
