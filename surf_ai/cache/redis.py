"""Redis-backed enhancement cache; Redis owns expiry via SETEX."""

from typing import Optional

from pydantic import ValidationError

from surf_ai.cache.base import EnhancementCache
from surf_ai.domain import EnhancementResult
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache/redis_enhancement_cache")


class RedisEnhancementCache(EnhancementCache):
    """Stores EnhancementResult JSON under a key prefix with a TTL.

    Redis errors are logged and treated as cache misses; the pipeline then
    simply calls the enhancement service.
    """

    def __init__(self, client, ttl_seconds: int = 1800, prefix: str = "surf_ai:enhancement:") -> None:
        logger.debug("Initializing RedisEnhancementCache")
        self.client = client
        self.ttl = int(ttl_seconds)
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[EnhancementResult]:
        try:
            raw = self.client.get(self._key(key))
        except Exception as exc:  # pragma: no cover - network dependent
            logger.error("Failed to read enhancement from Redis: %s", exc)
            return None
        if not raw:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return EnhancementResult.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Discarding undecodable cache entry %s: %s", key, exc)
            self.delete(key)
            return None

    def set(self, key: str, result: EnhancementResult) -> None:
        payload = result.model_dump_json().encode("utf-8")
        try:
            self.client.setex(self._key(key), self.ttl, payload)
        except Exception as exc:  # pragma: no cover - network dependent
            logger.error("Failed to write enhancement to Redis: %s", exc)

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self._key(key))
        except Exception as exc:  # pragma: no cover - network dependent
            logger.error("Failed to delete enhancement from Redis: %s", exc)

    def clear(self) -> None:
        """Best-effort clear of every entry under the configured prefix."""
        try:
            for redis_key in self.client.scan_iter(f"{self.prefix}*"):
                self.client.delete(redis_key)
        except Exception as exc:  # pragma: no cover - network dependent
            logger.error("Failed to clear enhancements from Redis: %s", exc)
