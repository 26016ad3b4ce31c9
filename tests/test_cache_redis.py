import unittest

from surf_ai.cache import RedisEnhancementCache
from surf_ai.domain import EnhancementReason, EnhancementResult


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.expires = {}

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.expires[key] = ttl

    def get(self, key):
        return self.store.get(key)

    def delete(self, key):
        self.store.pop(key, None)
        self.expires.pop(key, None)

    def scan_iter(self, pattern):
        prefix = pattern.rstrip("*")
        return [k for k in list(self.store.keys()) if k.startswith(prefix)]


class TestRedisEnhancementCache(unittest.TestCase):
    def setUp(self):
        self.redis = FakeRedis()
        self.cache = RedisEnhancementCache(self.redis, ttl_seconds=1800)

    def test_set_uses_prefix_and_ttl(self):
        result = EnhancementResult(text="Stoke rating: 7", was_enhanced=True, enhanced_length=15)
        self.cache.set("abc", result)

        self.assertIn("surf_ai:enhancement:abc", self.redis.store)
        self.assertEqual(self.redis.expires["surf_ai:enhancement:abc"], 1800)
        self.assertEqual(self.cache.get("abc"), result)

    def test_fallback_round_trips_with_reason(self):
        fallback = EnhancementResult(text="original", was_enhanced=False,
                                     reason=EnhancementReason.SERVICE_ERROR, detail="boom")
        self.cache.set("abc", fallback)
        loaded = self.cache.get("abc")
        self.assertEqual(loaded.reason, EnhancementReason.SERVICE_ERROR)
        self.assertTrue(loaded.is_fallback)

    def test_missing_key_returns_none(self):
        self.assertIsNone(self.cache.get("nope"))

    def test_undecodable_entry_is_discarded(self):
        self.redis.store["surf_ai:enhancement:bad"] = b"{not json"
        self.assertIsNone(self.cache.get("bad"))
        self.assertNotIn("surf_ai:enhancement:bad", self.redis.store)

    def test_clear_only_touches_prefix(self):
        self.cache.set("a", EnhancementResult(text="one two three", was_enhanced=True))
        self.redis.store["other:key"] = b"keep"
        self.cache.clear()
        self.assertEqual(list(self.redis.store.keys()), ["other:key"])

    def test_delete(self):
        self.cache.set("a", EnhancementResult(text="one two three", was_enhanced=True))
        self.cache.delete("a")
        self.assertIsNone(self.cache.get("a"))


if __name__ == "__main__":
    unittest.main()
