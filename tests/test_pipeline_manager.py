import unittest
from unittest.mock import patch

import redis

from surf_ai import pipeline_manager
from surf_ai.cache import InMemoryEnhancementCache, RedisEnhancementCache
from surf_ai.config import Settings
from surf_ai.enhancement_client import EnhancementClient
from surf_ai.pipeline import EnhancementPipeline


class _StubEnhancer:
    configured = True

    def enhance(self, narrative, context):
        return narrative


class _PingableRedis:
    def ping(self):
        return True


class _DownRedis:
    def ping(self):
        raise redis.exceptions.ConnectionError("connection refused")


class TestPipelineManager(unittest.TestCase):
    def tearDown(self):
        pipeline_manager.shutdown_pipeline()

    def test_build_pipeline_applies_settings(self):
        config = Settings(debounce_ms=250, enhancement_timeout_seconds=3, duplicate_window_seconds=1.5,
                          max_enhanced_chars=300, cache_ttl_seconds=60)
        pipeline = pipeline_manager.build_pipeline(config, client=_StubEnhancer())
        try:
            self.assertEqual(pipeline.debounce_seconds, 0.25)
            self.assertEqual(pipeline.timeout_seconds, 3)
            self.assertEqual(pipeline.duplicate_window_seconds, 1.5)
            self.assertEqual(pipeline.max_chars, 300)
            self.assertIsInstance(pipeline.cache, InMemoryEnhancementCache)
            self.assertEqual(pipeline.cache.ttl, 60)
        finally:
            pipeline.close()

    def test_build_pipeline_defaults_to_http_client(self):
        pipeline = pipeline_manager.build_pipeline(Settings(enhancement_api_key="sk-test-123456789"))
        try:
            self.assertIsInstance(pipeline.client, EnhancementClient)
            self.assertTrue(pipeline.client.configured)
        finally:
            pipeline.close()

    def test_init_cache_uses_redis_when_reachable(self):
        with patch("surf_ai.pipeline_manager.redis.Redis.from_url", return_value=_PingableRedis()):
            cache = pipeline_manager._init_cache(Settings(cache_redis_url="redis://cache:6379/0"))
        self.assertIsInstance(cache, RedisEnhancementCache)

    def test_init_cache_falls_back_when_redis_down(self):
        with patch("surf_ai.pipeline_manager.redis.Redis.from_url", return_value=_DownRedis()):
            cache = pipeline_manager._init_cache(Settings(cache_redis_url="redis://cache:6379/0"))
        self.assertIsInstance(cache, InMemoryEnhancementCache)

    def test_init_cache_bounds_redis_socket_waits(self):
        config = Settings(cache_redis_url="redis://cache:6379/0", cache_socket_timeout_seconds=0.75)
        with patch("surf_ai.pipeline_manager.redis.Redis.from_url", return_value=_PingableRedis()) as from_url:
            pipeline_manager._init_cache(config)
        self.assertEqual(from_url.call_args.args, ("redis://cache:6379/0",))
        self.assertEqual(from_url.call_args.kwargs["socket_timeout"], 0.75)
        self.assertEqual(from_url.call_args.kwargs["socket_connect_timeout"], 0.75)

    def test_use_pipeline_for_tests_replaces_and_closes_previous(self):
        first = EnhancementPipeline(_StubEnhancer())
        second = EnhancementPipeline(_StubEnhancer())
        pipeline_manager.use_pipeline_for_tests(first)
        self.assertIs(pipeline_manager.get_pipeline(), first)

        pipeline_manager.use_pipeline_for_tests(second)
        self.assertIs(pipeline_manager.get_pipeline(), second)
        with self.assertRaises(RuntimeError):
            first.submit("closed pipelines reject work")

    def test_shutdown_pipeline_resets_singleton(self):
        pipeline = EnhancementPipeline(_StubEnhancer())
        pipeline_manager.use_pipeline_for_tests(pipeline)
        pipeline_manager.shutdown_pipeline()
        self.assertIsNone(pipeline_manager._pipeline)


if __name__ == "__main__":
    unittest.main()
