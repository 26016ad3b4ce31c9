"""Process-wide enhancement pipeline built from configuration."""
from typing import Optional

import redis

from surf_ai.cache import EnhancementCache, InMemoryEnhancementCache, RedisEnhancementCache
from surf_ai.config import Settings, settings
from surf_ai.enhancement_client import EnhancementClient
from surf_ai.pipeline import EnhancementPipeline, TextEnhancer
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="pipeline_manager")


def _init_cache(config: Settings) -> EnhancementCache:
    """Initialize the backing enhancement cache based on configuration."""
    logger.debug("Initializing enhancement cache: redis_url='%s'", config.cache_redis_url or "None")
    if config.cache_redis_url:
        try:
            client = redis.Redis.from_url(
                config.cache_redis_url,
                socket_timeout=config.cache_socket_timeout_seconds,
                socket_connect_timeout=config.cache_socket_timeout_seconds,
            )
            client.ping()
            logger.info("Using RedisEnhancementCache")
            return RedisEnhancementCache(client, ttl_seconds=config.cache_ttl_seconds)
        except redis.exceptions.RedisError as exc:
            logger.warning("Falling back to InMemoryEnhancementCache (Redis unavailable)",
                           extra={"error": str(exc)})
    return InMemoryEnhancementCache(ttl_seconds=config.cache_ttl_seconds)


def build_pipeline(
    config: Settings | None = None,
    *,
    client: TextEnhancer | None = None,
    cache: EnhancementCache | None = None,
) -> EnhancementPipeline:
    """Construct a pipeline with timings and bounds taken from settings."""
    config = config or settings
    if not config.enhancement_configured and client is None:
        logger.info("Enhancement service not configured; narratives will be served as-is")
    return EnhancementPipeline(
        client or EnhancementClient(config),
        cache if cache is not None else _init_cache(config),
        debounce_seconds=config.debounce_ms / 1000.0,
        timeout_seconds=config.enhancement_timeout_seconds,
        duplicate_window_seconds=config.duplicate_window_seconds,
        min_chars=config.min_enhanced_chars,
        max_chars=config.max_enhanced_chars,
        max_ratio=config.max_length_ratio,
    )


_pipeline: Optional[EnhancementPipeline] = None


def get_pipeline() -> EnhancementPipeline:
    """Return the shared pipeline, creating it on first use."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline()
    return _pipeline


def use_pipeline_for_tests(pipeline: EnhancementPipeline) -> None:
    """Swap in a pipeline (fake client, in-memory cache) for tests."""
    global _pipeline
    if _pipeline is not None and _pipeline is not pipeline:
        _pipeline.close()
    _pipeline = pipeline


def shutdown_pipeline() -> None:
    """Close the shared pipeline, cancelling timers and worker threads."""
    global _pipeline
    if _pipeline is not None:
        _pipeline.close()
        _pipeline = None
