"""Redis store for the durable score queue.

Handles:
- Connection lifecycle
- FIFO list operations backing the processing queue

Queue layout:
- One Redis list per queue name, producers RPUSH and the consumer BLPOP,
  so items are drained strictly in arrival order.
- Items are stored as JSON strings; (de)serialization belongs to callers.
"""

import logging

import redis.asyncio as redis

from score_processor.settings import get_settings

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis(redis_url: str | None = None) -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        redis_url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        # Must stay above the BLPOP timeout used by the consumer.
        socket_timeout=settings.queue_poll_interval + 5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Queue operations
# ============================================================


async def queue_push(queue_name: str, payload: str) -> None:
    """Append a serialized item to the tail of a queue.

    Args:
        queue_name: Redis list key.
        payload: Serialized item.
    """
    await _get_redis().rpush(queue_name, payload)


async def queue_pop(queue_name: str, timeout: float) -> str | None:
    """Pop the head of a queue, blocking up to `timeout` seconds.

    Args:
        queue_name: Redis list key.
        timeout: Maximum seconds to block when the queue is empty.

    Returns:
        Serialized item or None if the queue stayed empty.
    """
    result = await _get_redis().blpop([queue_name], timeout=timeout)
    if result is None:
        return None
    # BLPOP returns (key, value)
    return result[1]


async def queue_length(queue_name: str) -> int:
    """Get the number of items waiting in a queue."""
    return int(await _get_redis().llen(queue_name))


async def queue_clear(queue_name: str) -> None:
    """Discard every waiting item in a queue."""
    await _get_redis().delete(queue_name)
