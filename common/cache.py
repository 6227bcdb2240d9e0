# common/cache.py
import json
import logging
import os
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

ROOMS_ALL_KEY = "rooms:all"
AVAILABILITY_PREFIX = "rooms:availability:"

_redis_client: Optional[redis.Redis] = None


def room_key(room_id: int) -> str:
    return f"room:{room_id}"


def availability_key(room_id: int, day: Any) -> str:
    return f"{AVAILABILITY_PREFIX}{room_id}:{day}"


def get_redis_client() -> Optional[redis.Redis]:
    """
    Return a Redis client if REDIS_URL is configured, otherwise None.
    Fails gracefully (no caching) if Redis is not reachable.
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        return None

    try:
        client = redis.from_url(redis_url, decode_responses=True)
        client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis unavailable at %s, caching disabled: %s", redis_url, exc)
        return None

    _redis_client = client
    return _redis_client


def get_cached_json(key: str) -> Optional[Any]:
    client = get_redis_client()
    if client is None:
        return None

    raw = client.get(key)
    if raw is None:
        return None
    return json.loads(raw)


def set_cached_json(key: str, value: Any, ttl_seconds: int = 60) -> None:
    client = get_redis_client()
    if client is None:
        return

    client.setex(key, ttl_seconds, json.dumps(value, default=str))


def delete_keys(*keys: str) -> None:
    client = get_redis_client()
    if client is None or not keys:
        return
    client.delete(*keys)


def delete_prefix(prefix: str) -> None:
    """
    Delete all keys starting with prefix.
    Example: prefix='rooms:availability:' after any booking write.
    """
    client = get_redis_client()
    if client is None:
        return

    for k in client.scan_iter(prefix + "*"):
        client.delete(k)
