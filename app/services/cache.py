"""Redis caching and named locks."""
import json
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional
import redis
from app.core.config import settings

logger = logging.getLogger(__name__)

# Redis client (with graceful degradation)
try:
    redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    redis_client.ping()  # Test connection
    redis_available = True
except Exception as e:
    logger.warning(f"Redis not available: {e}. Continuing without cache.")
    redis_client = None
    redis_available = False

# In-process locks used when Redis is down: name -> [lock, holders]
_local_locks: dict = {}
_local_locks_guard = threading.Lock()


def get(key: str) -> Optional[str]:
    """
    Get value from cache.

    Args:
        key: Cache key

    Returns:
        Cached value or None
    """
    if not settings.cache_enabled or not redis_available or not redis_client:
        return None

    try:
        return redis_client.get(key)
    except Exception as e:
        logger.error(f"Cache get error: {e}")
        return None


def set(key: str, value: str, ttl: int) -> None:
    """
    Set value in cache with TTL.

    Args:
        key: Cache key
        value: Value to cache
        ttl: Time to live in seconds
    """
    if not settings.cache_enabled or not redis_available or not redis_client:
        return

    try:
        redis_client.setex(key, ttl, value)
    except Exception as e:
        logger.error(f"Cache set error: {e}")


def get_json(key: str) -> Optional[dict]:
    """Get JSON value from cache."""
    value = get(key)
    if value:
        try:
            return json.loads(value)
        except ValueError:
            return None
    return None


def set_json(key: str, value: dict, ttl: int) -> None:
    """Set JSON value in cache."""
    set(key, json.dumps(value), ttl)


@contextmanager
def _local_lock(name: str) -> Iterator[None]:
    with _local_locks_guard:
        entry = _local_locks.setdefault(name, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _local_locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                _local_locks.pop(name, None)


@contextmanager
def lock(name: str, timeout: int) -> Iterator[None]:
    """
    Hold a named lock for the duration of the block.

    Uses a Redis lock (shared across workers) when Redis is reachable, otherwise a
    process-local lock. `timeout` bounds how long a Redis lock survives a crashed holder.
    """
    if redis_available and redis_client:
        with redis_client.lock(f"lock:{name}", timeout=timeout):
            yield
        return
    with _local_lock(name):
        yield
