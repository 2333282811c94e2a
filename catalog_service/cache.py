import logging
import os
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError

from .errors import CacheError

REDIS_URL= os.getenv("REDIS_URL", "redis://localhost:6379/0")
# seconds; 0 disables expiry
RATING_CACHE_TTL= int(os.getenv("RATING_CACHE_TTL", "600"))

logger= logging.getLogger(__name__)


class CacheMiss(Exception):
    """Raised by Cache.get when the key is absent."""


def rating_key(product_id: int) -> str:
    return f"product:{product_id}:average_rating"


class RedisCache:
    """Cache collaborator on top of a redis client.

    A missing key is reported with CacheMiss, never with CacheError; only
    connection-level failures become CacheError.
    """

    def __init__(self, client: Redis):
        self.client= client

    def get(self, key: str) -> str:
        try:
            value= self.client.get(key)
        except RedisError as e:
            logger.exception(f"Redis GET {key} failed")
            raise CacheError("Failed to read cache", str(e)) from e
        if value is None:
            raise CacheMiss(key)
        return value.decode("utf-8") if isinstance(value, bytes) else value

    def set(self, key: str, value: str, ttl: Optional[int] = None):
        try:
            self.client.set(key, value, ex=ttl or None)
        except RedisError as e:
            logger.exception(f"Redis SET {key} failed")
            raise CacheError("Failed to write cache", str(e)) from e

    def delete(self, key: str):
        try:
            self.client.delete(key)
        except RedisError as e:
            logger.exception(f"Redis DEL {key} failed")
            raise CacheError("Failed to delete cache key", str(e)) from e


redis_client= Redis.from_url(REDIS_URL, decode_responses=True)
