"""
Redis cache utility for quiz results
"""
import redis
import json
import logging
from typing import Optional, Any

logger = logging.getLogger(__name__)


class CacheService:
    """
    Redis-based cache for the results of finished quiz sessions

    Results of a COMPLETED or EXPIRED session never change, so they can be
    cached without invalidation. When Redis is unreachable the service stays
    usable and every call is a miss.
    """

    def __init__(self, redis_url: Optional[str] = None, default_ttl: int = 3600, enabled: bool = True):
        self.default_ttl = default_ttl
        self.redis_client = None
        if not enabled or not redis_url:
            logger.info("Results cache disabled")
            return

        try:
            self.redis_client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    @staticmethod
    def results_key(session_id: str) -> str:
        """
        Cache key for the results view of a session

        Args:
            session_id: Quiz session id

        Returns:
            Cache key string
        """
        return f"quiz:results:{session_id}"

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.info(f"Cache hit: {key}")
                return json.loads(value)
            logger.info(f"Cache miss: {key}")
            return None
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds (defaults to the service TTL)

        Returns:
            Success status
        """
        if not self.redis_client:
            return False

        try:
            ttl = ttl or self.default_ttl
            self.redis_client.setex(key, ttl, json.dumps(value))
            logger.info(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except (redis.RedisError, TypeError) as e:
            logger.error(f"Cache set error: {str(e)}")
            return False
