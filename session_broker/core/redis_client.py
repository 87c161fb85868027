"""Redis client configuration and the profile record cache."""

import redis
from pydantic import ValidationError as PydanticValidationError
from structlog import get_logger

from session_broker.config import settings
from session_broker.schemas.users import ProfileRecord

logger = get_logger(__name__)

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Check if Redis connection is healthy."""
    try:
        client = get_redis_client()
        client.ping()
        return True
    except redis.RedisError:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class ProfileCache:
    """
    Read-through cache of profile records keyed by email.

    Cache failures never fail a request: reads degrade to a miss and
    writes are skipped, with a warning logged.
    """

    # Cache TTL in seconds (30 minutes for profile records)
    TTL = 1800
    KEY_PREFIX = "profile:"

    def __init__(self, redis_client: redis.Redis, ttl: int | None = None):
        """Initialize cache with a Redis client."""
        self.redis = redis_client
        self.ttl = ttl or self.TTL

    def _key(self, email: str) -> str:
        return f"{self.KEY_PREFIX}{email.lower()}"

    def get(self, email: str) -> ProfileRecord | None:
        """Return the cached record for ``email``, or None on miss."""
        try:
            value = self.redis.get(self._key(email))
        except redis.RedisError as e:
            logger.warning("profile_cache_read_failed", error=str(e))
            return None

        if not value:
            return None

        try:
            return ProfileRecord.model_validate_json(value)
        except PydanticValidationError:
            # Stale shape from an older release
            self.invalidate(email)
            return None

    def set(self, record: ProfileRecord) -> bool:
        """Store ``record`` under its email."""
        try:
            self.redis.setex(self._key(record.email), self.ttl, record.model_dump_json())
            return True
        except redis.RedisError as e:
            logger.warning("profile_cache_write_failed", error=str(e))
            return False

    def invalidate(self, email: str) -> bool:
        """Drop the cached record for ``email``."""
        try:
            self.redis.delete(self._key(email))
            return True
        except redis.RedisError as e:
            logger.warning("profile_cache_invalidate_failed", error=str(e))
            return False
