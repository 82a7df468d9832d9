import logging
from redis import Redis

logger = logging.getLogger(__name__)


def build_redis(redis_url: str | None) -> Redis | None:
    """Redis client from REDIS_URL, or None when Redis is not configured."""
    if not redis_url:
        logger.info("REDIS_URL not set: in-process generation locks, direct webhook notifications")
        return None
    return Redis.from_url(redis_url, decode_responses=True, socket_timeout=2.0)
