import logging
from fastapi import Request
import redis.exceptions

from shorturl.core.config import settings

logger = logging.getLogger(__name__)
RATE_LIMIT_KEY_PREFIX = "rate_limit:"
UNLIMITED_PATHS = ("/health",)


def get_rate_limit_config():
    return settings.RATE_LIMIT_LIMIT, settings.RATE_LIMIT_WINDOW


def get_client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def is_rate_limited_path(path: str) -> bool:
    return settings.RATE_LIMIT_ENABLED and path not in UNLIMITED_PATHS


def check_rate_limit(redis_client, key: str, limit: int, window: int):
    """
    Fixed window counter. Returns True when allowed, False when over the limit
    and None when Redis is unreachable (fail open).
    """
    try:
        redis_client.ping()
        current = redis_client.get(key)
        if current and int(current) >= limit:
            return False  # Limit exceeded

        pipe = redis_client.pipeline()
        pipe.incr(key, 1)
        if not current:
            pipe.expire(key, window)
        pipe.execute()
        return True
    except redis.exceptions.RedisError:
        logger.warning("Redis connection failed. Rate limiting skipped (fail open).")
        return None
