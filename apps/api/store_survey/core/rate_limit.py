"""Rate limiting for the public survey endpoints."""

import logging

import redis
from slowapi import Limiter
from slowapi.util import get_remote_address

from store_survey.core.config import settings

logger = logging.getLogger(__name__)

MEMORY_STORAGE = "memory://"


def per_minute(limit: int) -> str:
    return f"{limit}/minute"


def _storage_uri() -> str:
    """Redis when reachable so limits are shared across workers, memory otherwise."""
    if settings.TESTING or not settings.REDIS_URL:
        return MEMORY_STORAGE
    try:
        redis.from_url(settings.REDIS_URL, socket_connect_timeout=1).ping()
    except redis.RedisError as e:
        logger.warning("Redis unavailable for rate limiting, using in-memory: %s", e)
        return MEMORY_STORAGE
    return settings.REDIS_URL


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_storage_uri(),
    default_limits=(
        []
        if settings.TESTING or settings.RATE_LIMIT_API <= 0
        else [per_minute(settings.RATE_LIMIT_API)]
    ),
    enabled=not settings.TESTING,
)
