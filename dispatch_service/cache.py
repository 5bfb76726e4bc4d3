import json
import logging

from redis import Redis
from redis.exceptions import RedisError

from .config import settings

logger = logging.getLogger("dispatch_service")

CALENDAR_CACHE_KEY = "calendar_events"


def get_cached_calendar(redis_client: Redis | None) -> dict | None:
    if redis_client is None:
        return None
    try:
        cached = redis_client.get(CALENDAR_CACHE_KEY)
    except RedisError as e:
        logger.error(f"Failed to read calendar cache: {e}")
        return None
    if not cached:
        return None
    return json.loads(cached)


def store_calendar(redis_client: Redis | None, payload: dict):
    if redis_client is None:
        return
    try:
        redis_client.set(
            CALENDAR_CACHE_KEY,
            json.dumps(payload, default=str),
            ex=settings.CALENDAR_CACHE_TTL_SECONDS
        )
    except RedisError as e:
        logger.error(f"Failed to write calendar cache: {e}")


def invalidate_calendar(redis_client: Redis | None):
    """
    Drops the cached calendar. Called after every assignment, driver or booking write.
    """
    if redis_client is None:
        return
    try:
        redis_client.delete(CALENDAR_CACHE_KEY)
    except RedisError as e:
        logger.error(f"Failed to invalidate calendar cache: {e}")
