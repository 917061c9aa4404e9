import json

from loguru import logger
from redis.asyncio import Redis

from scheduling_ms.settings import REDIS_URL

_redis: Redis | None = None
SLOTS_TTL = 60  # 1 minute
CALENDAR_CACHE_SERVE_FEATURE = "calendar-cache-serve"


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis


def _slots_key(event_type_id: int) -> str:
    return f"slots:event-type:{event_type_id}"


async def get_slots_cache(event_type_id: int) -> list | None:
    try:
        data = await get_redis().get(_slots_key(event_type_id))
        return json.loads(data) if data else None
    except Exception:
        logger.warning("Redis get failed — skipping slots cache", exc_info=True)
        return None


async def set_slots_cache(event_type_id: int, slots: list) -> None:
    try:
        await get_redis().setex(_slots_key(event_type_id), SLOTS_TTL, json.dumps(slots))
    except Exception:
        logger.warning("Redis set failed — skipping slots cache", exc_info=True)


async def invalidate_slots_cache(event_type_id: int) -> None:
    try:
        await get_redis().delete(_slots_key(event_type_id))
    except Exception:
        logger.warning("Redis invalidate failed for slots cache", exc_info=True)


class CacheService:
    """Decides whether cached availability may be served for a team."""

    def __init__(self, features_repository):
        self.features_repository = features_repository

    async def get_should_serve_cache(
        self,
        should_serve_cache: bool | None = None,
        team_id: int | None = None,
    ) -> bool:
        if isinstance(should_serve_cache, bool):
            return should_serve_cache
        if team_id is None:
            return False
        return await self.features_repository.check_if_team_has_feature(
            team_id, CALENDAR_CACHE_SERVE_FEATURE
        )
