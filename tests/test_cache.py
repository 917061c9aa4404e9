"""Tests for the Redis slots cache helpers and CacheService."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

from scheduling_ms.cache import (
    CALENDAR_CACHE_SERVE_FEATURE,
    SLOTS_TTL,
    CacheService,
    get_slots_cache,
    invalidate_slots_cache,
    set_slots_cache,
)

from .factories import EVENT_TYPE_ID, TEAM_ID

REDIS_PATH = "scheduling_ms.cache.get_redis"
KEY = f"slots:event-type:{EVENT_TYPE_ID}"
SLOTS = [{"start_time": "2026-06-01T10:00:00Z", "end_time": "2026-06-01T10:30:00Z"}]


def _redis(**methods) -> MagicMock:
    redis = MagicMock()
    for name, value in methods.items():
        setattr(redis, name, value)
    return redis


class TestSlotsCache:
    def test_get_hit(self):
        redis = _redis(get=AsyncMock(return_value=json.dumps(SLOTS)))
        with patch(REDIS_PATH, return_value=redis):
            assert asyncio.run(get_slots_cache(EVENT_TYPE_ID)) == SLOTS
        redis.get.assert_awaited_once_with(KEY)

    def test_get_miss(self):
        redis = _redis(get=AsyncMock(return_value=None))
        with patch(REDIS_PATH, return_value=redis):
            assert asyncio.run(get_slots_cache(EVENT_TYPE_ID)) is None

    def test_set_uses_ttl(self):
        redis = _redis(setex=AsyncMock())
        with patch(REDIS_PATH, return_value=redis):
            asyncio.run(set_slots_cache(EVENT_TYPE_ID, SLOTS))
        redis.setex.assert_awaited_once_with(KEY, SLOTS_TTL, json.dumps(SLOTS))

    def test_invalidate_deletes_key(self):
        redis = _redis(delete=AsyncMock())
        with patch(REDIS_PATH, return_value=redis):
            asyncio.run(invalidate_slots_cache(EVENT_TYPE_ID))
        redis.delete.assert_awaited_once_with(KEY)

    def test_redis_outage_degrades_gracefully(self):
        error = ConnectionError("redis down")
        redis = _redis(
            get=AsyncMock(side_effect=error),
            setex=AsyncMock(side_effect=error),
            delete=AsyncMock(side_effect=error),
        )
        with patch(REDIS_PATH, return_value=redis):
            assert asyncio.run(get_slots_cache(EVENT_TYPE_ID)) is None
            asyncio.run(set_slots_cache(EVENT_TYPE_ID, SLOTS))
            asyncio.run(invalidate_slots_cache(EVENT_TYPE_ID))


class TestCacheService:
    def _service(self, team_has_feature: bool = False) -> CacheService:
        repo = MagicMock()
        repo.check_if_team_has_feature = AsyncMock(return_value=team_has_feature)
        return CacheService(features_repository=repo)

    def test_explicit_flag_wins(self):
        service = self._service(team_has_feature=False)
        assert asyncio.run(service.get_should_serve_cache(True, TEAM_ID)) is True
        assert asyncio.run(service.get_should_serve_cache(False, TEAM_ID)) is False
        service.features_repository.check_if_team_has_feature.assert_not_awaited()

    def test_without_team_is_false(self):
        service = self._service(team_has_feature=True)
        assert asyncio.run(service.get_should_serve_cache()) is False
        service.features_repository.check_if_team_has_feature.assert_not_awaited()

    def test_team_feature_decides(self):
        service = self._service(team_has_feature=True)
        assert asyncio.run(service.get_should_serve_cache(team_id=TEAM_ID)) is True
        service.features_repository.check_if_team_has_feature.assert_awaited_once_with(
            TEAM_ID, CALENDAR_CACHE_SERVE_FEATURE
        )

    def test_team_without_feature(self):
        service = self._service(team_has_feature=False)
        assert asyncio.run(service.get_should_serve_cache(team_id=TEAM_ID)) is False
