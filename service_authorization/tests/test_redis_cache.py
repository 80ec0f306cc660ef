"""
Unit tests for the Redis decision and flag cache.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.exceptions

from service_authorization.app.cache.redis_cache import RedisCache
from service_authorization.app.rules.models import RuleType


STEAM_ID = "76561198006409530"


class TestRedisCache:
    """Test cases for RedisCache."""

    @pytest.fixture
    def redis_client(self):
        client = MagicMock()
        client.get = AsyncMock(return_value=None)
        client.set = AsyncMock(return_value=True)
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        return client

    @pytest.fixture
    def cache(self, redis_client):
        cache = RedisCache("redis://localhost:6379/0")
        cache.redis = redis_client
        return cache

    @pytest.mark.asyncio
    async def test_decision_miss(self, cache, redis_client):
        assert await cache.get_decision(STEAM_ID) is None
        redis_client.get.assert_awaited_once_with(f"authorization:decision:{STEAM_ID}")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored,expected", [("true", True), ("false", False)])
    async def test_decision_hit(self, cache, redis_client, stored, expected):
        redis_client.get.return_value = stored

        assert await cache.get_decision(STEAM_ID) is expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored", ["1", '"yes"', "{", "null"])
    async def test_malformed_decision_is_miss(self, cache, redis_client, stored):
        redis_client.get.return_value = stored

        assert await cache.get_decision(STEAM_ID) is None

    @pytest.mark.asyncio
    async def test_set_decision_with_ttl(self, cache, redis_client):
        stored = await cache.set_decision(STEAM_ID, False, timedelta(hours=1))

        assert stored is True
        redis_client.set.assert_awaited_once_with(
            f"authorization:decision:{STEAM_ID}", "false", px=3600000
        )

    @pytest.mark.asyncio
    async def test_set_flag_with_ttl(self, cache, redis_client):
        await cache.set_flag(STEAM_ID, RuleType.VAC_BANS, timedelta(days=1))

        redis_client.set.assert_awaited_once_with(
            f"authorization:flag:{STEAM_ID}:vac-bans", "true", px=86400000
        )

    @pytest.mark.asyncio
    async def test_set_flag_without_expiry(self, cache, redis_client):
        await cache.set_flag(STEAM_ID, RuleType.PROFILE_VISIBILITY, None)

        redis_client.set.assert_awaited_once_with(
            f"authorization:flag:{STEAM_ID}:profile-visibility", "true"
        )

    @pytest.mark.asyncio
    async def test_has_flag(self, cache, redis_client):
        redis_client.get.return_value = "true"

        assert await cache.has_flag(STEAM_ID, RuleType.GAME_BANS) is True
        redis_client.get.assert_awaited_once_with(f"authorization:flag:{STEAM_ID}:game-bans")

    @pytest.mark.asyncio
    async def test_has_flag_ignores_other_values(self, cache, redis_client):
        redis_client.get.return_value = "false"

        assert await cache.has_flag(STEAM_ID, RuleType.GAME_BANS) is False

    @pytest.mark.asyncio
    async def test_read_failure_is_miss(self, cache, redis_client):
        redis_client.get.side_effect = redis.exceptions.ConnectionError("gone")

        assert await cache.get_decision(STEAM_ID) is None
        assert await cache.has_flag(STEAM_ID, RuleType.VAC_BANS) is False

    @pytest.mark.asyncio
    async def test_write_failure_is_dropped(self, cache, redis_client):
        redis_client.set.side_effect = redis.exceptions.TimeoutError("slow")

        assert await cache.set_decision(STEAM_ID, True, timedelta(minutes=5)) is False
        assert await cache.set_flag(STEAM_ID, RuleType.VAC_BANS, None) is False

    @pytest.mark.asyncio
    async def test_not_started(self):
        cache = RedisCache("redis://localhost:6379/0")

        assert await cache.get_decision(STEAM_ID) is None
        assert await cache.set_decision(STEAM_ID, True, timedelta(minutes=5)) is False
        assert await cache.health_check() is False

    @pytest.mark.asyncio
    async def test_health_check(self, cache, redis_client):
        assert await cache.health_check() is True

        redis_client.ping.side_effect = redis.exceptions.ConnectionError("gone")
        assert await cache.health_check() is False

    @pytest.mark.asyncio
    async def test_stop_closes_client(self, cache, redis_client):
        await cache.stop()

        redis_client.aclose.assert_awaited_once()
        assert cache.redis is None
