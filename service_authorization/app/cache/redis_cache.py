"""
Redis caching layer for the Authorization Service.
"""

import json
from datetime import timedelta
from typing import Any, Optional

import redis.asyncio as redis

from shared.errors import CacheUnavailableError
from shared.logging import get_logger

from ..rules.models import RuleType


class RedisCache:
    """Decision and alert-flag cache.

    Reads that fail for any reason are reported as misses and writes that
    fail are dropped, so the cache can never fail an evaluation.
    """

    DECISION_PREFIX = "authorization:decision:"
    FLAG_PREFIX = "authorization:flag:"

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.logger = get_logger("authorization.cache.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Start the Redis cache."""
        self.redis = redis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30
        )

        try:
            await self.redis.ping()
            self.logger.info("Redis cache started")
        except Exception as e:
            # Keep the client; it reconnects on the next command
            self.logger.warning("Redis unavailable at startup", error=str(e))

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    async def get_decision(self, account_id: str) -> Optional[bool]:
        """Return the cached decision, or None on miss."""
        value = await self._get(self._decision_key(account_id))
        if value is None:
            return None

        if not isinstance(value, bool):
            self.logger.warning("Malformed cached decision", account_id=account_id)
            return None

        return value

    async def set_decision(self, account_id: str, authorized: bool, ttl: timedelta) -> bool:
        """Cache a decision for ttl."""
        return await self._set(self._decision_key(account_id), authorized, ttl)

    async def has_flag(self, account_id: str, rule_type: RuleType) -> bool:
        """Whether an alert for this rule was already raised within its warn interval."""
        return await self._get(self._flag_key(account_id, rule_type)) is True

    async def set_flag(self, account_id: str, rule_type: RuleType, ttl: Optional[timedelta]) -> bool:
        """Mark a rule as alerted; ttl None means the flag never expires."""
        return await self._set(self._flag_key(account_id, rule_type), True, ttl)

    async def _get(self, key: str) -> Any:
        try:
            cached_data = await self._client().get(key)
        except Exception as e:
            self.logger.error("Error reading cache", key=key, error=str(e))
            return None

        if cached_data is None:
            return None

        try:
            return json.loads(cached_data)
        except ValueError:
            self.logger.warning("Undecodable cache entry", key=key)
            return None

    async def _set(self, key: str, value: Any, ttl: Optional[timedelta]) -> bool:
        try:
            if ttl is None:
                await self._client().set(key, json.dumps(value))
            else:
                await self._client().set(key, json.dumps(value), px=max(1, int(ttl.total_seconds() * 1000)))
        except Exception as e:
            self.logger.error("Error writing cache", key=key, error=str(e))
            return False

        self.logger.debug("Cache written", key=key, ttl_seconds=ttl.total_seconds() if ttl else None)
        return True

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise CacheUnavailableError("Redis cache not started")
        return self.redis

    def _decision_key(self, account_id: str) -> str:
        return f"{self.DECISION_PREFIX}{account_id}"

    def _flag_key(self, account_id: str, rule_type: RuleType) -> str:
        return f"{self.FLAG_PREFIX}{account_id}:{RuleType(rule_type).value}"

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            return bool(await self._client().ping())
        except Exception:
            return False
