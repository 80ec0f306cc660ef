"""
Authorization service for Open Authorization.
"""

from typing import Optional

from fastapi import Query
from fastapi.responses import PlainTextResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig

from .alerts.notifier import create_notifier
from .authorizer import Authorizer
from .cache.redis_cache import RedisCache
from .rules.models import AuthorizationOutcome
from .rules.policy import AuthorizationPolicy, load_policy
from .steam.client import SteamClient
from .steam.collector import SignalCollector


OUTCOME_STATUS = {
    AuthorizationOutcome.AUTHORIZED: (200, "OK"),
    AuthorizationOutcome.DENIED: (403, "Forbidden"),
    AuthorizationOutcome.INVALID_INPUT: (403, "Forbidden"),
    AuthorizationOutcome.EVALUATION_FAILED: (500, "Internal Server Error"),
}


class AuthorizationService(BaseService):
    """Authorization service implementation."""

    def __init__(self,
                 config: Optional[ServiceConfig] = None,
                 policy: Optional[AuthorizationPolicy] = None,
                 cache: Optional[RedisCache] = None,
                 steam_client: Optional[SteamClient] = None,
                 notifier=None):
        super().__init__("authorization", 8013, config)

        self.policy = policy or load_policy(self.config.policy_file)
        self.cache = cache or RedisCache(self.config.redis_url)
        self.steam_client = steam_client or SteamClient(
            self.config.steam_api_url,
            self.config.steam_api_key,
            timeout=self.config.steam_api_timeout
        )
        self.notifier = notifier or create_notifier(
            self.config.slack_webhook_url,
            self.config.slack_channel,
            self.policy.slack_message_defaults,
            self.metrics
        )
        self.authorizer = Authorizer(
            self.policy,
            self.cache,
            SignalCollector(self.steam_client, self.policy.target_app_id),
            self.notifier,
            self.metrics
        )

        self._setup_authorization_routes()

    def _setup_authorization_routes(self):
        """Set up authorization-specific routes."""

        @self.app.get("/", response_class=PlainTextResponse)
        async def authorize(user: Optional[str] = Query(None, description="Steam account identifier")):
            """Answer whether the given account may use the application."""
            result = await self.authorizer.authorize(user)
            status_code, body = OUTCOME_STATUS[result.outcome]
            return PlainTextResponse(body, status_code=status_code)

        @self.app.get("/authorization/stats")
        async def get_stats():
            """Get authorization service statistics."""
            return {
                "engine": self.authorizer.engine.get_engine_stats(),
                "overrides": len(self.policy.overrides),
                "decision_cache_seconds": (
                    self.policy.decision_ttl.total_seconds() if self.policy.decision_ttl else None
                ),
                "steam_api": self.steam_client.circuit_breaker.get_state()
            }

    async def _check_dependencies(self):
        """Check authorization service dependencies."""
        dependencies = {}

        try:
            dependencies["redis"] = "ok" if await self.cache.health_check() else "error"
        except Exception:
            dependencies["redis"] = "error"

        steam_status = await self.steam_client.health_check()
        dependencies["steam_api"] = steam_status
        self.metrics.set_gauge("steam_api_circuit_open", 1 if steam_status == "error" else 0)

        dependencies["alerts"] = await self.notifier.health_check()

        return dependencies

    async def start(self):
        """Start authorization service components."""
        await self.cache.start()
        self.logger.info(
            "Authorization service started",
            rules=len(self.policy.rules),
            overrides=len(self.policy.overrides)
        )

    async def stop(self):
        """Stop authorization service components."""
        await self.cache.stop()
        self.logger.info("Authorization service stopped")


def create_app():
    """Create authorization service application."""
    service = AuthorizationService()
    return service.app


if __name__ == "__main__":
    service = AuthorizationService()
    service.run()
