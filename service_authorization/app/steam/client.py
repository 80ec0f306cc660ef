"""
Steam Web API client.
"""

import json
from typing import Any, Dict, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.errors import SignalCollectionError
from shared.logging import get_logger


PLAYER_SUMMARIES_PATH = "/ISteamUser/GetPlayerSummaries/v0002/"
OWNED_GAMES_PATH = "/IPlayerService/GetOwnedGames/v0001/"
PLAYER_BANS_PATH = "/ISteamUser/GetPlayerBans/v1/"


class SteamClient:
    """Thin async wrapper over the three Steam Web API calls the service needs."""

    def __init__(self,
                 api_url: str,
                 api_key: str,
                 timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger("authorization.steam_client")
        self.circuit_breaker = CircuitBreaker(
            "steam_api",
            failure_threshold=5,
            recovery_timeout=30.0,
            failure_exceptions=(httpx.HTTPError, ValueError)
        )

    async def get_player_summary(self, account_id: str) -> Dict[str, Any]:
        return await self._get(PLAYER_SUMMARIES_PATH, {"steamids": account_id})

    async def get_owned_games(self, account_id: str, app_id: int) -> Dict[str, Any]:
        return await self._get(OWNED_GAMES_PATH, {
            "input_json": json.dumps({
                "steamid": account_id,
                "include_appinfo": False,
                "include_played_free_games": True,
                "appids_filter": [app_id]
            })
        })

    async def get_player_bans(self, account_id: str) -> Dict[str, Any]:
        return await self._get(PLAYER_BANS_PATH, {"steamids": account_id})

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET a Web API method and return its decoded JSON body."""

        async def _request() -> Dict[str, Any]:
            async with httpx.AsyncClient(
                base_url=self.api_url,
                timeout=self.timeout,
                transport=self.transport
            ) as client:
                response = await client.get(path, params={"key": self.api_key, "format": "json", **params})
                response.raise_for_status()
                return response.json()

        try:
            body = await self.circuit_breaker.call(_request)
        except CircuitBreakerOpenException as e:
            raise SignalCollectionError("Steam Web API circuit open", details={"path": path, "error": str(e)})
        except httpx.HTTPStatusError as e:
            self.logger.error("Steam Web API error status", path=path, status_code=e.response.status_code)
            raise SignalCollectionError(
                "Steam Web API returned an error",
                details={"path": path, "status_code": e.response.status_code}
            )
        except httpx.HTTPError as e:
            self.logger.error("Steam Web API unavailable", path=path, error=str(e))
            raise SignalCollectionError("Steam Web API unavailable", details={"path": path, "http_error": str(e)})
        except ValueError as e:
            self.logger.error("Steam Web API returned invalid JSON", path=path, error=str(e))
            raise SignalCollectionError("Steam Web API returned invalid JSON", details={"path": path})

        if not isinstance(body, dict):
            raise SignalCollectionError("Steam Web API returned an unexpected body", details={"path": path})

        return body

    async def health_check(self) -> str:
        return "error" if self.circuit_breaker.is_open() else "ok"
