"""
Mock Steam Web API serving the three account endpoints used by the
Authorization Service.
"""

import json
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query

from shared.logging import get_logger


class MockSteamServer:
    """Mock Steam Web API implementation."""

    def __init__(self, port: int = 8090, api_key: str = "mock-api-key"):
        self.port = port
        self.api_key = api_key
        self.logger = get_logger("mock.steam")
        self.app = FastAPI(title="Mock Steam Web API", version="1.0.0")

        # Canned accounts keyed by steam64 id
        self.accounts: Dict[str, Dict[str, Any]] = {
            # Clean veteran with a public profile
            "76561197960287930": {
                "profilestate": 1,
                "communityvisibilitystate": 3,
                "games": {440: {"playtime_forever": 52000, "playtime_2weeks": 600}},
                "bans": {}
            },
            # VAC banned
            "76561198006409530": {
                "profilestate": 1,
                "communityvisibilitystate": 3,
                "games": {440: {"playtime_forever": 9000}},
                "bans": {"VACBanned": True, "NumberOfVACBans": 1, "DaysSinceLastBan": 120}
            },
            # New account, one hour played
            "76561198000000002": {
                "profilestate": 1,
                "communityvisibilitystate": 3,
                "games": {440: {"playtime_forever": 60, "playtime_2weeks": 60}},
                "bans": {}
            },
            # Private profile, game details hidden
            "76561198000000004": {
                "profilestate": 1,
                "communityvisibilitystate": 1,
                "games": None,
                "bans": {"EconomyBan": "probation"}
            },
        }

        self._setup_routes()

    def add_account(self, steam_id: str, **account: Any):
        """Register or replace a canned account."""
        self.accounts[steam_id] = {
            "profilestate": account.get("profilestate", 1),
            "communityvisibilitystate": account.get("communityvisibilitystate", 3),
            "games": account.get("games", {}),
            "bans": account.get("bans", {}),
        }

    def _check_key(self, key: Optional[str]):
        if key != self.api_key:
            raise HTTPException(status_code=403, detail="Forbidden")

    def _ban_record(self, steam_id: str) -> Dict[str, Any]:
        record = {
            "SteamId": steam_id,
            "CommunityBanned": False,
            "VACBanned": False,
            "NumberOfVACBans": 0,
            "DaysSinceLastBan": 0,
            "NumberOfGameBans": 0,
            "EconomyBan": "none"
        }
        record.update(self.accounts[steam_id]["bans"])
        return record

    def _owned_games(self, steam_id: str, app_ids: List[int]) -> Dict[str, Any]:
        games = self.accounts.get(steam_id, {}).get("games")
        if games is None:
            return {}

        owned = [
            {"appid": app_id, **games[app_id]}
            for app_id in app_ids
            if app_id in games
        ]
        if not owned:
            return {"game_count": 0}
        return {"game_count": len(owned), "games": owned}

    def _setup_routes(self):
        """Set up mock Steam routes."""

        @self.app.get("/ISteamUser/GetPlayerSummaries/v0002/")
        async def player_summaries(key: Optional[str] = Query(None), steamids: str = Query("")):
            self._check_key(key)
            players = [
                {
                    "steamid": steam_id,
                    "profilestate": self.accounts[steam_id]["profilestate"],
                    "communityvisibilitystate": self.accounts[steam_id]["communityvisibilitystate"],
                    "personaname": f"player-{steam_id[-4:]}",
                    "profileurl": f"https://steamcommunity.com/profiles/{steam_id}/"
                }
                for steam_id in steamids.split(",")
                if steam_id in self.accounts
            ]
            return {"response": {"players": players}}

        @self.app.get("/IPlayerService/GetOwnedGames/v0001/")
        async def owned_games(key: Optional[str] = Query(None), input_json: str = Query("{}")):
            self._check_key(key)
            try:
                params = json.loads(input_json)
            except ValueError:
                raise HTTPException(status_code=400, detail="Bad Request")

            steam_id = str(params.get("steamid", ""))
            return {"response": self._owned_games(steam_id, params.get("appids_filter", []))}

        @self.app.get("/ISteamUser/GetPlayerBans/v1/")
        async def player_bans(key: Optional[str] = Query(None), steamids: str = Query("")):
            self._check_key(key)
            return {
                "players": [
                    self._ban_record(steam_id)
                    for steam_id in steamids.split(",")
                    if steam_id in self.accounts
                ]
            }

    def run(self):
        """Run the mock server."""
        import uvicorn
        self.logger.info("Starting mock Steam Web API", port=self.port)
        uvicorn.run(self.app, host="0.0.0.0", port=self.port)


def create_app():
    """Create mock Steam application."""
    return MockSteamServer().app


if __name__ == "__main__":
    MockSteamServer().run()
