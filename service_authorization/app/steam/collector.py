"""
Signal collection: Steam Web API responses to normalized account signals.
"""

import asyncio
from typing import Any, Dict, Optional, Tuple

from shared.errors import SignalCollectionError
from shared.logging import get_logger

from ..rules.models import EconomyBanStatus, Signals
from .client import SteamClient


# communityvisibilitystate value for a public profile
VISIBILITY_PUBLIC = 3


class SignalCollector:
    """Collects and validates the account signals for one evaluation."""

    def __init__(self, client: SteamClient, target_app_id: int):
        self.client = client
        self.target_app_id = target_app_id
        self.logger = get_logger("authorization.signal_collector")

    async def collect(self, account_id: str) -> Signals:
        """Fetch all three Steam responses and map them to Signals.

        Any unusable response, or one describing a different account,
        fails the whole collection.
        """
        summary_body, games_body, bans_body = await asyncio.gather(
            self.client.get_player_summary(account_id),
            self.client.get_owned_games(account_id, self.target_app_id),
            self.client.get_player_bans(account_id),
        )

        profile_set_up, profile_public = self._parse_summary(account_id, summary_body)
        owns_target_app, total_playtime, recent_playtime = self._parse_owned_games(games_body)
        vac_bans, game_bans, community_banned, economy_ban = self._parse_bans(account_id, bans_body)

        signals = Signals(
            profile_set_up=profile_set_up,
            profile_public=profile_public,
            owns_target_app=owns_target_app,
            total_playtime_minutes=total_playtime,
            recent_playtime_minutes=recent_playtime,
            vac_ban_count=vac_bans,
            game_ban_count=game_bans,
            community_banned=community_banned,
            economy_ban=economy_ban,
        )
        self.logger.debug("Signals collected", account_id=account_id, signals=signals)
        return signals

    def _parse_summary(self, account_id: str, body: Dict[str, Any]) -> Tuple[bool, bool]:
        player = _first_record(body.get("response"), "players")
        if player is None:
            raise SignalCollectionError("No player summary returned", details={"account_id": account_id})

        if str(player.get("steamid")) != account_id:
            raise SignalCollectionError(
                "Player summary is for a different account",
                details={"account_id": account_id, "returned": player.get("steamid")}
            )

        return player.get("profilestate") == 1, player.get("communityvisibilitystate") == VISIBILITY_PUBLIC

    def _parse_owned_games(self, body: Dict[str, Any]) -> Tuple[bool, Optional[int], Optional[int]]:
        response = body.get("response")
        if not isinstance(response, dict):
            raise SignalCollectionError("Owned games response missing")

        # Private game details and unowned games both come back without a games list
        games = response.get("games")
        if not games:
            return False, None, None

        if not isinstance(games, list) or not isinstance(games[0], dict):
            raise SignalCollectionError("Owned games response malformed")

        game = games[0]
        if game.get("appid") != self.target_app_id:
            raise SignalCollectionError(
                "Owned games response is for a different app",
                details={"app_id": self.target_app_id, "returned": game.get("appid")}
            )

        total = game.get("playtime_forever")
        recent = game.get("playtime_2weeks", 0)
        if not _is_count(total) or not _is_count(recent):
            raise SignalCollectionError("Owned games playtime malformed", details={"game": game})

        return True, total, recent

    def _parse_bans(self, account_id: str, body: Dict[str, Any]) -> Tuple[int, int, bool, EconomyBanStatus]:
        record = _first_record(body, "players")
        if record is None:
            raise SignalCollectionError("No ban record returned", details={"account_id": account_id})

        if str(record.get("SteamId")) != account_id:
            raise SignalCollectionError(
                "Ban record is for a different account",
                details={"account_id": account_id, "returned": record.get("SteamId")}
            )

        vac_bans = record.get("NumberOfVACBans", 0)
        game_bans = record.get("NumberOfGameBans", 0)
        if not _is_count(vac_bans) or not _is_count(game_bans):
            raise SignalCollectionError("Ban counts malformed", details={"record": record})

        # Older responses only carry the VACBanned flag
        if record.get("VACBanned") and vac_bans == 0:
            vac_bans = 1

        try:
            economy_ban = EconomyBanStatus(record.get("EconomyBan", "none"))
        except ValueError:
            raise SignalCollectionError("Unknown economy ban status", details={"status": record.get("EconomyBan")})

        return vac_bans, game_bans, bool(record.get("CommunityBanned")), economy_ban


def _first_record(container: Any, key: str) -> Optional[Dict[str, Any]]:
    if not isinstance(container, dict):
        return None
    records = container.get(key)
    if not isinstance(records, list) or not records or not isinstance(records[0], dict):
        return None
    return records[0]


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0
