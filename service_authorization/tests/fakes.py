"""
Fakes and factories shared by Authorization Service tests.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from service_authorization.app.rules.models import EconomyBanStatus, RuleType, Signals


STEAM_ID = "76561198006409530"


def make_signals(**overrides: Any) -> Signals:
    """Signals for a clean, established account, with overrides applied."""
    values = dict(
        profile_set_up=True,
        profile_public=True,
        owns_target_app=True,
        total_playtime_minutes=30000,
        recent_playtime_minutes=600,
        vac_ban_count=0,
        game_ban_count=0,
        community_banned=False,
        economy_ban=EconomyBanStatus.NONE,
    )
    values.update(overrides)
    return Signals(**values)


class InMemoryCache:
    """Dict-backed stand-in for RedisCache that records writes."""

    def __init__(self):
        self.decisions: Dict[str, bool] = {}
        self.flags: Dict[Tuple[str, RuleType], Optional[timedelta]] = {}
        self.decision_writes: List[Tuple[str, bool, timedelta]] = []
        self.flag_writes: List[Tuple[str, RuleType, Optional[timedelta]]] = []
        self.started = False

    async def start(self):
        self.started = True

    async def stop(self):
        self.started = False

    async def get_decision(self, account_id: str) -> Optional[bool]:
        return self.decisions.get(account_id)

    async def set_decision(self, account_id: str, authorized: bool, ttl: timedelta) -> bool:
        self.decisions[account_id] = authorized
        self.decision_writes.append((account_id, authorized, ttl))
        return True

    async def has_flag(self, account_id: str, rule_type: RuleType) -> bool:
        return (account_id, RuleType(rule_type)) in self.flags

    async def set_flag(self, account_id: str, rule_type: RuleType, ttl: Optional[timedelta]) -> bool:
        self.flags[(account_id, RuleType(rule_type))] = ttl
        self.flag_writes.append((account_id, RuleType(rule_type), ttl))
        return True

    async def health_check(self) -> bool:
        return True


class RecordingNotifier:
    """Notifier stand-in that records every alert."""

    def __init__(self):
        self.alerts: List[Tuple[str, bool, List[str]]] = []

    async def notify(self, account_id: str, denied: bool, details):
        self.alerts.append((account_id, denied, list(details)))

    async def health_check(self) -> str:
        return "recording"
