"""
Rule data models for the Authorization Service.

Rules form a closed tagged union keyed by ``type``; each variant carries
only the fields it needs and knows how to test and describe itself
against a set of collected account signals.
"""

import re
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Annotated, ClassVar, FrozenSet, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Two weeks of minutes; more recent playtime than that is not humanly possible
RECENT_PLAYTIME_CEILING_MINUTES = 14 * 24 * 60

DURATION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*(ms|s|m|h|d|w)$")
DURATION_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}

NEVER = "never"


def parse_duration(value):
    """Convert compact duration strings ("2h", "1w") to timedelta.

    Anything else is passed through for pydantic's own timedelta parsing
    (ISO-8601 strings, numbers of seconds).
    """
    if isinstance(value, str):
        match = DURATION_PATTERN.match(value.strip())
        if match:
            amount, unit = match.groups()
            return float(amount) * DURATION_UNITS[unit]
    return value


def parse_warn_interval(value):
    if isinstance(value, str) and value.strip().lower() == NEVER:
        return NEVER
    return parse_duration(value)


Duration = Annotated[timedelta, BeforeValidator(parse_duration)]
WarnInterval = Annotated[Union[Literal["never"], timedelta], BeforeValidator(parse_warn_interval)]


class RuleType(str, Enum):
    """Signal types a rule can test."""
    PROFILE_SET_UP = "profile-set-up"
    PROFILE_VISIBILITY = "profile-visibility"
    GAME_OWNED = "game-owned"
    RECENT_PLAYTIME = "recent-playtime"
    TOTAL_PLAYTIME = "total-playtime"
    VAC_BANS = "vac-bans"
    GAME_BANS = "game-bans"
    COMMUNITY_BAN = "community-ban"
    ECONOMY_BAN = "economy-ban"


class RuleAction(str, Enum):
    """Fixed authorization outcome applied when a rule triggers."""
    ALLOW = "allow"
    DENY = "deny"


class EconomyBanStatus(str, Enum):
    NONE = "none"
    PROBATION = "probation"
    BANNED = "banned"


class AuthorizationOutcome(str, Enum):
    """The four answers the service can give a caller."""
    AUTHORIZED = "authorized"
    DENIED = "denied"
    INVALID_INPUT = "invalid_input"
    EVALUATION_FAILED = "evaluation_failed"


@dataclass(frozen=True)
class Signals:
    """Normalized facts about one account, collected once per evaluation."""
    profile_set_up: bool
    profile_public: bool
    owns_target_app: bool
    vac_ban_count: int
    game_ban_count: int
    community_banned: bool
    economy_ban: EconomyBanStatus
    # Only present when the target app is owned
    total_playtime_minutes: Optional[int] = None
    recent_playtime_minutes: Optional[int] = None


def format_playtime(minutes: int) -> str:
    """Render minutes as h:mm."""
    hours, remainder = divmod(minutes, 60)
    return f"{hours}:{remainder:02d}"


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


class BaseRule(BaseModel):
    """Fields shared by every rule type."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra="forbid")

    ignore_by_default: bool = False
    action: Optional[RuleAction] = None
    warn_interval: Optional[WarnInterval] = None

    requires_ownership: ClassVar[bool] = False

    @property
    def rule_type(self) -> RuleType:
        return RuleType(self.type)

    @property
    def fixed_outcome(self) -> Optional[bool]:
        if self.action is None:
            return None
        return self.action == RuleAction.ALLOW

    def is_triggered(self, signals: Signals) -> bool:
        raise NotImplementedError

    def describe(self, signals: Signals) -> str:
        raise NotImplementedError


class ProfileSetUpRule(BaseRule):
    type: Literal["profile-set-up"]

    def is_triggered(self, signals: Signals) -> bool:
        return not signals.profile_set_up

    def describe(self, signals: Signals) -> str:
        return "has not set up a community profile"


class ProfileVisibilityRule(BaseRule):
    type: Literal["profile-visibility"]

    def is_triggered(self, signals: Signals) -> bool:
        return not signals.profile_public

    def describe(self, signals: Signals) -> str:
        return "has a profile that is not public"


class GameOwnedRule(BaseRule):
    type: Literal["game-owned"]

    def is_triggered(self, signals: Signals) -> bool:
        return not signals.owns_target_app

    def describe(self, signals: Signals) -> str:
        return "does not own the game"


class RecentPlaytimeRule(BaseRule):
    type: Literal["recent-playtime"]

    requires_ownership: ClassVar[bool] = True

    def is_triggered(self, signals: Signals) -> bool:
        return (signals.recent_playtime_minutes or 0) > RECENT_PLAYTIME_CEILING_MINUTES

    def describe(self, signals: Signals) -> str:
        return f"has an impossible {format_playtime(signals.recent_playtime_minutes or 0)} in the past two weeks"


class TotalPlaytimeRule(BaseRule):
    type: Literal["total-playtime"]
    threshold: Duration

    requires_ownership: ClassVar[bool] = True

    @property
    def threshold_minutes(self) -> int:
        return int(self.threshold.total_seconds() // 60)

    def is_triggered(self, signals: Signals) -> bool:
        return (signals.total_playtime_minutes or 0) < self.threshold_minutes

    def describe(self, signals: Signals) -> str:
        return f"has only {format_playtime(signals.total_playtime_minutes or 0)} on record"


class VacBansRule(BaseRule):
    type: Literal["vac-bans"]
    threshold: int = Field(default=0, ge=0)

    def is_triggered(self, signals: Signals) -> bool:
        return signals.vac_ban_count > self.threshold

    def describe(self, signals: Signals) -> str:
        return f"{_plural(signals.vac_ban_count, 'VAC ban')} on record"


class GameBansRule(BaseRule):
    type: Literal["game-bans"]
    threshold: int = Field(default=0, ge=0)

    def is_triggered(self, signals: Signals) -> bool:
        return signals.game_ban_count > self.threshold

    def describe(self, signals: Signals) -> str:
        return f"{_plural(signals.game_ban_count, 'game ban')} on record"


class CommunityBanRule(BaseRule):
    type: Literal["community-ban"]

    def is_triggered(self, signals: Signals) -> bool:
        return signals.community_banned

    def describe(self, signals: Signals) -> str:
        return "is banned from Steam Community"


class EconomyBanRule(BaseRule):
    type: Literal["economy-ban"]

    def is_triggered(self, signals: Signals) -> bool:
        return signals.economy_ban != EconomyBanStatus.NONE

    def describe(self, signals: Signals) -> str:
        return f"current trade status is {signals.economy_ban.value}"


Rule = Annotated[
    Union[
        ProfileSetUpRule,
        ProfileVisibilityRule,
        GameOwnedRule,
        RecentPlaytimeRule,
        TotalPlaytimeRule,
        VacBansRule,
        GameBansRule,
        CommunityBanRule,
        EconomyBanRule,
    ],
    Field(discriminator="type"),
]


class UserOverride(BaseModel):
    """Per-account exceptions to the configured rules."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra="forbid")

    perform_checks: bool = True
    ignore_checks: FrozenSet[RuleType] = frozenset()
    force_checks: FrozenSet[RuleType] = frozenset()
    authorized: Optional[bool] = None


DEFAULT_OVERRIDE = UserOverride()


@dataclass(frozen=True)
class Flag:
    """Result of evaluating one applicable rule."""
    rule: BaseRule
    triggered: bool
    detail: Optional[str] = None

    @property
    def rule_type(self) -> RuleType:
        return self.rule.rule_type


@dataclass
class Decision:
    """Final outcome of one evaluation."""
    authorized: bool
    details: List[str] = field(default_factory=list)
    cache_hit: bool = False


@dataclass
class AuthorizationResult:
    """What the service answers for one query."""
    outcome: AuthorizationOutcome
    account_id: Optional[str] = None
    decision: Optional[Decision] = None
    evaluation_time_ms: float = 0.0
