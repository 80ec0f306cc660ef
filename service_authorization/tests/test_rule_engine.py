"""
Unit tests for the Authorization Rule Engine.
"""

import pytest
from pydantic import TypeAdapter

from service_authorization.app.rules.engine import RuleEngine
from service_authorization.app.rules.models import EconomyBanStatus, Rule, RuleType, UserOverride
from service_authorization.tests.fakes import make_signals


rule_adapter = TypeAdapter(Rule)


def build_rules(*rule_data):
    return [rule_adapter.validate_python(data) for data in rule_data]


class TestRuleEngine:
    """Test cases for RuleEngine."""

    @pytest.fixture
    def rules(self):
        return build_rules(
            {"type": "vac-bans", "action": "deny"},
            {"type": "game-owned", "action": "deny"},
            {"type": "total-playtime", "threshold": "2h", "warnInterval": "1w"},
            {"type": "recent-playtime"},
            {"type": "profile-visibility", "ignoreByDefault": True},
        )

    @pytest.fixture
    def rule_engine(self, rules):
        return RuleEngine(rules)

    def test_clean_account_triggers_nothing(self, rule_engine):
        """Test no flag triggers for a clean account."""
        flags = rule_engine.evaluate(make_signals(), UserOverride())

        assert [flag.triggered for flag in flags] == [False, False, False, False]
        assert rule_engine.aggregate(flags, UserOverride()) is True

    def test_flags_in_declaration_order(self, rule_engine):
        """Test flags come back in configured order, ignored rules omitted."""
        flags = rule_engine.evaluate(make_signals(), UserOverride())

        assert [flag.rule_type for flag in flags] == [
            RuleType.VAC_BANS, RuleType.GAME_OWNED, RuleType.TOTAL_PLAYTIME, RuleType.RECENT_PLAYTIME
        ]

    def test_ignored_by_default_rule_skipped(self, rule_engine):
        """Test an ignore-by-default rule produces no flag even when its condition holds."""
        flags = rule_engine.evaluate(make_signals(profile_public=False), UserOverride())

        assert RuleType.PROFILE_VISIBILITY not in [flag.rule_type for flag in flags]

    def test_force_checks_enables_ignored_rule(self, rule_engine):
        """Test forceChecks brings an ignore-by-default rule back."""
        override = UserOverride(force_checks=frozenset({RuleType.PROFILE_VISIBILITY}))

        flags = rule_engine.evaluate(make_signals(profile_public=False), override)
        visibility = [flag for flag in flags if flag.rule_type == RuleType.PROFILE_VISIBILITY]

        assert len(visibility) == 1
        assert visibility[0].triggered is True
        assert visibility[0].detail == "has a profile that is not public"

    def test_ignore_checks_skips_rule(self, rule_engine):
        """Test ignoreChecks removes a denying rule."""
        override = UserOverride(ignore_checks=frozenset({RuleType.VAC_BANS}))

        flags = rule_engine.evaluate(make_signals(vac_ban_count=2), override)

        assert RuleType.VAC_BANS not in [flag.rule_type for flag in flags]
        assert rule_engine.aggregate(flags, override) is True

    def test_ignore_checks_does_not_affect_ignored_by_default(self, rule_engine):
        """Test forceChecks alone governs ignore-by-default rules."""
        override = UserOverride(
            ignore_checks=frozenset({RuleType.PROFILE_VISIBILITY}),
            force_checks=frozenset({RuleType.PROFILE_VISIBILITY})
        )

        flags = rule_engine.evaluate(make_signals(profile_public=False), override)

        assert RuleType.PROFILE_VISIBILITY in [flag.rule_type for flag in flags]

    def test_vac_ban_denies(self, rule_engine):
        """Test a denying rule sets the decision to denied."""
        flags = rule_engine.evaluate(make_signals(vac_ban_count=1), UserOverride())

        assert flags[0].triggered is True
        assert flags[0].detail == "1 VAC ban on record"
        assert rule_engine.aggregate(flags, UserOverride()) is False

    def test_flag_only_rule_does_not_deny(self, rule_engine):
        """Test a triggered rule without an action leaves the decision alone."""
        flags = rule_engine.evaluate(make_signals(total_playtime_minutes=60), UserOverride())
        playtime = [flag for flag in flags if flag.rule_type == RuleType.TOTAL_PLAYTIME][0]

        assert playtime.triggered is True
        assert playtime.detail == "has only 1:00 on record"
        assert rule_engine.aggregate(flags, UserOverride()) is True

    def test_unowned_game_gates_playtime_rules(self, rule_engine):
        """Test playtime rules never trigger when the game is not owned."""
        signals = make_signals(owns_target_app=False, total_playtime_minutes=None, recent_playtime_minutes=None)

        flags = {flag.rule_type: flag for flag in rule_engine.evaluate(signals, UserOverride())}

        assert flags[RuleType.GAME_OWNED].triggered is True
        assert flags[RuleType.TOTAL_PLAYTIME].triggered is False
        assert flags[RuleType.RECENT_PLAYTIME].triggered is False

    def test_no_signals_triggers_nothing(self, rule_engine):
        """Test disabled checks leave every rule untriggered."""
        override = UserOverride(perform_checks=False)

        flags = rule_engine.evaluate(None, override)

        assert flags
        assert not any(flag.triggered for flag in flags)
        assert rule_engine.aggregate(flags, override) is True

    def test_last_fixed_outcome_wins(self):
        """Test later-declared fixed outcomes override earlier ones."""
        engine = RuleEngine(build_rules(
            {"type": "vac-bans", "action": "deny"},
            {"type": "economy-ban", "action": "allow"},
        ))
        signals = make_signals(vac_ban_count=1, economy_ban=EconomyBanStatus.PROBATION)

        assert engine.aggregate(engine.evaluate(signals, UserOverride()), UserOverride()) is True

        reversed_engine = RuleEngine(build_rules(
            {"type": "economy-ban", "action": "allow"},
            {"type": "vac-bans", "action": "deny"},
        ))

        assert reversed_engine.aggregate(reversed_engine.evaluate(signals, UserOverride()), UserOverride()) is False

    def test_untriggered_fixed_outcome_ignored(self):
        """Test only triggered rules apply their outcome."""
        engine = RuleEngine(build_rules(
            {"type": "vac-bans", "action": "deny"},
            {"type": "economy-ban", "action": "allow"},
        ))

        flags = engine.evaluate(make_signals(vac_ban_count=1), UserOverride())

        assert engine.aggregate(flags, UserOverride()) is False

    @pytest.mark.parametrize("authorized", [True, False])
    def test_override_authorized_wins(self, rule_engine, authorized):
        """Test an explicit authorized override replaces the aggregate."""
        override = UserOverride(authorized=authorized)

        denied_flags = rule_engine.evaluate(make_signals(vac_ban_count=3), override)
        clean_flags = rule_engine.evaluate(make_signals(), override)

        assert rule_engine.aggregate(denied_flags, override) is authorized
        assert rule_engine.aggregate(clean_flags, override) is authorized

    def test_engine_stats(self, rule_engine):
        stats = rule_engine.get_engine_stats()

        assert stats["total_rules"] == 5
        assert stats["ignored_by_default"] == 1
        assert stats["with_fixed_outcome"] == 2
        assert stats["rule_types"][0] == "vac-bans"
