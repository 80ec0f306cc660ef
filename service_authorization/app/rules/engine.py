"""
Rule evaluation engine for the Authorization Service.
"""

from typing import Any, Dict, List, Optional, Sequence

from shared.logging import get_logger

from .models import BaseRule, Flag, Signals, UserOverride


class RuleEngine:
    """Evaluates the configured rules, in declaration order, against account signals."""

    def __init__(self, rules: Sequence[BaseRule]):
        self.logger = get_logger("authorization.rule_engine")
        self.rules: List[BaseRule] = list(rules)

    def is_rule_applicable(self, rule: BaseRule, override: UserOverride) -> bool:
        """Apply the per-account ignore/force lists to a rule's default."""
        if rule.ignore_by_default:
            return rule.rule_type in override.force_checks

        return rule.rule_type not in override.ignore_checks

    def evaluate(self, signals: Optional[Signals], override: UserOverride) -> List[Flag]:
        """Produce one flag per applicable rule.

        ``signals`` is None when the account's override disables checks; no
        signal-dependent rule can trigger then.
        """
        flags: List[Flag] = []

        for rule in self.rules:
            if not self.is_rule_applicable(rule, override):
                self.logger.debug("Rule skipped", rule_type=rule.type)
                continue

            flags.append(self._evaluate_rule(rule, signals))

        return flags

    def _evaluate_rule(self, rule: BaseRule, signals: Optional[Signals]) -> Flag:
        if signals is None:
            return Flag(rule=rule, triggered=False)

        # Playtime is unknown for unowned games; the game-owned rule covers that case
        if rule.requires_ownership and not signals.owns_target_app:
            return Flag(rule=rule, triggered=False)

        if not rule.is_triggered(signals):
            return Flag(rule=rule, triggered=False)

        detail = rule.describe(signals)
        self.logger.debug("Rule triggered", rule_type=rule.type, detail=detail)
        return Flag(rule=rule, triggered=True, detail=detail)

    def aggregate(self, flags: Sequence[Flag], override: UserOverride) -> bool:
        """Fold triggered fixed outcomes into one decision.

        Later rules win over earlier ones; an explicit override wins over all.
        """
        authorized = True

        for flag in flags:
            if flag.triggered and flag.rule.fixed_outcome is not None:
                authorized = flag.rule.fixed_outcome

        if override.authorized is not None:
            authorized = override.authorized

        return authorized

    def get_engine_stats(self) -> Dict[str, Any]:
        """Get engine statistics."""
        return {
            "total_rules": len(self.rules),
            "ignored_by_default": len([r for r in self.rules if r.ignore_by_default]),
            "with_fixed_outcome": len([r for r in self.rules if r.action is not None]),
            "rule_types": [r.type for r in self.rules]
        }
