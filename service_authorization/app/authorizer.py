"""
Authorization pipeline.

identifier -> decision cache -> signal collection -> rule evaluation ->
aggregation -> cache writes -> alert. Each call owns its own signals,
flags and decision; the cache is the only state shared between requests.
"""

import time
from typing import List, Optional

from shared.errors import InvalidIdentifierError, SignalCollectionError
from shared.logging import get_logger, set_account_context
from shared.metrics import MetricsCollector

from .cache.redis_cache import RedisCache
from .identifiers import normalize_account_id
from .rules.engine import RuleEngine
from .rules.models import (
    NEVER, AuthorizationOutcome, AuthorizationResult, BaseRule, Decision, Flag
)
from .rules.policy import AuthorizationPolicy
from .steam.collector import SignalCollector


class Authorizer:
    """Turns a caller-supplied identifier into one AuthorizationOutcome."""

    def __init__(self,
                 policy: AuthorizationPolicy,
                 cache: RedisCache,
                 collector: SignalCollector,
                 notifier,
                 metrics: Optional[MetricsCollector] = None):
        self.policy = policy
        self.cache = cache
        self.collector = collector
        self.notifier = notifier
        self.metrics = metrics
        self.engine = RuleEngine(policy.rules)
        self.logger = get_logger("authorization.authorizer")

    async def authorize(self, raw_identifier: Optional[str]) -> AuthorizationResult:
        """Answer one authorization query. Never raises."""
        start_time = time.time()

        try:
            account_id = normalize_account_id(raw_identifier or "")
        except InvalidIdentifierError as e:
            self.logger.info("Rejected identifier", identifier=raw_identifier, reason=e.message)
            return self._finish(AuthorizationResult(outcome=AuthorizationOutcome.INVALID_INPUT), start_time)

        set_account_context(account_id)

        try:
            decision = await self.evaluate(account_id)
        except SignalCollectionError as e:
            self.logger.error("Signal collection failed", message=e.message, details=e.details)
            return self._finish(
                AuthorizationResult(outcome=AuthorizationOutcome.EVALUATION_FAILED, account_id=account_id),
                start_time
            )
        except Exception as e:
            self.logger.error("Evaluation failed", error=str(e), exc_info=True)
            return self._finish(
                AuthorizationResult(outcome=AuthorizationOutcome.EVALUATION_FAILED, account_id=account_id),
                start_time
            )

        outcome = AuthorizationOutcome.AUTHORIZED if decision.authorized else AuthorizationOutcome.DENIED
        return self._finish(
            AuthorizationResult(outcome=outcome, account_id=account_id, decision=decision),
            start_time
        )

    async def evaluate(self, account_id: str) -> Decision:
        """Evaluate a canonical account id, consulting and updating the cache."""
        cached = await self.cache.get_decision(account_id)
        if cached is not None:
            self._count("authorization_cache_total", result="hit")
            self.logger.debug("Decision cache hit", account_id=account_id, authorized=cached)
            return Decision(authorized=cached, cache_hit=True)

        self._count("authorization_cache_total", result="miss")

        override = self.policy.override_for(account_id)
        signals = None
        if override.perform_checks:
            signals = await self.collector.collect(account_id)

        flags = self.engine.evaluate(signals, override)
        authorized = self.engine.aggregate(flags, override)

        details: List[str] = []
        newly_flagged: List[BaseRule] = []
        for flag in flags:
            if not flag.triggered:
                continue

            if await self._already_alerted(account_id, flag):
                self.logger.debug("Alert suppressed", account_id=account_id, rule_type=flag.rule.type)
                continue

            details.append(flag.detail)
            if flag.rule.warn_interval is not None:
                newly_flagged.append(flag.rule)

        decision = Decision(authorized=authorized, details=details)

        await self._store(account_id, decision, newly_flagged)

        if decision.details:
            await self._notify(account_id, decision)

        self.logger.info(
            "Authorization evaluated",
            account_id=account_id,
            authorized=authorized,
            triggered=[flag.rule.type for flag in flags if flag.triggered],
            alerted=len(details),
            checks_performed=signals is not None
        )
        return decision

    async def _already_alerted(self, account_id: str, flag: Flag) -> bool:
        # Without a warn interval no flag is ever stored: alert every time
        if flag.rule.warn_interval is None:
            return False
        return await self.cache.has_flag(account_id, flag.rule_type)

    async def _store(self, account_id: str, decision: Decision, newly_flagged: List[BaseRule]):
        ttl = self.policy.decision_ttl
        if ttl is not None:
            await self.cache.set_decision(account_id, decision.authorized, ttl)

        for rule in newly_flagged:
            flag_ttl = None if rule.warn_interval == NEVER else rule.warn_interval
            await self.cache.set_flag(account_id, rule.rule_type, flag_ttl)

    async def _notify(self, account_id: str, decision: Decision):
        try:
            await self.notifier.notify(account_id, not decision.authorized, decision.details)
        except Exception as e:
            self.logger.error("Notifier failed", account_id=account_id, error=str(e))

    def _finish(self, result: AuthorizationResult, start_time: float) -> AuthorizationResult:
        duration = time.time() - start_time
        result.evaluation_time_ms = duration * 1000

        if self.metrics:
            self.metrics.increment_counter("authorization_checks_total", outcome=result.outcome.value)
            self.metrics.observe_histogram("authorization_check_duration_seconds", duration)

        return result

    def _count(self, metric_name: str, **labels):
        if self.metrics:
            self.metrics.increment_counter(metric_name, **labels)
