"""
Authorization policy loading.

The policy (decision cache time, rules, per-account overrides) is read
once at startup from YAML and is immutable afterwards.
"""

from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from shared.errors import ConfigurationError, InvalidIdentifierError
from shared.logging import get_logger

from ..identifiers import normalize_account_id
from .models import DEFAULT_OVERRIDE, Duration, Rule, UserOverride


DEFAULT_TARGET_APP_ID = 440

logger = get_logger("authorization.policy")


class AuthorizationPolicy(BaseModel):
    """Rules, overrides and cache policy for the service."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra="forbid")

    authorization_cache_time: Optional[Duration] = None
    target_app_id: int = DEFAULT_TARGET_APP_ID
    rules: Tuple[Rule, ...] = ()
    overrides: Dict[str, UserOverride] = {}
    slack_message_defaults: Dict[str, Any] = {}

    @field_validator("overrides", mode="before")
    @classmethod
    def stringify_override_keys(cls, overrides: Any) -> Any:
        # Unquoted steam64 ids load from YAML as integers
        if isinstance(overrides, dict):
            return {str(key): value for key, value in overrides.items()}
        return overrides

    @field_validator("overrides")
    @classmethod
    def canonicalize_override_keys(cls, overrides: Dict[str, UserOverride]) -> Dict[str, UserOverride]:
        canonical: Dict[str, UserOverride] = {}
        for raw_id, override in overrides.items():
            try:
                account_id = normalize_account_id(raw_id)
            except InvalidIdentifierError as e:
                raise ValueError(f"invalid account identifier {raw_id!r}: {e.message}")
            if account_id in canonical:
                raise ValueError(f"duplicate override for account {account_id}")
            canonical[account_id] = override
        return canonical

    @property
    def decision_ttl(self) -> Optional[timedelta]:
        """TTL for cached decisions; None disables decision caching."""
        if not self.authorization_cache_time:
            return None
        return self.authorization_cache_time

    def override_for(self, account_id: str) -> UserOverride:
        return self.overrides.get(account_id, DEFAULT_OVERRIDE)


def load_policy(path: Union[str, Path]) -> AuthorizationPolicy:
    """Load and validate the YAML policy file."""
    policy_path = Path(path)

    try:
        raw = yaml.safe_load(policy_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigurationError("Policy file not found", details={"path": str(policy_path)})
    except yaml.YAMLError as e:
        raise ConfigurationError("Policy file is not valid YAML", details={"path": str(policy_path), "error": str(e)})

    try:
        policy = AuthorizationPolicy.model_validate(raw or {})
    except ValidationError as e:
        raise ConfigurationError(
            "Policy file failed validation",
            details={"path": str(policy_path), "errors": e.errors(include_url=False, include_context=False)}
        )

    logger.info(
        "Authorization policy loaded",
        path=str(policy_path),
        rules=[rule.type for rule in policy.rules],
        overrides=len(policy.overrides),
        cache_time_seconds=policy.decision_ttl.total_seconds() if policy.decision_ttl else None
    )
    return policy
