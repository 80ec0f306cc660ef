"""
User alert notifiers.

Alerts go to a Slack incoming webhook when one is configured and to the
service log otherwise. Delivery is best effort: failures are logged and
never reach the caller.
"""

import copy
from typing import Any, Dict, Optional, Sequence

import httpx

from shared.errors import NotifierError
from shared.logging import get_logger
from shared.metrics import MetricsCollector


PROFILE_URL = "https://steamcommunity.com/profiles/{account_id}"


def alert_text(denied: bool, details: Sequence[str]) -> str:
    return f"{'DENIED' if denied else 'flagged'}: {'; '.join(details)}"


def defaults_deep(message: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Fill keys missing from message with defaults, recursing into nested dicts.

    Only dicts are merged. A list present in message is kept as is and is
    not merged element-wise with the default list.
    """
    merged = dict(message)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = defaults_deep(merged[key], value)
    return merged


class LogNotifier:
    """Emits alerts to the service log."""

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("authorization.alerts")
        self.metrics = metrics

    async def notify(self, account_id: str, denied: bool, details: Sequence[str]) -> None:
        self.logger.warning(
            f"{account_id} was {alert_text(denied, details)}",
            account_id=account_id,
            denied=denied,
            details=list(details)
        )
        if self.metrics:
            self.metrics.increment_counter("authorization_alerts_total", status="logged")

    async def health_check(self) -> str:
        return "log"


class SlackNotifier:
    """Posts alerts to a Slack incoming webhook."""

    def __init__(self,
                 webhook_url: str,
                 channel: str = "#user-alerts",
                 message_defaults: Optional[Dict[str, Any]] = None,
                 metrics: Optional[MetricsCollector] = None,
                 timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.webhook_url = webhook_url
        self.channel = channel
        self.message_defaults = message_defaults or {}
        self.metrics = metrics
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger("authorization.alerts.slack")

    def build_message(self, account_id: str, denied: bool, details: Sequence[str]) -> Dict[str, Any]:
        """Build the webhook payload for one alert."""
        message = {
            "channel": self.channel,
            "attachments": [{
                "fallback": f"{account_id} was {alert_text(denied, details)}",
                "color": "danger" if denied else "warning",
                "author_name": account_id,
                "author_link": PROFILE_URL.format(account_id=account_id),
                "text": alert_text(denied, details)
            }]
        }
        return defaults_deep(message, self.message_defaults)

    async def notify(self, account_id: str, denied: bool, details: Sequence[str]) -> None:
        """Send an alert; failures are logged and discarded."""
        message = self.build_message(account_id, denied, details)

        try:
            await self._post(message)
        except Exception as e:
            self.logger.error("Failed to send user alert", account_id=account_id, error=str(e))
            if self.metrics:
                self.metrics.increment_counter("authorization_alerts_total", status="failed")
            return

        self.logger.info("User alert sent", account_id=account_id, denied=denied)
        if self.metrics:
            self.metrics.increment_counter("authorization_alerts_total", status="sent")

    async def _post(self, message: Dict[str, Any]) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.webhook_url, json=message)

        if response.status_code >= 400:
            raise NotifierError(
                "slack",
                f"webhook returned {response.status_code}",
                details={"status_code": response.status_code, "body": response.text[:200]}
            )

    async def health_check(self) -> str:
        return "slack"


def create_notifier(webhook_url: Optional[str],
                    channel: str,
                    message_defaults: Optional[Dict[str, Any]] = None,
                    metrics: Optional[MetricsCollector] = None):
    """Pick the Slack notifier when a webhook is configured, else the log notifier."""
    if webhook_url:
        return SlackNotifier(webhook_url, channel, message_defaults, metrics)
    return LogNotifier(metrics)
