"""
Integration tests for the authorization flow.

Runs the service with the shipped policy against the mock Steam Web API
and a captured Slack webhook.
"""

import json
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from shared.config import ServiceConfig
from mocks.steam.server import MockSteamServer
from service_authorization.app.alerts.notifier import SlackNotifier
from service_authorization.app.main import AuthorizationService
from service_authorization.app.rules.policy import load_policy
from service_authorization.app.steam.client import SteamClient
from service_authorization.tests.fakes import InMemoryCache


POLICY_FILE = Path(__file__).resolve().parents[2] / "config" / "authorization.yaml"
WEBHOOK_URL = "https://hooks.slack.test/services/T000/B000/XXXX"


class TestAuthorizationFlow:
    """Integration tests for complete authorization flow."""

    @pytest.fixture
    def slack_messages(self):
        return []

    @pytest.fixture
    def cache(self):
        return InMemoryCache()

    @pytest.fixture
    def service(self, slack_messages, cache):
        """Authorization service wired to the mock Steam Web API."""
        policy = load_policy(POLICY_FILE)

        def slack_webhook(request: httpx.Request) -> httpx.Response:
            slack_messages.append(json.loads(request.content))
            return httpx.Response(200, text="ok")

        steam_server = MockSteamServer(api_key="integration-key")

        return AuthorizationService(
            config=ServiceConfig(service_name="authorization", port=8013),
            policy=policy,
            cache=cache,
            steam_client=SteamClient(
                "http://steam.test",
                "integration-key",
                transport=httpx.ASGITransport(app=steam_server.app)
            ),
            notifier=SlackNotifier(
                WEBHOOK_URL,
                "#user-alerts",
                policy.slack_message_defaults,
                transport=httpx.MockTransport(slack_webhook)
            )
        )

    @pytest_asyncio.fixture
    async def client(self, service):
        await service.start()
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=service.app),
            base_url="http://authorization.test"
        ) as client:
            yield client
        await service.stop()

    @pytest.mark.asyncio
    async def test_banned_account_denied_and_cached(self, client, cache, slack_messages):
        """Test a VAC banned account is denied once, then answered from cache."""
        first = await client.get("/", params={"user": "STEAM_0:0:23071901"})
        second = await client.get("/", params={"user": "[U:1:46143802]"})

        assert first.status_code == 403
        assert second.status_code == 403
        assert cache.decisions == {"76561198006409530": False}

        # vac-bans has no warn interval; only the cache hit keeps the second request quiet
        assert len(slack_messages) == 1
        message = slack_messages[0]
        assert message["channel"] == "#user-alerts"
        assert message["username"] == "open-authorization"
        assert message["icon_emoji"] == ":lock:"
        assert message["attachments"][0]["text"] == "DENIED: 1 VAC ban on record"
        assert message["attachments"][0]["color"] == "danger"

    @pytest.mark.asyncio
    async def test_allowlisted_account(self, client, slack_messages):
        response = await client.get("/", params={"user": "76561197960287930"})

        assert response.status_code == 200
        assert slack_messages == []

    @pytest.mark.asyncio
    async def test_new_account_flagged_but_authorized(self, client, cache, slack_messages):
        response = await client.get("/", params={"user": "76561198000000002"})

        assert response.status_code == 200
        assert len(slack_messages) == 1
        assert slack_messages[0]["attachments"][0]["text"] == "flagged: has only 1:00 on record"
        assert slack_messages[0]["attachments"][0]["color"] == "warning"
        assert cache.flag_writes[0][0] == "76561198000000002"

    @pytest.mark.asyncio
    async def test_private_account_denied(self, client, slack_messages):
        response = await client.get("/", params={"user": "76561198000000004"})

        assert response.status_code == 403
        assert slack_messages[0]["attachments"][0]["text"] == (
            "DENIED: current trade status is probation; does not own the game"
        )

    @pytest.mark.asyncio
    async def test_unknown_account_fails(self, client, cache, slack_messages):
        response = await client.get("/", params={"user": "76561198999999999"})

        assert response.status_code == 500
        assert cache.decisions == {}
        assert slack_messages == []

    @pytest.mark.asyncio
    async def test_malformed_identifier(self, client, cache):
        response = await client.get("/", params={"user": "STEAM_9:9:9"})

        assert response.status_code == 403
        assert cache.decisions == {}
