"""Tests for the notification lifecycle manager.

Covers: permission handling, token failures, best-effort backend
registration, re-initialization and listener teardown.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from trading_dashboard.models.notifications import NotificationState
from trading_dashboard.services.notification_service import NotificationService
from trading_dashboard.services.push_platform import (
    LocalPushPlatform,
    PushServiceUnavailableError,
)

TOKEN = "ExponentPushToken[abc123xyz]"
REGISTER = ("POST", "/api/register-push-token")


# ── Fixtures ─────────────────────────────────────────────────────

@pytest.fixture
def mock_platform():
    """A platform whose every OS call can be scripted per test."""
    platform = MagicMock()
    platform.os_name = "ios"
    platform.set_notification_channel = AsyncMock()
    platform.get_permission_status = AsyncMock(return_value="granted")
    platform.request_permission = AsyncMock(return_value="granted")
    platform.get_push_token = AsyncMock(return_value=TOKEN)
    return platform


# ══════════════════════════════════════════════════════════════════════
# 1.  initialize()
# ══════════════════════════════════════════════════════════════════════


class TestInitialize:

    @pytest.mark.asyncio
    async def test_registers_with_backend(self, make_client):
        client, backend = make_client({REGISTER: {"status": "ok"}})
        service = NotificationService(LocalPushPlatform(token=TOKEN), client)

        assert await service.initialize() is True
        assert service.state == NotificationState.BACKEND_REGISTERED
        assert service.registration.token == TOKEN
        assert service.registration.permission_granted is True
        assert service.registration.backend_ack is True

        body = json.loads(backend.bodies[0])
        assert body["token"] == TOKEN
        assert body["platform"] == "android"
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_backend_404_still_enables_locally(self, make_client):
        client, backend = make_client({REGISTER: httpx.Response(404)})
        service = NotificationService(LocalPushPlatform(token=TOKEN), client)

        assert await service.initialize() is True
        assert service.state == NotificationState.BACKEND_UNREGISTERED
        assert service.registration.token == TOKEN
        assert service.registration.backend_ack is False
        assert backend.calls == [REGISTER]

    @pytest.mark.asyncio
    async def test_backend_unreachable_still_enables_locally(self, make_client):
        client, _ = make_client({REGISTER: httpx.ConnectError("no route to host")})
        service = NotificationService(LocalPushPlatform(token=TOKEN), client)
        assert await service.initialize() is True
        assert service.state == NotificationState.BACKEND_UNREGISTERED

    @pytest.mark.asyncio
    async def test_permission_denied(self, make_client):
        client, backend = make_client({REGISTER: {}})
        service = NotificationService(LocalPushPlatform(token=""), client)

        assert await service.initialize() is False
        assert service.state == NotificationState.PERMISSION_DENIED
        assert service.registration.permission_granted is False
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_existing_grant_skips_prompt(self, make_client, mock_platform):
        client, _ = make_client({REGISTER: {}})
        service = NotificationService(mock_platform, client)
        assert await service.initialize() is True
        mock_platform.request_permission.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_prompts_when_undetermined(self, make_client, mock_platform):
        mock_platform.get_permission_status.return_value = "undetermined"
        client, _ = make_client({REGISTER: {}})
        service = NotificationService(mock_platform, client)
        assert await service.initialize() is True
        mock_platform.request_permission.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_push_service_503_is_not_raised(self, make_client, mock_platform):
        mock_platform.get_push_token.side_effect = PushServiceUnavailableError("503")
        client, backend = make_client({REGISTER: {}})
        service = NotificationService(mock_platform, client)

        assert await service.initialize() is False
        assert service.state == NotificationState.FAILED
        assert service.token is None
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_token_error_is_not_raised(self, make_client, mock_platform):
        mock_platform.get_push_token.side_effect = RuntimeError("projectId missing")
        client, _ = make_client({REGISTER: {}})
        service = NotificationService(mock_platform, client)
        assert await service.initialize() is False
        assert service.state == NotificationState.FAILED

    @pytest.mark.asyncio
    async def test_empty_token_is_a_failure(self, make_client, mock_platform):
        mock_platform.get_push_token.return_value = ""
        client, _ = make_client({REGISTER: {}})
        service = NotificationService(mock_platform, client)
        assert await service.initialize() is False
        assert service.state == NotificationState.FAILED

    @pytest.mark.asyncio
    async def test_android_channel_configured(self, make_client):
        client, _ = make_client({REGISTER: {}})
        platform = LocalPushPlatform(os_name="android", token=TOKEN)
        await NotificationService(platform, client).initialize()
        channel = platform.channels["default"]
        assert channel.vibration_pattern == (0, 250, 250, 250)
        assert channel.importance == "max"

    @pytest.mark.asyncio
    async def test_ios_skips_channel(self, make_client, mock_platform):
        client, _ = make_client({REGISTER: {}})
        await NotificationService(mock_platform, client).initialize()
        mock_platform.set_notification_channel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reinitialize_rechecks_permission(self, make_client):
        client, _ = make_client({REGISTER: {}})
        platform = LocalPushPlatform(token=TOKEN)
        service = NotificationService(platform, client)
        assert await service.initialize() is True

        # User revoked notifications in OS settings
        platform.token = ""
        assert await service.initialize() is False
        assert service.state == NotificationState.PERMISSION_DENIED
        assert service.token is None


# ══════════════════════════════════════════════════════════════════════
# 2.  Listeners
# ══════════════════════════════════════════════════════════════════════


class TestListeners:

    def _service(self) -> tuple[NotificationService, LocalPushPlatform]:
        platform = LocalPushPlatform(token=TOKEN)
        return NotificationService(platform, MagicMock()), platform

    def test_callbacks_receive_full_payload(self):
        service, platform = self._service()
        received, tapped = [], []
        service.setup_listeners(received.append, tapped.append)

        payload = {"title": "AAPL BUY", "data": {"symbol": "AAPL"}}
        platform.deliver(payload)
        assert received == [payload]
        assert tapped == []

        platform.tap({"notification": payload, "action": "default"})
        assert tapped == [{"notification": payload, "action": "default"}]

    def test_teardown_unregisters_both(self):
        service, platform = self._service()
        received = []
        service.setup_listeners(received.append, received.append)
        service.teardown()
        assert platform.listener_count == 0
        platform.deliver({"title": "late"})
        assert received == []

    def test_teardown_is_idempotent(self):
        service, _ = self._service()
        service.teardown()
        service.setup_listeners()
        service.teardown()
        service.teardown()
        assert service.get_status()["listening"] is False

    def test_setup_twice_does_not_leak(self):
        service, platform = self._service()
        service.setup_listeners()
        service.setup_listeners()
        assert platform.listener_count == 2

    def test_returned_handle_unsubscribes(self):
        service, platform = self._service()
        unsubscribe = service.setup_listeners()
        unsubscribe()
        assert platform.listener_count == 0

    def test_callback_error_is_contained(self):
        service, platform = self._service()
        ok = []
        service.setup_listeners(MagicMock(side_effect=ValueError("bad")), ok.append)
        platform.deliver({"title": "x"})
        platform.tap({"title": "x"})
        assert ok == [{"title": "x"}]
