"""Notification Lifecycle Manager — permission → token → backend registration.

    UNINITIALIZED → PERMISSION_REQUESTED → PERMISSION_DENIED
                                         → FAILED (token unavailable)
                                         → TOKEN_ACQUIRED → BACKEND_REGISTERED
                                                          → BACKEND_UNREGISTERED

Nothing here raises to the caller: every outcome is a state plus the
boolean returned by ``initialize()``. Backend registration is best-effort:
a token the bot never heard about is still a working local token.
"""

from __future__ import annotations

from collections.abc import Callable

from trading_dashboard.models.notifications import NotificationState, PushRegistration
from trading_dashboard.services.api_client import DashboardAPIClient
from trading_dashboard.services.push_platform import (
    DEFAULT_CHANNEL,
    NotificationCallback,
    PushPlatform,
    PushServiceUnavailableError,
    Subscription,
)
from trading_dashboard.utils.logger import logger


class NotificationService:
    """Owns push capability for the lifetime of the process."""

    def __init__(self, platform: PushPlatform, api_client: DashboardAPIClient) -> None:
        self._platform = platform
        self._client = api_client
        self.state = NotificationState.UNINITIALIZED
        self.registration = PushRegistration()
        self._received_sub: Subscription | None = None
        self._response_sub: Subscription | None = None

    @property
    def token(self) -> str | None:
        return self.registration.token

    def get_status(self) -> dict:
        return {
            "state": self.state.value,
            **self.registration.model_dump(),
            "listening": self._received_sub is not None or self._response_sub is not None,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """Acquire a push token and tell the backend about it.

        Returns True when notifications work locally, even if the backend
        registration failed. Always re-checks permission: the user may
        have changed it in OS settings since the last run.
        """
        try:
            token = await self.register_for_push_notifications()
            if not token:
                return False
            await self.register_token_with_backend(token)
            return True
        except Exception:
            logger.exception("[Notifications] Error initializing notification service")
            self.state = NotificationState.FAILED
            return False

    async def register_for_push_notifications(self) -> str | None:
        """Request permission if needed, then fetch the platform push token."""
        self.registration = PushRegistration()
        self.state = NotificationState.PERMISSION_REQUESTED

        try:
            if self._platform.os_name == "android":
                await self._platform.set_notification_channel(DEFAULT_CHANNEL)

            status = await self._platform.get_permission_status()
            if status != "granted":
                status = await self._platform.request_permission()

            if status != "granted":
                self.state = NotificationState.PERMISSION_DENIED
                logger.info("[Notifications] Permission not granted (%s)", status)
                return None

            self.registration = PushRegistration(permission_granted=True)
            token = await self._platform.get_push_token()
        except PushServiceUnavailableError:
            self.state = NotificationState.FAILED
            logger.info(
                "[Notifications] Push service temporarily unavailable (503) — "
                "will register on a later launch",
            )
            return None
        except Exception as exc:
            self.state = NotificationState.FAILED
            logger.error("[Notifications] Error getting push token: %s", exc)
            return None

        if not token:
            self.state = NotificationState.FAILED
            logger.error("[Notifications] Platform returned an empty push token")
            return None

        self.registration = self.registration.model_copy(update={"token": token})
        self.state = NotificationState.TOKEN_ACQUIRED
        logger.info("[Notifications] Push token acquired: %s…", token[:12])
        return token

    async def register_token_with_backend(self, token: str) -> bool:
        """Best-effort POST of the token; failures only change state."""
        try:
            ack = await self._client.register_push_token(token, self._platform.os_name)
        except Exception as exc:
            self.state = NotificationState.BACKEND_UNREGISTERED
            logger.info(
                "[Notifications] Could not register token with backend "
                "(endpoint may not exist yet): %s",
                exc,
            )
            return False

        self.state = NotificationState.BACKEND_REGISTERED
        self.registration = self.registration.model_copy(update={"backend_ack": True})
        logger.info("[Notifications] Token registered with backend: %s", ack)
        return True

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def setup_listeners(
        self,
        on_received: NotificationCallback | None = None,
        on_tapped: NotificationCallback | None = None,
    ) -> Callable[[], None]:
        """Register the two notification callbacks.

        Returns ``teardown`` so the caller can hold a single unsubscribe handle.
        """
        self.teardown()

        def _received(notification: dict) -> None:
            logger.info("[Notifications] Notification received: %s", notification)
            if on_received:
                on_received(notification)

        def _tapped(response: dict) -> None:
            logger.info("[Notifications] Notification tapped: %s", response)
            if on_tapped:
                on_tapped(response)

        self._received_sub = self._platform.add_received_listener(_received)
        self._response_sub = self._platform.add_response_listener(_tapped)
        return self.teardown

    def teardown(self) -> None:
        """Unregister both listeners; a no-op when none are registered."""
        if self._received_sub is not None:
            self._received_sub.remove()
            self._received_sub = None
        if self._response_sub is not None:
            self._response_sub.remove()
            self._response_sub = None
