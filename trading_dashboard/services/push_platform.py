"""Push platform — the OS notification layer the lifecycle manager drives.

``PushPlatform`` is the seam to the device (permission prompt, push token,
listener registration). ``LocalPushPlatform`` implements it in-process for
headless hosts and tests: permission is granted when a token is configured,
and ``deliver()`` / ``tap()`` fan payloads out to registered listeners.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from trading_dashboard.utils.logger import logger

NotificationCallback = Callable[[dict[str, Any]], None]

# How notifications show while the app is in the foreground
FOREGROUND_OPTIONS: dict[str, bool] = {
    "should_show_alert": True,
    "should_play_sound": True,
    "should_set_badge": True,
}


class PushServiceUnavailableError(RuntimeError):
    """The push token service answered 503; try again on a later launch."""


@dataclass(frozen=True)
class NotificationChannel:
    """Android notification channel settings."""

    id: str = "default"
    name: str = "default"
    importance: str = "max"
    vibration_pattern: tuple[int, ...] = (0, 250, 250, 250)
    light_color: str = "#FF231F7C"


DEFAULT_CHANNEL = NotificationChannel()


class Subscription(Protocol):
    def remove(self) -> None: ...


class PushPlatform(Protocol):
    """What the notification lifecycle needs from the operating system."""

    os_name: str

    async def set_notification_channel(self, channel: NotificationChannel) -> None: ...

    async def get_permission_status(self) -> str: ...

    async def request_permission(self) -> str: ...

    async def get_push_token(self) -> str: ...

    def add_received_listener(self, callback: NotificationCallback) -> Subscription: ...

    def add_response_listener(self, callback: NotificationCallback) -> Subscription: ...


class _ListenerSubscription:
    """Removes one callback from a listener list; idempotent."""

    def __init__(self, listeners: list[NotificationCallback], callback: NotificationCallback) -> None:
        self._listeners = listeners
        self._callback = callback

    def remove(self) -> None:
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


@dataclass
class LocalPushPlatform:
    """In-process push platform."""

    os_name: str = "android"
    token: str = ""
    channels: dict[str, NotificationChannel] = field(default_factory=dict)
    _received: list[NotificationCallback] = field(default_factory=list, init=False, repr=False)
    _responses: list[NotificationCallback] = field(default_factory=list, init=False, repr=False)

    async def set_notification_channel(self, channel: NotificationChannel) -> None:
        self.channels[channel.id] = channel

    async def get_permission_status(self) -> str:
        return "granted" if self.token else "undetermined"

    async def request_permission(self) -> str:
        return "granted" if self.token else "denied"

    async def get_push_token(self) -> str:
        if not self.token:
            msg = "No push token configured"
            raise RuntimeError(msg)
        return self.token

    def add_received_listener(self, callback: NotificationCallback) -> Subscription:
        self._received.append(callback)
        return _ListenerSubscription(self._received, callback)

    def add_response_listener(self, callback: NotificationCallback) -> Subscription:
        self._responses.append(callback)
        return _ListenerSubscription(self._responses, callback)

    @property
    def listener_count(self) -> int:
        return len(self._received) + len(self._responses)

    def deliver(self, payload: dict[str, Any]) -> int:
        """Simulate a notification arriving while the process runs."""
        return self._dispatch(self._received, payload)

    def tap(self, payload: dict[str, Any]) -> int:
        """Simulate the user tapping a delivered notification."""
        return self._dispatch(self._responses, payload)

    @staticmethod
    def _dispatch(listeners: list[NotificationCallback], payload: dict[str, Any]) -> int:
        for callback in list(listeners):
            try:
                callback(payload)
            except Exception:
                logger.exception("[Push] Notification listener failed")
        return len(listeners)
