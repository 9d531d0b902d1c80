"""Push notification lifecycle state and the backend registration body."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class NotificationState(str, Enum):
    """Lifecycle of one ``NotificationService.initialize()`` run."""

    UNINITIALIZED = "uninitialized"
    PERMISSION_REQUESTED = "permission_requested"
    PERMISSION_DENIED = "permission_denied"
    FAILED = "failed"  # token could not be acquired
    TOKEN_ACQUIRED = "token_acquired"
    BACKEND_REGISTERED = "backend_registered"
    BACKEND_UNREGISTERED = "backend_unregistered"


class PushRegistration(BaseModel):
    """What this process knows about its push capability.

    Re-derived on every initialize(); never persisted.
    """

    token: str | None = None
    permission_granted: bool = False
    backend_ack: bool = False


class PushTokenRequest(BaseModel):
    """Body of ``POST /api/register-push-token``."""

    token: str
    platform: str
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
    )
