"""Sync state — what one screen context currently shows.

State replaces itself wholesale on every transition (frozen model +
``model_copy``), so observers never see a half-updated snapshot.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class SyncStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class SyncState(BaseModel):
    """Immutable view of a Sync Controller at one point in time."""

    model_config = ConfigDict(frozen=True)

    status: SyncStatus = SyncStatus.IDLE
    # Last-known-good snapshot; kept while an error banner is shown
    data: dict[str, Any] | None = None
    error: str | None = None
    refreshing: bool = False  # manual pull-to-refresh vs first load
    last_updated: datetime | None = None

    @property
    def error_message(self) -> str | None:
        """User-visible banner text for the current error, if any."""
        if self.error is None:
            return None
        return f"Failed to connect: {self.error}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "error": self.error,
            "error_message": self.error_message,
            "refreshing": self.refreshing,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }
