"""Application configuration — environment variables and defaults.

The trading bot's base URL and the refresh cadence live HERE.
Persistent client settings are stored in user_config/client_config.json.
"""

import json
import os
from pathlib import Path
from typing import Any


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    """Central configuration pulled from environment with safe defaults."""

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    LOGS_DIR: Path = Path(os.getenv("DASHBOARD_LOGS_DIR", str(BASE_DIR / "logs")))
    USER_CONFIG_DIR: Path = Path(__file__).resolve().parent / "user_config"

    # ── Trading bot backend ───────────────────────────────────────
    API_URL: str = os.getenv("DASHBOARD_API_URL", "http://192.168.1.253:5000")

    # Refresh interval in milliseconds (30 seconds)
    REFRESH_INTERVAL_MS: int = int(os.getenv("REFRESH_INTERVAL_MS", "30000"))

    HTTP_CONNECT_TIMEOUT: float = float(os.getenv("HTTP_CONNECT_TIMEOUT", "5.0"))
    HTTP_READ_TIMEOUT: float = float(os.getenv("HTTP_READ_TIMEOUT", "15.0"))

    # App information
    APP_NAME: str = "Trading Dashboard"
    APP_VERSION: str = "1.1.0"

    # ── Push notifications (in-process platform) ──────────────────
    PUSH_OS: str = os.getenv("PUSH_OS", "android")
    PUSH_TOKEN: str = os.getenv("PUSH_TOKEN", "")

    # Presentation
    DARK_THEME: bool = _env_bool("DARK_THEME", "true")

    # Local view server
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8100"))

    CLIENT_CONFIG_PATH: Path = USER_CONFIG_DIR / "client_config.json"

    def __init__(self) -> None:
        """Ensure runtime directories exist and load persisted client config."""
        self.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        self.load_client_config()

    @property
    def api_base_url(self) -> str:
        """Computed: backend URL without a trailing slash."""
        return self.API_URL.rstrip("/")

    # ── Persistent client configuration ───────────────────────────

    def load_client_config(self) -> None:
        """Load client settings from client_config.json, overriding env-var defaults."""
        if not self.CLIENT_CONFIG_PATH.exists():
            return
        try:
            data = json.loads(self.CLIENT_CONFIG_PATH.read_text(encoding="utf-8"))
            self._apply_client_config(data)
        except (json.JSONDecodeError, OSError, TypeError, ValueError):
            pass  # Corrupted file, keep defaults

    def _apply_client_config(self, data: dict[str, Any]) -> None:
        """Apply a config dict to the running settings instance."""
        if "refresh_interval_ms" in data:
            try:
                interval = int(data["refresh_interval_ms"])
            except TypeError as exc:
                msg = f"refresh_interval_ms must be a number, got {data['refresh_interval_ms']!r}"
                raise ValueError(msg) from exc
            if interval <= 0:
                msg = f"refresh_interval_ms must be positive, got {interval}"
                raise ValueError(msg)
            self.REFRESH_INTERVAL_MS = interval
        if "api_url" in data:
            self.API_URL = str(data["api_url"])
        if "dark_theme" in data:
            self.DARK_THEME = bool(data["dark_theme"])

    def update_client_config(self, data: dict[str, Any]) -> dict[str, Any]:
        """Write new client settings to disk and hot-patch the running singleton.

        Returns the saved config dict.
        """
        existing: dict[str, Any] = {}
        if self.CLIENT_CONFIG_PATH.exists():
            try:
                existing = json.loads(
                    self.CLIENT_CONFIG_PATH.read_text(encoding="utf-8")
                )
            except (json.JSONDecodeError, OSError):
                pass

        merged = {**existing, **data}
        # Validate before touching disk
        self._apply_client_config(merged)

        self.CLIENT_CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        self.CLIENT_CONFIG_PATH.write_text(
            json.dumps(merged, indent=4) + "\n", encoding="utf-8"
        )
        return merged

    def get_client_config(self) -> dict[str, Any]:
        """Return the current client configuration as a dict."""
        return {
            "app_name": self.APP_NAME,
            "app_version": self.APP_VERSION,
            "api_url": self.API_URL,
            "refresh_interval_ms": self.REFRESH_INTERVAL_MS,
            "dark_theme": self.DARK_THEME,
        }


settings = Settings()
