"""Async HTTP client for the trading bot backend.

One ``httpx.AsyncClient`` per ``DashboardAPIClient`` instance, created
lazily on first use and closed by the owner with ``aclose()``. Every httpx
failure leaves this module as a ``DashboardAPIError`` subclass so callers
only ever handle one error family.
"""

from __future__ import annotations

import time
from typing import Any

import httpx

from trading_dashboard.config import settings
from trading_dashboard.models.notifications import PushTokenRequest
from trading_dashboard.utils.logger import logger


class DashboardAPIError(Exception):
    """Base class for every failure talking to the trading bot."""


class APIStatusError(DashboardAPIError):
    """The backend answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class APITransportError(DashboardAPIError):
    """No usable response: DNS, connect, timeout or protocol failure."""


class APIPayloadError(DashboardAPIError):
    """The backend answered 2xx but the body is not JSON."""


class DashboardAPIClient:
    """Typed access to the five endpoints the dashboard consumes."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled httpx.AsyncClient."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    connect=settings.HTTP_CONNECT_TIMEOUT,
                    read=settings.HTTP_READ_TIMEOUT,
                    write=10.0,
                    pool=10.0,
                ),
                limits=httpx.Limits(
                    max_connections=10,
                    max_keepalive_connections=5,
                ),
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_portfolio_summary(self) -> Any:
        return await self._request("GET", "/api/portfolio_summary", label="Portfolio")

    async def get_positions(self) -> Any:
        return await self._request("GET", "/api/positions", label="Positions")

    async def get_signals_by_stock(self) -> Any:
        return await self._request("GET", "/api/signals_by_stock", label="Signals")

    async def get_version(self) -> str:
        """Return the strategy version label.

        Accepts either ``{"version": "..."}`` or a bare JSON string.
        """
        data = await self._request("GET", "/api/version", label="Version")
        if isinstance(data, dict):
            version = data.get("version")
            return str(version) if version else "Unknown"
        return str(data) if data else "Unknown"

    async def register_push_token(self, token: str, platform: str) -> Any:
        """Send the device push token to the bot so it can notify us."""
        body = PushTokenRequest(token=token, platform=platform)
        return await self._request(
            "POST",
            "/api/register-push-token",
            label="Push token registration",
            json=body.model_dump(),
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        label: str,
        json: dict | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("[API] %s %s", method, url)
        t0 = time.perf_counter()

        client = await self._get_client()
        try:
            resp = await client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            logger.warning("[API] %s %s failed: %s", method, path, exc)
            raise APITransportError(str(exc) or exc.__class__.__name__) from exc

        elapsed = time.perf_counter() - t0
        if not resp.is_success:
            logger.warning(
                "[API] %s %s → HTTP %d (%.2fs)",
                method, path, resp.status_code, elapsed,
            )
            raise APIStatusError(f"{label} API failed", resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning("[API] %s %s returned a non-JSON body", method, path)
            raise APIPayloadError(f"{label} API returned invalid JSON") from exc

        logger.debug("[API] %s %s → %d (%.2fs)", method, path, resp.status_code, elapsed)
        return data
