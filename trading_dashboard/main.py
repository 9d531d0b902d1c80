"""Composition root + local view server.

``DashboardApp`` builds every long-lived service exactly once and hands
them out by reference. ``create_app()`` wraps it in a FastAPI app that
serves the derived views to the presentation layer:

    uvicorn trading_dashboard.main:app --port 8100
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError

from trading_dashboard.config import settings
from trading_dashboard.engine import views
from trading_dashboard.services.api_client import DashboardAPIClient
from trading_dashboard.services.fetch_cycles import SCREEN_CONTEXTS
from trading_dashboard.services.notification_service import NotificationService
from trading_dashboard.services.push_platform import LocalPushPlatform, PushPlatform
from trading_dashboard.services.sync_controller import SyncController, SyncHandle
from trading_dashboard.services.theme_store import ThemeStore
from trading_dashboard.utils.logger import logger


class DashboardApp:
    """Owns the API client, sync controllers, notifications and theme."""

    def __init__(
        self,
        *,
        api_client: DashboardAPIClient | None = None,
        push_platform: PushPlatform | None = None,
        interval_ms: int | None = None,
    ) -> None:
        self.api_client = api_client or DashboardAPIClient()
        self.theme = ThemeStore(dark=settings.DARK_THEME)
        self.notifications = NotificationService(
            push_platform or LocalPushPlatform(
                os_name=settings.PUSH_OS, token=settings.PUSH_TOKEN,
            ),
            self.api_client,
        )
        self.controllers: dict[str, SyncController] = {
            name: SyncController(ctx, self.api_client, interval_ms=interval_ms)
            for name, ctx in SCREEN_CONTEXTS.items()
        }
        self._handles: dict[str, SyncHandle] = {}

    def controller(self, name: str) -> SyncController:
        """Look up a screen context's controller; KeyError if unknown."""
        return self.controllers[name]

    def start_sync(self) -> None:
        for name, ctrl in self.controllers.items():
            self._handles[name] = ctrl.start()

    def stop_sync(self) -> None:
        for handle in self._handles.values():
            handle.stop()
        self._handles.clear()

    def apply_interval(self, interval_ms: int) -> None:
        """Restart running controllers on a new refresh cadence."""
        running = bool(self._handles)
        self.stop_sync()
        for ctrl in self.controllers.values():
            ctrl.interval_ms = interval_ms
        if running:
            self.start_sync()

    async def startup(self) -> None:
        self.start_sync()
        enabled = await self.notifications.initialize()
        self.notifications.setup_listeners()
        logger.info(
            "[Boot] %d sync contexts started, notifications %s",
            len(self.controllers), "enabled" if enabled else "unavailable",
        )

    async def shutdown(self) -> None:
        self.stop_sync()
        self.notifications.teardown()
        await self.api_client.aclose()
        logger.info("[Boot] Shut down")


# ── Request models ──────────────────────────────────────────────────
class ClientConfigRequest(BaseModel):
    api_url: str | None = None
    refresh_interval_ms: int | None = None
    dark_theme: bool | None = None


def create_app(dashboard: DashboardApp | None = None) -> FastAPI:
    """Build the view server around one DashboardApp."""
    dash = dashboard or DashboardApp()
    api = FastAPI(
        title=settings.APP_NAME,
        description="Derived portfolio, position and signal views for the dashboard UI",
        version=settings.APP_VERSION,
    )
    api.state.dashboard = dash

    api.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @api.on_event("startup")
    async def _startup() -> None:
        await dash.startup()

    @api.on_event("shutdown")
    async def _shutdown() -> None:
        await dash.shutdown()

    def _controller(name: str) -> SyncController:
        try:
            return dash.controller(name)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown context: {name}") from None

    # ══════════════════════════════════════════════════════════════════
    # VIEWS
    # ══════════════════════════════════════════════════════════════════

    @api.get("/api/health")
    async def health() -> dict:
        return {
            "api": "ok",
            "backend": settings.api_base_url,
            "contexts": {
                name: ctrl.get_status() for name, ctrl in dash.controllers.items()
            },
        }

    @api.get("/api/views/home")
    async def home(legacy: bool = False) -> dict:
        """Home screen; ``legacy=true`` shows the positions preview layout."""
        return views.home_view(_controller("home_legacy" if legacy else "home").state)

    @api.get("/api/views/positions")
    async def positions() -> dict:
        return views.positions_view(_controller("positions").state)

    @api.get("/api/views/positions/{symbol}")
    async def position(symbol: str) -> dict:
        found = views.find_position(_controller("positions").state, symbol)
        if found is None:
            raise HTTPException(status_code=404, detail=f"No open position for {symbol}")
        try:
            return views.position_detail(found)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    @api.get("/api/views/signals")
    async def signals() -> dict:
        return views.signals_view(_controller("signals").state)

    @api.get("/api/views/signals/{symbol}")
    async def stock(symbol: str) -> dict:
        found = views.find_signal_group(_controller("signals").state, symbol)
        if found is None:
            raise HTTPException(status_code=404, detail=f"No signals for {symbol}")
        try:
            return views.stock_detail(found)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    @api.post("/api/refresh/{context}")
    async def refresh(context: str) -> dict:
        """Pull-to-refresh; ignored while that context is already fetching."""
        ctrl = _controller(context)
        ran = await ctrl.refresh(manual=True)
        return {"status": "completed" if ran else "ignored", **ctrl.get_status()}

    # ══════════════════════════════════════════════════════════════════
    # NOTIFICATIONS / THEME / SETTINGS
    # ══════════════════════════════════════════════════════════════════

    @api.get("/api/notifications/status")
    async def notification_status() -> dict:
        return dash.notifications.get_status()

    @api.post("/api/notifications/initialize")
    async def notification_initialize() -> dict:
        enabled = await dash.notifications.initialize()
        return {"enabled": enabled, **dash.notifications.get_status()}

    @api.get("/api/theme")
    async def theme() -> dict:
        return {"name": dash.theme.name, "tokens": dash.theme.theme}

    @api.post("/api/theme/toggle")
    async def theme_toggle() -> dict:
        tokens = dash.theme.toggle()
        return {"name": dash.theme.name, "tokens": tokens}

    @api.get("/api/settings")
    async def get_settings() -> dict:
        return settings.get_client_config()

    @api.put("/api/settings")
    async def update_settings(req: ClientConfigRequest) -> dict[str, Any]:
        """Persist client settings and apply the new refresh cadence."""
        data = {k: v for k, v in req.model_dump().items() if v is not None}
        try:
            merged = settings.update_client_config(data)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        if "api_url" in data:
            dash.api_client.base_url = settings.api_base_url
        if "refresh_interval_ms" in data:
            dash.apply_interval(settings.REFRESH_INTERVAL_MS)
        if "dark_theme" in data and data["dark_theme"] != dash.theme.is_dark:
            dash.theme.toggle()
        logger.info("[Settings] Client config updated: %s", data)
        return {"status": "updated", "config": merged}

    return api


app = create_app()
