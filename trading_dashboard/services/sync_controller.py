"""Sync Controller — keeps one screen context's snapshot fresh.

  - start(): immediate fetch, then one fetch every ``interval_ms``
  - refresh(manual=True): out-of-band pull-to-refresh
  - at most one fetch cycle in flight; extra requests are dropped, not queued
  - stop(): cancels the schedule; an in-flight cycle finishes but its
    result is discarded
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from trading_dashboard.config import settings
from trading_dashboard.models.sync import SyncState, SyncStatus
from trading_dashboard.services.api_client import DashboardAPIClient, DashboardAPIError
from trading_dashboard.services.fetch_cycles import ScreenContext
from trading_dashboard.utils.logger import logger

StateListener = Callable[[SyncState], None]


class SyncHandle:
    """Returned by ``SyncController.start()``; owns the right to stop it."""

    def __init__(self, controller: SyncController) -> None:
        self._controller = controller
        self._generation = controller._generation

    @property
    def is_active(self) -> bool:
        return self._controller.is_running and self._is_current()

    def stop(self) -> None:
        """Stop the session this handle came from; stale handles do nothing."""
        if not self._is_current():
            logger.debug(
                "[Sync:%s] Stale handle — stop ignored", self._controller.context.name,
            )
            return
        self._controller.stop()

    def _is_current(self) -> bool:
        return self._generation == self._controller._generation


class SyncController:
    """Owns the data session of one screen context."""

    def __init__(
        self,
        context: ScreenContext,
        client: DashboardAPIClient,
        *,
        interval_ms: int | None = None,
    ) -> None:
        self.context = context
        self._client = client
        self.interval_ms = interval_ms or settings.REFRESH_INTERVAL_MS
        self._state = SyncState()
        self._listeners: list[StateListener] = []
        self._scheduler: AsyncIOScheduler | None = None
        self._in_flight = False
        self._cycle_task: asyncio.Task | None = None
        self._stopped = False
        # Bumped on start/stop so late results from an old session are ignored
        self._generation = 0
        self.is_running = False

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> SyncHandle:
        """Fetch now, then keep fetching every ``interval_ms``."""
        if self.is_running:
            return SyncHandle(self)

        self._generation += 1
        self._stopped = False
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._scheduled_tick,
            IntervalTrigger(seconds=self.interval_ms / 1000),
            id=f"sync_{self.context.name}",
            name=f"Sync {self.context.name}",
            next_run_time=datetime.now(),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        self.is_running = True
        logger.info(
            "[Sync:%s] Started — every %.0fs",
            self.context.name, self.interval_ms / 1000,
        )
        return SyncHandle(self)

    def stop(self) -> None:
        """Cancel the repeating schedule. Safe to call more than once.

        A cycle already in flight runs to completion; its result is dropped.
        """
        self._stopped = True
        self._generation += 1
        if not self.is_running or not self._scheduler:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self.is_running = False
        logger.info("[Sync:%s] Stopped", self.context.name)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def get_status(self) -> dict:
        """Return controller state for frontend display."""
        return {
            "context": self.context.name,
            "is_running": self.is_running,
            "interval_ms": self.interval_ms,
            "in_flight": self._in_flight,
            **self._state.to_dict(),
        }

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def refresh(self, manual: bool = False) -> bool:
        """Run one fetch cycle.

        Returns False without touching the network when a cycle is already
        in flight or the controller has been stopped.
        """
        if self._stopped:
            logger.debug("[Sync:%s] Stopped — refresh ignored", self.context.name)
            return False
        if self._in_flight:
            logger.debug(
                "[Sync:%s] Fetch already in flight — %s refresh dropped",
                self.context.name, "manual" if manual else "scheduled",
            )
            return False

        self._in_flight = True
        generation = self._generation
        self._set_state(self._state.model_copy(update={
            "status": SyncStatus.LOADING,
            "refreshing": manual,
            "error": None,
        }))

        # Shielded: cancelling the caller leaves the request running
        self._cycle_task = asyncio.ensure_future(self._cycle(generation))
        await asyncio.shield(self._cycle_task)
        return True

    async def _cycle(self, generation: int) -> None:
        try:
            snapshot = await self._run_cycle()
        except DashboardAPIError as exc:
            self._finish_error(generation, str(exc))
        except Exception as exc:
            logger.exception("[Sync:%s] Fetch cycle crashed", self.context.name)
            self._finish_error(generation, str(exc) or exc.__class__.__name__)
        else:
            self._finish_ok(generation, snapshot)
        finally:
            self._in_flight = False
            self._cycle_task = None

    async def _scheduled_tick(self) -> None:
        try:
            await self.refresh(manual=False)
        except asyncio.CancelledError:
            logger.debug(
                "[Sync:%s] Scheduler stopped — in-flight fetch left to finish",
                self.context.name,
            )
            raise

    async def _run_cycle(self) -> dict[str, Any]:
        """Issue every step in order; required failures propagate."""
        previous = self._state.data or {}
        snapshot: dict[str, Any] = {}
        for step in self.context.steps:
            fetch = getattr(self._client, step.method)
            try:
                snapshot[step.key] = await fetch()
            except DashboardAPIError as exc:
                if step.required:
                    raise
                snapshot[step.key] = previous.get(step.key, step.fallback)
                logger.info(
                    "[Sync:%s] Best-effort %s failed (%s) — showing %r",
                    self.context.name, step.key, exc, snapshot[step.key],
                )
        return snapshot

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation or self._stopped:
            logger.debug(
                "[Sync:%s] Discarding result from a stopped session",
                self.context.name,
            )
            return False
        return True

    def _finish_ok(self, generation: int, snapshot: dict[str, Any]) -> None:
        if not self._is_current(generation):
            return
        self._set_state(SyncState(
            status=SyncStatus.READY,
            data=snapshot,
            last_updated=datetime.now(),
        ))
        logger.debug("[Sync:%s] Snapshot updated", self.context.name)

    def _finish_error(self, generation: int, error: str) -> None:
        if not self._is_current(generation):
            return
        logger.error("[Sync:%s] Error fetching data: %s", self.context.name, error)
        # Keep the last-known-good data under the error banner
        self._set_state(self._state.model_copy(update={
            "status": SyncStatus.ERROR,
            "error": error,
            "refreshing": False,
        }))

    def _set_state(self, state: SyncState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("[Sync:%s] State listener failed", self.context.name)
