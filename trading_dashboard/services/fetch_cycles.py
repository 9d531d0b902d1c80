"""Screen contexts — which endpoints one fetch cycle calls, and in what order.

A required step aborts the cycle on failure; a best-effort step falls back
to the previously displayed value (or its fallback label) and the cycle
carries on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FetchStep:
    """One HTTP call inside a fetch cycle."""

    key: str  # snapshot key the result is stored under
    method: str  # DashboardAPIClient coroutine name
    required: bool = True
    fallback: Any = None


@dataclass(frozen=True)
class ScreenContext:
    """A named sequence of fetch steps, issued strictly in order."""

    name: str
    steps: tuple[FetchStep, ...]

    @property
    def keys(self) -> list[str]:
        return [step.key for step in self.steps]


_SUMMARY = FetchStep("portfolio_summary", "get_portfolio_summary")
_POSITIONS = FetchStep("positions", "get_positions")
_SIGNALS = FetchStep("signals_by_stock", "get_signals_by_stock")
_VERSION = FetchStep("version", "get_version", required=False, fallback="Unknown")

HOME = ScreenContext("home", (_SUMMARY, _SIGNALS, _VERSION))
HOME_LEGACY = ScreenContext("home_legacy", (_SUMMARY, _POSITIONS))
POSITIONS = ScreenContext("positions", (_POSITIONS, _VERSION))
SIGNALS = ScreenContext("signals", (_SIGNALS, _VERSION))

SCREEN_CONTEXTS: dict[str, ScreenContext] = {
    ctx.name: ctx for ctx in (HOME, HOME_LEGACY, POSITIONS, SIGNALS)
}
