"""Portfolio models — PortfolioSummary and Position as served by the bot.

Unknown backend fields are kept (``extra="allow"``) so typed access never
drops data the presentation layer might want.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class PortfolioSummary(BaseModel):
    """Portfolio-wide snapshot from ``GET /api/portfolio_summary``."""

    model_config = ConfigDict(extra="allow")

    position_count: int = 0
    overall_pl_pct: float = 0.0
    total_profit_dollars: float = 0.0
    total_allocated_pct: float = 0.0


class Position(BaseModel):
    """A single open position from ``GET /api/positions``."""

    model_config = ConfigDict(extra="allow")

    symbol: str
    strategy: str = ""
    entry_price: float = 0.0
    current_price: float = 0.0
    quantity: int = 0
    profit_pct: float = 0.0
    profit_dollars: float = 0.0
    current_stop: float = 0.0
    initial_stop: float = 0.0
    entry_date: str | None = None  # ISO-8601, parsed lazily by the engine
    days_held: int = 0
    profit_taken_50pct: bool = False

    @property
    def total_value(self) -> float:
        """Current market value of the position."""
        return self.current_price * self.quantity

    @property
    def distance_to_stop_pct(self) -> float | None:
        """How far the price sits above the current stop, in percent."""
        if not self.current_price:
            return None
        return (self.current_price - self.current_stop) / self.current_price * 100
