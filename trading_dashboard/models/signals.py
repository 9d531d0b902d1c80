"""Pydantic models for signals and the per-symbol groups that carry them."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Outcome horizons in display order
OUTCOME_HORIZONS: tuple[str, ...] = ("1_day", "3_day", "7_day", "14_day", "30_day")

# Signal types shown as bullish; everything else is bearish
BULLISH_SIGNAL_TYPES: frozenset[str] = frozenset({"BUY", "BREAKOUT"})


class PricePoint(BaseModel):
    """Price and percent move at a point after the signal fired."""

    model_config = ConfigDict(extra="allow")

    price: float | None = None
    profit_pct: float | None = None


class Signal(BaseModel):
    """A discrete trading event reported by the strategy engine."""

    model_config = ConfigDict(extra="allow")

    signal_type: str = ""  # BUY | SELL | BREAKOUT | ...
    signal_price: float | None = None
    signal_date: str | None = None
    timestamp: str | None = None  # older payloads use this instead of signal_date
    strategy: str | None = None
    strategy_version: str | None = None
    status: str | None = None
    today: PricePoint | None = None
    outcomes: dict[str, PricePoint] | None = None
    indicators: dict[str, float | int | str | None] | None = None

    @property
    def is_bullish(self) -> bool:
        return self.signal_type.upper() in BULLISH_SIGNAL_TYPES

    @property
    def resolved_timestamp(self) -> str | None:
        return self.signal_date or self.timestamp


class StockSignalGroup(BaseModel):
    """One entry of ``GET /api/signals_by_stock``."""

    model_config = ConfigDict(extra="allow")

    symbol: str
    total_signals: int = 0
    avg_profit_7d: float | None = None
    signals: list[Signal] = Field(default_factory=list)

