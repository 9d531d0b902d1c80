"""Screen views — derived, JSON-ready data for each screen context.

Views are recomputed from the controller's latest snapshot on every call;
nothing here is cached or written back.
"""

from __future__ import annotations

from typing import Any

from trading_dashboard.engine.aggregator import (
    average_today_profit,
    flatten_signals,
    group_signals_by_symbol,
    sort_positions_by_entry_date_desc,
    top_symbols_by_avg_profit,
    total_active_signal_count,
)
from trading_dashboard.models.portfolio import Position
from trading_dashboard.models.signals import OUTCOME_HORIZONS, Signal, StockSignalGroup
from trading_dashboard.models.sync import SyncState

HOME_PREVIEW_POSITIONS = 3
HOME_TOP_SYMBOLS = 3


def _data(state: SyncState) -> dict[str, Any]:
    return state.data or {}


def screen_view(state: SyncState) -> dict[str, Any]:
    """Status fields every screen shows (loading, error banner, refresh spinner)."""
    return state.to_dict()


def home_view(state: SyncState) -> dict[str, Any]:
    data = _data(state)
    groups = data.get("signals_by_stock") or []
    view: dict[str, Any] = {
        **screen_view(state),
        "portfolio_summary": data.get("portfolio_summary"),
        "total_signals": total_active_signal_count(groups),
        "top_symbols": [
            {
                "symbol": g.get("symbol"),
                "avg_profit": g["avg_profit"],
                "signal_count": len(g.get("signals") or []),
            }
            for g in top_symbols_by_avg_profit(groups, HOME_TOP_SYMBOLS)
        ],
        "version": data.get("version", "Unknown"),
    }
    if "positions" in data:
        # Legacy home layout previews the newest positions
        view["recent_positions"] = sort_positions_by_entry_date_desc(
            data.get("positions") or [],
        )[:HOME_PREVIEW_POSITIONS]
    return view


def positions_view(state: SyncState) -> dict[str, Any]:
    positions = sort_positions_by_entry_date_desc(_data(state).get("positions") or [])
    return {
        **screen_view(state),
        "count": len(positions),
        "positions": positions,
        "version": _data(state).get("version", "Unknown"),
    }


def signals_view(state: SyncState) -> dict[str, Any]:
    groups = _data(state).get("signals_by_stock") or []
    signals = flatten_signals(groups)
    return {
        **screen_view(state),
        "count": len(signals),
        "signals": signals,
        "groups": group_signals_by_symbol(groups),
        "version": _data(state).get("version", "Unknown"),
    }


# ── Detail views ───────────────────────────────────────────────────


def position_detail(position: dict[str, Any]) -> dict[str, Any]:
    """Raw position fields plus total value and distance to stop."""
    model = Position.model_validate(position)
    return {
        **position,
        "total_value": model.total_value,
        "distance_to_stop_pct": model.distance_to_stop_pct,
    }


def signal_detail(signal: dict[str, Any], symbol: str | None = None) -> dict[str, Any]:
    """A signal with direction and its outcomes in horizon order."""
    model = Signal.model_validate(signal)
    outcomes = model.outcomes or {}
    return {
        "symbol": symbol or signal.get("symbol"),
        "signal_type": model.signal_type,
        "direction": "bullish" if model.is_bullish else "bearish",
        "signal_price": model.signal_price,
        "signal_date": model.resolved_timestamp,
        "strategy": model.strategy or "N/A",
        "strategy_version": model.strategy_version or "N/A",
        "status": model.status or "N/A",
        "today": model.today.model_dump() if model.today else None,
        "outcomes": [
            {"horizon": horizon, **outcomes[horizon].model_dump()}
            for horizon in OUTCOME_HORIZONS
            if horizon in outcomes
        ],
        "indicators": dict(model.indicators or {}),
    }


def stock_detail(group: dict[str, Any]) -> dict[str, Any]:
    """One symbol's group: its stats and every signal in detail form."""
    model = StockSignalGroup.model_validate(group)
    signals = group.get("signals") or []
    return {
        "symbol": model.symbol,
        "total_signals": model.total_signals,
        "avg_profit_7d": model.avg_profit_7d,
        "avg_today_profit": average_today_profit(signals),
        "signals": [signal_detail(s, model.symbol) for s in signals],
    }


def find_position(state: SyncState, symbol: str) -> dict[str, Any] | None:
    for position in _data(state).get("positions") or []:
        if isinstance(position, dict) and position.get("symbol") == symbol:
            return position
    return None


def find_signal_group(state: SyncState, symbol: str) -> dict[str, Any] | None:
    for group in _data(state).get("signals_by_stock") or []:
        if isinstance(group, dict) and group.get("symbol") == symbol:
            return group
    return None
