"""Aggregator — pure transforms over the fetched positions and signal groups.

Every function works on the raw JSON the backend returned, never mutates
its input, and sorts stably: items whose keys tie keep their input order.
Unparsable or missing dates count as the Unix epoch (oldest).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

_EPOCH = 0.0


def parse_timestamp(value: Any) -> float:
    """ISO-8601 string → POSIX seconds; anything unusable → 0.0.

    Date-only and naive values are read as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        return _EPOCH
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def _signals_of(group: Any) -> list[dict]:
    if not isinstance(group, dict):
        return []
    signals = group.get("signals")
    return signals if isinstance(signals, list) else []


def _signal_time(signal: Any) -> float:
    if not isinstance(signal, dict):
        return _EPOCH
    return parse_timestamp(signal.get("signal_date") or signal.get("timestamp"))


def _latest_signal_time(group: Any) -> float:
    return max((_signal_time(s) for s in _signals_of(group)), default=_EPOCH)


def _groups(signal_groups: Any) -> list[Any]:
    return signal_groups if isinstance(signal_groups, list) else []


# ── Positions ──────────────────────────────────────────────────────


def sort_positions_by_entry_date_desc(positions: list[dict]) -> list[dict]:
    """Newest entry first."""
    if not isinstance(positions, list):
        return []
    return sorted(
        positions,
        key=lambda p: parse_timestamp(p.get("entry_date") if isinstance(p, dict) else None),
        reverse=True,
    )


# ── Signals ────────────────────────────────────────────────────────


def group_signals_by_symbol(signal_groups: list[dict]) -> list[dict]:
    """Order the backend's per-symbol groups by their newest signal.

    Groups without signals sort last (epoch 0). Applying this to its own
    output returns the same order.
    """
    return sorted(_groups(signal_groups), key=_latest_signal_time, reverse=True)


def flatten_signals(signal_groups: list[dict]) -> list[dict]:
    """All signals in one newest-first list.

    Each entry is a copy of the signal with its parent ``symbol`` and a
    resolved ``timestamp`` (``signal_date``, else the legacy ``timestamp``).
    """
    flat: list[dict] = []
    for group in _groups(signal_groups):
        for signal in _signals_of(group):
            if not isinstance(signal, dict):
                continue
            flat.append({
                **signal,
                "symbol": group.get("symbol"),
                "timestamp": signal.get("signal_date") or signal.get("timestamp"),
            })
    return sorted(flat, key=lambda s: parse_timestamp(s["timestamp"]), reverse=True)


def average_today_profit(signals: list[dict]) -> float:
    """Mean ``today.profit_pct`` over signals that carry it; 0 when none do."""
    values: list[float] = []
    for signal in signals or []:
        today = signal.get("today") if isinstance(signal, dict) else None
        if not isinstance(today, dict):
            continue
        profit = today.get("profit_pct")
        if isinstance(profit, (int, float)) and not isinstance(profit, bool):
            values.append(float(profit))
    if not values:
        return 0.0
    return sum(values) / len(values)


def top_symbols_by_avg_profit(signal_groups: list[dict], n: int) -> list[dict]:
    """Best ``n`` groups by average today-profit, best first.

    Each result is a copy of the group with ``avg_profit`` added. A group with
    no qualifying signal ranks as 0, between winners and losers.
    """
    if n <= 0:
        return []
    scored = [
        {**group, "avg_profit": average_today_profit(_signals_of(group))}
        for group in _groups(signal_groups)
        if isinstance(group, dict)
    ]
    scored.sort(key=lambda g: g["avg_profit"], reverse=True)
    return scored[:n]


def total_active_signal_count(signal_groups: list[dict]) -> int:
    return sum(len(_signals_of(group)) for group in _groups(signal_groups))
