"""
Performance Metrics
-------------------
Extended statistics and tabular exports for a BacktestResult.
The frames use NaN where the core records use None.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd

from .models import BacktestResult, PricePoint

_TRADE_COLS = [
    "id",
    "side",
    "date",
    "time",
    "price",
    "balance_after",
    "profit",
    "profit_percent",
]


def _nan(x: Optional[float]) -> float:
    return np.nan if x is None else float(x)


def _to_time(dates: pd.Series) -> pd.Series:
    return pd.to_datetime(dates, unit="ms", utc=True)


def trades_frame(result: BacktestResult) -> pd.DataFrame:
    """One row per ledger entry, in execution order."""
    if not result.trades:
        return pd.DataFrame(columns=_TRADE_COLS)

    df = pd.DataFrame([asdict(t) for t in result.trades])
    df["time"] = _to_time(df["date"])
    for col in ("profit", "profit_percent"):
        df[col] = pd.to_numeric(df[col], errors="coerce")
    return df[_TRADE_COLS]


def equity_frame(
    result: BacktestResult, initial_balance: Optional[float] = None
) -> pd.DataFrame:
    """
    Equity curve with running peak and drawdown (percent).

    The peak starts at ``initial_balance``, as in the simulator, so the
    drawdown column agrees with ``result.max_drawdown``. Left unset, the
    starting balance is recovered from the last mark and the net profit.
    """
    if not result.equity_curve:
        return pd.DataFrame(columns=["date", "time", "balance", "peak", "drawdown_pct"])

    df = pd.DataFrame(
        {
            "date": [p.date for p in result.equity_curve],
            "balance": [p.balance for p in result.equity_curve],
        }
    )
    if initial_balance is None:
        initial_balance = result.equity_curve[-1].balance - result.net_profit

    seeded = np.concatenate(([float(initial_balance)], df["balance"].to_numpy(float)))
    df["time"] = _to_time(df["date"])
    df["peak"] = np.maximum.accumulate(seeded)[1:]
    df["drawdown_pct"] = (df["peak"] - df["balance"]) / df["peak"] * 100.0
    return df[["date", "time", "balance", "peak", "drawdown_pct"]]


def round_trip_returns(result: BacktestResult) -> pd.Series:
    """profit_percent of each closed trade."""
    pct = [t.profit_percent for t in result.sell_trades]
    return pd.Series(pct, dtype=float)


def profit_factor(result: BacktestResult) -> float:
    """Gross profit over gross loss of closed trades; inf when nothing was lost."""
    profits = np.array([t.profit or 0.0 for t in result.sell_trades], dtype=float)
    if profits.size == 0:
        return 0.0
    gross_win = float(profits[profits > 0].sum())
    gross_loss = float(-profits[profits < 0].sum())
    if gross_loss == 0.0:
        return float("inf") if gross_win > 0 else 0.0
    return gross_win / gross_loss


def summary(result: BacktestResult) -> dict[str, Any]:
    """Flat dict of the headline numbers plus per-trade distribution stats."""
    r = round_trip_returns(result)
    n_closed = int(len(r))

    out: dict[str, Any] = {
        "strategy": result.strategy_name,
        "total_trades": result.total_trades,
        "closed_trades": n_closed,
        "profitable_trades": result.profitable_trades,
        "win_rate": float(result.win_rate),
        "net_profit": float(result.net_profit),
        "roi": float(result.roi),
        "max_drawdown": float(result.max_drawdown),
        "final_balance": (
            float(result.equity_curve[-1].balance) if result.equity_curve else None
        ),
    }

    if n_closed == 0:
        out.update(
            {
                "avg_trade_pct": 0.0,
                "best_trade_pct": 0.0,
                "worst_trade_pct": 0.0,
                "profit_factor": 0.0,
            }
        )
        return out

    # JSON has no Infinity; an all-winning run reports no profit factor
    pf = profit_factor(result)
    out.update(
        {
            "avg_trade_pct": float(r.mean()),
            "best_trade_pct": float(r.max()),
            "worst_trade_pct": float(r.min()),
            "profit_factor": pf if np.isfinite(pf) else None,
        }
    )
    return out


def indicator_frame(
    series: Sequence[PricePoint], kind: str, values: Sequence[Any]
) -> pd.DataFrame:
    """
    Lays an indicator series next to its prices.

    Columns: date, time, price and then 'rsi' | 'macd', 'signal', 'histogram'
    | 'upper', 'middle', 'lower' depending on ``kind``.
    """
    if len(values) != len(series):
        raise ValueError(
            f"indicator_frame: {len(values)} values for {len(series)} prices"
        )

    df = pd.DataFrame(
        {"date": [p.date for p in series], "price": [p.price for p in series]}
    )
    df.insert(1, "time", _to_time(df["date"]))

    if kind == "rsi":
        df["rsi"] = [_nan(v) for v in values]
        return df

    if kind == "macd":
        cols = ("macd", "signal", "histogram")
        rows = [(_nan(v.macd), _nan(v.signal), _nan(v.histogram)) for v in values]
    elif kind == "bollinger":
        cols = ("upper", "middle", "lower")
        rows = [(_nan(v.upper), _nan(v.middle), _nan(v.lower)) for v in values]
    else:
        raise ValueError(f"indicator_frame: unknown kind {kind!r}")

    block = pd.DataFrame(rows, columns=list(cols), dtype=float)
    for c in cols:
        df[c] = block[c].to_numpy()
    return df
