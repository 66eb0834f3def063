"""
Indicator Engine
----------------
Pure, deterministic implementations of RSI (Wilder), EMA, MACD and Bollinger
Bands over a price series.

Every function returns a list index-aligned with its input. Entries inside the
warm-up window are ``None``; a computed number never appears there.

Warm-up lengths:
- RSI(p): indices [0, p) undefined, first value at p.
- Bollinger(p): indices [0, p - 1) undefined.
- EMA(p): indices [0, p - 1) undefined, seeded with the SMA at p - 1.
- MACD(f, s, g): MACD from s - 1, signal and histogram from s + g - 2.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Union

import numpy as np

from .config import IndicatorCfg
from .errors import InvalidParameter
from .models import BollingerBand, MacdPoint, PricePoint
from .validator import normalize_kind, require_multiplier, require_period

PriceInput = Union[Sequence[PricePoint], Sequence[float], np.ndarray]
IndicatorSeries = Union[
    list[Optional[float]], list[BollingerBand], list[MacdPoint]
]


def as_price_array(series: PriceInput) -> np.ndarray:
    """Extracts a float64 price vector from PricePoints or plain numbers."""
    if isinstance(series, np.ndarray):
        return series.astype("float64", copy=False)
    values: Iterable[float] = (
        p.price if isinstance(p, PricePoint) else p for p in series
    )
    return np.fromiter(values, dtype="float64", count=len(series))


def compute_rsi(series: PriceInput, period: int = 14) -> list[Optional[float]]:
    """
    Relative Strength Index with Wilder's smoothing.

    The first ``period`` deltas seed the average gain/loss; the first value is
    emitted at index ``period``. A zero average loss gives RSI = 100.
    """
    period = require_period("period", period)
    prices = as_price_array(series)
    n = int(prices.size)

    out: list[Optional[float]] = [None] * n
    if n <= period:
        return out

    deltas = np.diff(prices)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(gains[:period].sum()) / period
    avg_loss = float(losses[:period].sum()) / period
    out[period] = _rsi_value(avg_gain, avg_loss)

    # deltas[i - 1] is the move into index i
    for i in range(period + 1, n):
        avg_gain = (avg_gain * (period - 1) + float(gains[i - 1])) / period
        avg_loss = (avg_loss * (period - 1) + float(losses[i - 1])) / period
        out[i] = _rsi_value(avg_gain, avg_loss)

    return out


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0.0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def compute_bollinger(
    series: PriceInput, period: int = 20, multiplier: float = 2.0
) -> list[BollingerBand]:
    """
    Bollinger Bands: trailing mean +/- ``multiplier`` population standard
    deviations over an inclusive window of ``period`` prices.
    """
    period = require_period("period", period)
    multiplier = require_multiplier("multiplier", multiplier)
    prices = as_price_array(series)
    n = int(prices.size)

    out = [BollingerBand() for _ in range(min(n, period - 1))]
    if n < period:
        return out

    windows = np.lib.stride_tricks.sliding_window_view(prices, period)
    middle = windows.mean(axis=1)
    std = windows.std(axis=1, ddof=0)
    upper = middle + multiplier * std
    lower = middle - multiplier * std

    for m, u, lo in zip(middle.tolist(), upper.tolist(), lower.tolist()):
        out.append(BollingerBand(upper=u, middle=m, lower=lo))
    return out


def compute_ema(
    values: Sequence[float] | np.ndarray, period: int
) -> list[Optional[float]]:
    """
    Exponential moving average with k = 2 / (period + 1), seeded with the
    simple average of the first ``period`` values.
    """
    period = require_period("period", period)
    vals = np.asarray(values, dtype="float64")
    n = int(vals.size)

    out: list[Optional[float]] = [None] * n
    if n < period:
        return out

    k = 2.0 / (period + 1)
    ema = float(vals[:period].sum()) / period
    out[period - 1] = ema
    for i in range(period, n):
        ema = float(vals[i]) * k + ema * (1.0 - k)
        out[i] = ema
    return out


def compute_macd(
    series: PriceInput, fast: int = 12, slow: int = 26, signal: int = 9
) -> list[MacdPoint]:
    """
    MACD line (fast EMA - slow EMA), its signal line and histogram.

    The signal EMA runs over the defined MACD values only and is then
    left-padded with ``None`` to restore alignment with the input.
    """
    fast = require_period("fast", fast)
    slow = require_period("slow", slow)
    signal = require_period("signal", signal)
    if fast >= slow:
        raise InvalidParameter("fast", fast, f"must be smaller than slow={slow}")

    prices = as_price_array(series)
    fast_ema = compute_ema(prices, fast)
    slow_ema = compute_ema(prices, slow)

    macd_line: list[Optional[float]] = [
        f - s if f is not None and s is not None else None
        for f, s in zip(fast_ema, slow_ema)
    ]

    defined = [m for m in macd_line if m is not None]
    pad = len(macd_line) - len(defined)
    signal_line = [None] * pad + compute_ema(defined, signal)

    out: list[MacdPoint] = []
    for m, s in zip(macd_line, signal_line):
        hist = m - s if m is not None and s is not None else None
        out.append(MacdPoint(macd=m, signal=s, histogram=hist))
    return out


def compute_indicators(
    series: PriceInput,
    kind: str,
    params: IndicatorCfg | None = None,
) -> IndicatorSeries:
    """
    Dispatches to one indicator.

    ``kind`` is 'rsi', 'macd' or 'bollinger' ('bb' accepted). Parameters left
    at their defaults reproduce RSI(14), MACD(12, 26, 9) and Bollinger(20, 2).
    """
    kind = normalize_kind(kind)
    params = params if params is not None else IndicatorCfg()

    if kind == "rsi":
        return compute_rsi(series, params.resolved_period(kind))
    if kind == "macd":
        return compute_macd(series, params.fast, params.slow, params.signal)
    return compute_bollinger(series, params.resolved_period(kind), params.multiplier)
