"""
Define trading signal rules based on indicator values.

Each rule looks at the indicator values aligned to one bar and returns a
``(buy, sell)`` pair. Both can be true on the same bar (a flat Bollinger
window touches both bands); the simulator decides which one is actionable.
An undefined (``None``) indicator value never produces a signal.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .config import IndicatorCfg
from .indicators import (
    PriceInput,
    as_price_array,
    compute_bollinger,
    compute_macd,
    compute_rsi,
)
from .models import BollingerBand, MacdPoint
from .validator import normalize_kind

RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0

Signal = tuple[bool, bool]
NO_SIGNAL: Signal = (False, False)


def rsi_signal(
    rsi: Optional[float],
    low: float = RSI_OVERSOLD,
    high: float = RSI_OVERBOUGHT,
) -> Signal:
    """Buy when RSI is strictly below ``low``, sell when strictly above ``high``."""
    if rsi is None:
        return NO_SIGNAL
    return rsi < low, rsi > high


def macd_cross_signal(prev: Optional[MacdPoint], curr: Optional[MacdPoint]) -> Signal:
    """
    Buy on a bullish cross (MACD moves from below to above its signal line),
    sell on a bearish cross. Needs both bars fully defined.
    """
    if prev is None or curr is None:
        return NO_SIGNAL
    if None in (prev.macd, prev.signal, curr.macd, curr.signal):
        return NO_SIGNAL
    buy = prev.macd < prev.signal and curr.macd > curr.signal
    sell = prev.macd > prev.signal and curr.macd < curr.signal
    return buy, sell


def bollinger_signal(price: float, band: BollingerBand) -> Signal:
    """Contrarian band touch: buy at or below the lower band, sell at or above the upper."""
    if not band.defined:
        return NO_SIGNAL
    return price <= band.lower, price >= band.upper


def build_signals(
    series: PriceInput, strategy: str, params: IndicatorCfg | None = None
) -> list[Signal]:
    """
    Computes the single indicator ``strategy`` needs and evaluates its rule
    on every bar. The result is index-aligned with ``series``.
    """
    strategy = normalize_kind(strategy, name="strategy")
    params = params if params is not None else IndicatorCfg()
    prices = as_price_array(series)

    if strategy == "rsi":
        rsi = compute_rsi(prices, params.resolved_period(strategy))
        return [rsi_signal(v) for v in rsi]

    if strategy == "macd":
        macd: Sequence[MacdPoint] = compute_macd(
            prices, params.fast, params.slow, params.signal
        )
        return [
            macd_cross_signal(macd[i - 1] if i > 0 else None, macd[i])
            for i in range(len(macd))
        ]

    bands = compute_bollinger(
        prices, params.resolved_period(strategy), params.multiplier
    )
    return [bollinger_signal(float(p), b) for p, b in zip(prices, bands)]


def strategy_label(strategy: str, params: IndicatorCfg | None = None) -> str:
    """Display name such as 'RSI [14]', 'MACD [12/26/9]' or 'BB [20, 2]'."""
    strategy = normalize_kind(strategy, name="strategy")
    params = params if params is not None else IndicatorCfg()

    if strategy == "rsi":
        return f"RSI [{params.resolved_period(strategy)}]"
    if strategy == "macd":
        return f"MACD [{params.fast}/{params.slow}/{params.signal}]"
    return f"BB [{params.resolved_period(strategy)}, {params.multiplier:g}]"
