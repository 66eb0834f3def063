"""
Tests for crypto_backtester.indicators
--------------------------------------
Coverage:
- RSI warm-up, seed value, Wilder smoothing and the zero-loss boundary.
- Bollinger warm-up, exact values, band ordering, agreement with a naive scan.
- EMA seeding and MACD alignment / padding.
- Parameter validation and the compute_indicators dispatcher.
"""

import math
import statistics

import numpy as np
import pytest

from crypto_backtester.config import IndicatorCfg
from crypto_backtester.errors import InvalidParameter
from crypto_backtester.indicators import (
    compute_bollinger,
    compute_ema,
    compute_indicators,
    compute_macd,
    compute_rsi,
)
from tests.utils import make_series, rising_prices

# ----------------------------------------------------------------
# RSI
# ----------------------------------------------------------------


@pytest.mark.parametrize("period", [2, 5, 14])
def test_rsi_warmup(random_walk, period):
    rsi = compute_rsi(random_walk, period)
    assert len(rsi) == len(random_walk)
    assert all(v is None for v in rsi[:period])
    assert all(v is not None for v in rsi[period:])


def test_rsi_too_short_is_all_undefined():
    assert compute_rsi(make_series([1, 2, 3]), 14) == [None, None, None]
    # exactly `period` points gives no delta window for a first value
    assert compute_rsi(make_series(range(14)), 14) == [None] * 14
    assert compute_rsi([], 14) == []


def test_rsi_seed_and_wilder_step():
    # deltas +1, -1, +1 -> seed 0.5/0.5 = 50, then 0.75/0.25 -> RS 3 -> 75
    rsi = compute_rsi([1.0, 2.0, 1.0, 2.0], period=2)
    assert rsi[:2] == [None, None]
    assert rsi[2] == pytest.approx(50.0)
    assert rsi[3] == pytest.approx(75.0)


def test_rsi_zero_average_loss_is_100():
    rsi = compute_rsi(make_series(rising_prices()), 14)
    assert all(v == 100.0 for v in rsi[14:])

    flat = compute_rsi([5.0] * 20, 14)
    assert flat[14:] == [100.0] * 6


def test_rsi_bounded(random_walk):
    values = [v for v in compute_rsi(random_walk) if v is not None]
    assert values
    assert all(0.0 <= v <= 100.0 for v in values)


# ----------------------------------------------------------------
# Bollinger Bands
# ----------------------------------------------------------------


def test_bollinger_warmup(random_walk):
    bands = compute_bollinger(random_walk, period=20)
    assert len(bands) == len(random_walk)
    for b in bands[:19]:
        assert (b.upper, b.middle, b.lower) == (None, None, None)
    assert all(b.middle is not None for b in bands[19:])


def test_bollinger_exact_values():
    bands = compute_bollinger([1.0, 2.0, 3.0, 4.0, 5.0], period=5, multiplier=2)
    last = bands[-1]
    # population std of 1..5 is sqrt(2)
    assert last.middle == pytest.approx(3.0)
    assert last.upper == pytest.approx(3.0 + 2 * math.sqrt(2))
    assert last.lower == pytest.approx(3.0 - 2 * math.sqrt(2))


def test_bollinger_band_ordering(random_walk):
    for b in compute_bollinger(random_walk):
        if b.middle is None:
            continue
        assert b.lower <= b.middle <= b.upper
        assert b.lower < b.upper


def test_bollinger_flat_window_collapses_bands():
    bands = compute_bollinger([100.0] * 25, period=20)
    for b in bands[19:]:
        assert b.lower == b.middle == b.upper == 100.0


def test_bollinger_matches_naive_window_scan(random_walk):
    period, mult = 20, 2.0
    prices = [p.price for p in random_walk]
    bands = compute_bollinger(random_walk, period, mult)

    for i in range(period - 1, len(prices)):
        window = prices[i - period + 1 : i + 1]
        mean = sum(window) / period
        std = statistics.pstdev(window)
        assert bands[i].middle == pytest.approx(mean, rel=1e-12)
        assert bands[i].upper == pytest.approx(mean + mult * std, rel=1e-9)
        assert bands[i].lower == pytest.approx(mean - mult * std, rel=1e-9)


def test_bollinger_short_series():
    bands = compute_bollinger([1.0, 2.0], period=20)
    assert len(bands) == 2
    assert all(b.middle is None for b in bands)


# ----------------------------------------------------------------
# EMA / MACD
# ----------------------------------------------------------------


def test_ema_seeded_with_sma():
    ema = compute_ema([1.0, 2.0, 3.0, 4.0, 5.0], 3)
    assert ema[:2] == [None, None]
    assert ema[2] == pytest.approx(2.0)
    assert ema[3] == pytest.approx(3.0)
    assert ema[4] == pytest.approx(4.0)


def test_ema_short_input():
    assert compute_ema([1.0, 2.0], 3) == [None, None]


def test_macd_small_example():
    macd = compute_macd([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], fast=2, slow=3, signal=2)

    assert [m.macd is None for m in macd] == [True, True, False, False, False, False]
    assert all(m.macd == pytest.approx(0.5) for m in macd[2:])

    # signal EMA(2) over the 4 defined MACD values starts at its 2nd value
    assert [m.signal is None for m in macd] == [True, True, True, False, False, False]
    assert all(m.signal == pytest.approx(0.5) for m in macd[3:])
    assert all(m.histogram == pytest.approx(0.0) for m in macd[3:])


def test_macd_warmup_lengths(random_walk):
    macd = compute_macd(random_walk, 12, 26, 9)
    first_macd = next(i for i, m in enumerate(macd) if m.macd is not None)
    first_signal = next(i for i, m in enumerate(macd) if m.signal is not None)
    assert first_macd == 25
    assert first_signal == 25 + 9 - 1


def test_macd_histogram_alignment(random_walk):
    for m in compute_macd(random_walk):
        defined = m.macd is not None and m.signal is not None
        assert (m.histogram is not None) == defined
        if defined:
            assert m.histogram == m.macd - m.signal


def test_macd_too_short_for_signal():
    macd = compute_macd(make_series(range(30)), 12, 26, 9)
    assert any(m.macd is not None for m in macd)
    assert all(m.signal is None and m.histogram is None for m in macd)


# ----------------------------------------------------------------
# Validation & dispatch
# ----------------------------------------------------------------


@pytest.mark.parametrize("bad", [0, -3, 2.5, True, "14", None])
def test_invalid_period_rejected(bad):
    with pytest.raises(InvalidParameter, match="period"):
        compute_rsi([1.0, 2.0, 3.0], bad)


def test_numpy_integer_periods_accepted(random_walk):
    assert compute_rsi(random_walk, np.int64(14)) == compute_rsi(random_walk, 14)
    assert compute_macd(random_walk, *np.arange(12, 27, 14)) == compute_macd(
        random_walk, 12, 26
    )

    params = IndicatorCfg(period=np.int64(10))
    assert type(params.period) is int
    assert compute_indicators(random_walk, "bb", params) == compute_bollinger(
        random_walk, 10
    )


def test_swapped_macd_periods_rejected():
    with pytest.raises(InvalidParameter, match="fast"):
        compute_macd([1.0] * 50, fast=26, slow=12)
    with pytest.raises(InvalidParameter):
        compute_macd([1.0] * 50, fast=12, slow=12)


def test_negative_multiplier_rejected():
    with pytest.raises(InvalidParameter, match="multiplier"):
        compute_bollinger([1.0] * 30, 20, -1.0)


def test_invalid_parameter_is_value_error():
    with pytest.raises(ValueError):
        compute_bollinger([1.0] * 30, 0)


def test_compute_indicators_dispatch(random_walk):
    assert compute_indicators(random_walk, "rsi") == compute_rsi(random_walk, 14)
    assert compute_indicators(random_walk, "MACD") == compute_macd(random_walk)
    assert compute_indicators(random_walk, "bb") == compute_bollinger(random_walk, 20, 2)

    params = IndicatorCfg(period=7, multiplier=1.5)
    assert compute_indicators(random_walk, "rsi", params) == compute_rsi(random_walk, 7)
    assert compute_indicators(random_walk, "bollinger", params) == compute_bollinger(
        random_walk, 7, 1.5
    )


def test_compute_indicators_unknown_kind(random_walk):
    with pytest.raises(InvalidParameter, match="kind"):
        compute_indicators(random_walk, "stochastic")


@pytest.mark.parametrize("kind", ["rsi", "macd", "bollinger"])
def test_compute_indicators_is_idempotent(random_walk, kind):
    first = compute_indicators(random_walk, kind)
    second = compute_indicators(random_walk, kind)
    assert first == second


def test_plain_float_input_matches_price_points(random_walk):
    prices = [p.price for p in random_walk]
    assert compute_rsi(prices) == compute_rsi(random_walk)
    assert compute_macd(prices) == compute_macd(random_walk)
