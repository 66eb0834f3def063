import numpy as np

from crypto_backtester.models import PricePoint

T0 = 1_704_067_200_000  # 2024-01-01T00:00:00Z
HOUR_MS = 3_600_000


def make_series(prices, start=T0, step=HOUR_MS):
    return [
        PricePoint(date=start + i * step, price=float(p)) for i, p in enumerate(prices)
    ]


def rising_prices(n=30):
    """100 -> 110 with +/-0.05 alternating noise; every delta stays positive."""
    base = np.linspace(100.0, 110.0, n)
    noise = 0.05 * (-1.0) ** np.arange(n)
    return (base + noise).tolist()


def dip_and_recover_prices():
    """
    40 points shaped for RSI(14):
    - 0..14 climb by +1 (RSI 100 at 14, nothing to sell)
    - 15..20 drop by 4.5 per bar; RSI ~33.1 at 19, ~28.4 at 20 -> BUY at 20
    - 21..34 flat at 87; RSI stays ~28.4 while long
    - 35 jumps to 107; RSI ~75.5 -> SELL at 35
    - 36..39 keep rising, RSI stays high while flat
    """
    rise = [100.0 + i for i in range(15)]
    drop = [114.0 - 4.5 * k for k in range(1, 7)]
    flat = [87.0] * 14
    return rise + drop + flat + [107.0, 108.0, 109.0, 110.0, 111.0]


def sine_prices(n=200, cycles=3.0):
    return (100.0 + 10.0 * np.sin(np.linspace(0, 2 * np.pi * cycles, n))).tolist()
