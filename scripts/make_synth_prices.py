"""
Script: Synthetic Price Generator
Purpose: Creates a deterministic crypto price series for manual CLI runs.

Description:
    Geometric random walk with a slow sine swing so that RSI, MACD and
    Bollinger strategies all see oversold/overbought phases.
    Output columns: timestamp (ISO-8601 UTC), price.

Usage:
    python scripts/make_synth_prices.py --out data/sample/synth.csv --points 720
"""

from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np
import pandas as pd


def make_synth_prices(
    start: str, n_points: int, freq: str, seed: int, start_price: float = 30_000.0
) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    idx = pd.date_range(start, periods=n_points, freq=freq, tz="UTC")

    swing = 0.004 * np.sin(np.linspace(0, 8 * np.pi, n_points))
    noise = rng.normal(0, 0.006, size=n_points)
    price = start_price * np.exp(np.cumsum(swing + noise))

    return pd.DataFrame({"timestamp": idx, "price": price})


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", required=True, help="Output .csv or .parquet path")
    ap.add_argument("--start", default="2024-01-01")
    ap.add_argument("--points", type=int, default=720)
    ap.add_argument("--freq", default="1h")
    ap.add_argument("--seed", type=int, default=7)
    args = ap.parse_args()

    df = make_synth_prices(args.start, args.points, args.freq, args.seed)

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    if out.suffix.lower() == ".parquet":
        df.to_parquet(out, index=False)
    else:
        df.to_csv(out, index=False)

    print(f"[OK] wrote {len(df)} points -> {out}")


if __name__ == "__main__":
    main()
