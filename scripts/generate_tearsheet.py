"""
Script: Backtest Tearsheet
Purpose: Plots the equity curve and drawdown of one `backtest` run.

Reads `equity.csv` (and `trades.csv` when present) from a run directory
written by `crypto-backtester backtest` and saves a two-panel PNG.

Usage:
    python scripts/generate_tearsheet.py --run-dir outputs/backtest/<run_id>
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import pandas as pd


def plot_tearsheet(run_dir: Path, out_path: Path) -> None:
    equity_path = run_dir / "equity.csv"
    if not equity_path.exists():
        raise SystemExit(f"Error: no equity.csv in {run_dir}. Did you run the backtest?")

    equity = pd.read_csv(equity_path)
    if equity.empty:
        raise SystemExit("Equity curve is empty; nothing to plot.")
    equity["time"] = pd.to_datetime(equity["date"], unit="ms", utc=True)

    trades_path = run_dir / "trades.csv"
    trades = pd.read_csv(trades_path) if trades_path.exists() else pd.DataFrame()

    title = run_dir.name
    summary_path = run_dir / "summary.json"
    if summary_path.exists():
        s = json.loads(summary_path.read_text(encoding="utf-8"))
        title = (
            f"{s['strategy']} | ROI {s['roi']:.2f}% | "
            f"Win rate {s['win_rate']:.1f}% | Max DD {s['max_drawdown']:.2f}%"
        )

    # 2 panels: equity on top, drawdown below
    fig, (ax1, ax2) = plt.subplots(
        2, 1, figsize=(12, 8), sharex=True, gridspec_kw={"height_ratios": [3, 1]}
    )

    ax1.plot(equity["time"], equity["balance"], color="#2980b9", linewidth=2, label="Equity")

    if not trades.empty:
        trades["time"] = pd.to_datetime(trades["date"], unit="ms", utc=True)
        for side, color, marker in (("BUY", "#27ae60", "^"), ("SELL", "#c0392b", "v")):
            fills = trades[trades["side"] == side]
            marks = equity.set_index("date").reindex(fills["date"])["balance"]
            ax1.scatter(
                fills["time"], marks.to_numpy(), color=color, marker=marker, s=30, label=side
            )

    ax1.set_title(title, fontsize=14, fontweight="bold", pad=15)
    ax1.set_ylabel("Balance", fontsize=12)
    ax1.grid(True, which="both", linestyle="--", alpha=0.3)
    ax1.legend(loc="upper left")

    ax2.fill_between(equity["time"], -equity["drawdown_pct"], 0, color="#c0392b", alpha=0.3)
    ax2.set_ylabel("Drawdown (%)", fontsize=12)
    ax2.set_xlabel("Date", fontsize=12)
    ax2.grid(True, which="both", linestyle="--", alpha=0.3)

    ax2.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
    fig.autofmt_xdate()

    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(out_path, dpi=150)
    print(f"[OK] tearsheet saved to: {out_path}")


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--run-dir", required=True, help="outputs/backtest/<run_id>")
    ap.add_argument("--out", default=None, help="PNG path (default: <run-dir>/tearsheet.png)")
    args = ap.parse_args()

    run_dir = Path(args.run_dir)
    out = Path(args.out) if args.out else run_dir / "tearsheet.png"
    plot_tearsheet(run_dir, out)


if __name__ == "__main__":
    main()
