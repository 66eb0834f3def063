"""
Crypto Backtester CLI

Glue layer: config -> price file -> indicators / simulator -> artifacts.
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict, is_dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from .config import Config, load_config
from .data_io import load_price_series, slice_dates
from .engine import run_backtest, run_backtests
from .indicators import compute_indicators
from .metrics import equity_frame, indicator_frame, summary, trades_frame
from .models import PricePoint
from .run_meta import build_run_meta, write_run_meta
from .validator import KINDS, normalize_kind

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


# -----------------------------
# Helpers
# -----------------------------
def _now_run_id() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def _json_default(x: Any) -> Any:
    if is_dataclass(x) and not isinstance(x, type):
        return asdict(x)
    return str(x)


def _write_json(path: Path, obj: Any) -> None:
    text = json.dumps(obj, indent=2, default=_json_default, allow_nan=False)
    path.write_text(text, encoding="utf-8")


def _print_compact_json(obj: Any) -> None:
    print(json.dumps(obj, default=_json_default, separators=(",", ":"), allow_nan=False))


def _run_dir(out_dir: str, run_id: str | None) -> tuple[str, Path]:
    run_id = run_id or _now_run_id()
    root = Path(out_dir) / run_id
    root.mkdir(parents=True, exist_ok=True)
    return run_id, root


def build_config(
    config_path: str | None = None,
    *,
    strategy: str | None = None,
    period: int | None = None,
    fast: int | None = None,
    slow: int | None = None,
    signal: int | None = None,
    multiplier: float | None = None,
    fee_rate: float | None = None,
    initial_balance: float | None = None,
) -> Config:
    """Loads the YAML config (or defaults) and applies command-line overrides."""
    cfg = load_config(config_path) if config_path else Config()

    ind_over = {
        k: v
        for k, v in {
            "period": period,
            "fast": fast,
            "slow": slow,
            "signal": signal,
            "multiplier": multiplier,
        }.items()
        if v is not None
    }
    exe_over = {
        k: v
        for k, v in {"fee_rate": fee_rate, "initial_balance": initial_balance}.items()
        if v is not None
    }

    # replace() re-runs __post_init__, so overrides are validated too
    indicators = replace(cfg.indicators, **ind_over) if ind_over else cfg.indicators
    execution = replace(cfg.execution, **exe_over) if exe_over else cfg.execution
    return replace(
        cfg,
        strategy=strategy or cfg.strategy,
        indicators=indicators,
        execution=execution,
    )


def _load_series(
    data_path: str, date_from: str | None, date_to: str | None
) -> list[PricePoint]:
    series = load_price_series(data_path)
    series = slice_dates(series, date_from, date_to)
    if not series:
        logger.warning("No price points left in %s after date filtering", data_path)
    return series


# -----------------------------
# Commands
# -----------------------------
def cmd_indicators(
    data_path: str,
    kind: str,
    *,
    config_path: str | None = None,
    out_dir: str = "outputs/indicators",
    run_id: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    hash_data: bool = False,
    argv: list[str] | None = None,
    **overrides: Any,
) -> Path:
    kind = normalize_kind(kind)
    cfg = build_config(config_path, **overrides)
    series = _load_series(data_path, date_from, date_to)

    values = compute_indicators(series, kind, cfg.indicators)
    frame = indicator_frame(series, kind, values)

    run_id, root = _run_dir(out_dir, run_id)
    out_path = root / "indicators.csv"
    frame.to_csv(out_path, index=False)

    meta = build_run_meta(
        cmd="indicators",
        argv=argv or [],
        run_id=run_id,
        outputs_dir=root,
        config_path=config_path,
        config_obj=cfg,
        data_path=data_path,
        hash_data=hash_data,
    )
    meta.update({"kind": kind, "rows": len(frame)})
    write_run_meta(root, meta)

    _print_compact_json({"run_id": run_id, "artifacts_dir": str(root), "rows": len(frame)})
    return root


def cmd_backtest(
    data_path: str,
    *,
    config_path: str | None = None,
    out_dir: str = "outputs/backtest",
    run_id: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    write_trades: bool = True,
    write_equity: bool = True,
    hash_data: bool = False,
    argv: list[str] | None = None,
    **overrides: Any,
) -> Path:
    cfg = build_config(config_path, **overrides)
    series = _load_series(data_path, date_from, date_to)

    result = run_backtest(
        series,
        cfg.strategy,
        cfg.indicators,
        fee_rate=cfg.execution.fee_rate,
        initial_balance=cfg.execution.initial_balance,
    )
    stats = summary(result)

    run_id, root = _run_dir(out_dir, run_id)
    _write_json(root / "summary.json", stats)

    meta = build_run_meta(
        cmd="backtest",
        argv=argv or [],
        run_id=run_id,
        outputs_dir=root,
        config_path=config_path,
        config_obj=cfg,
        data_path=data_path,
        hash_data=hash_data,
    )
    meta.update(
        {
            "asset": cfg.asset,
            "date_from": date_from,
            "date_to": date_to,
            "write_trades": write_trades,
            "write_equity": write_equity,
        }
    )
    write_run_meta(root, meta)

    if write_trades:
        trades_frame(result).to_csv(root / "trades.csv", index=False)
    if write_equity:
        equity_frame(result, cfg.execution.initial_balance).to_csv(
            root / "equity.csv", index=False
        )

    _print_compact_json({"run_id": run_id, "artifacts_dir": str(root), **stats})
    return root


def cmd_compare(
    data_path: str,
    *,
    strategies: Sequence[str] = KINDS,
    config_path: str | None = None,
    out_dir: str = "outputs/compare",
    run_id: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    workers: int | None = None,
    hash_data: bool = False,
    argv: list[str] | None = None,
    **overrides: Any,
) -> Path:
    cfg = build_config(config_path, **overrides)
    series = _load_series(data_path, date_from, date_to)

    results = run_backtests(
        series,
        strategies,
        cfg.indicators,
        fee_rate=cfg.execution.fee_rate,
        initial_balance=cfg.execution.initial_balance,
        max_workers=workers,
    )
    table = pd.DataFrame([summary(r) for r in results.values()])
    table.insert(0, "kind", list(results.keys()))

    run_id, root = _run_dir(out_dir, run_id)
    table.to_csv(root / "comparison.csv", index=False)

    meta = build_run_meta(
        cmd="compare",
        argv=argv or [],
        run_id=run_id,
        outputs_dir=root,
        config_path=config_path,
        config_obj=cfg,
        data_path=data_path,
        hash_data=hash_data,
    )
    meta.update({"strategies": list(results.keys()), "workers": workers})
    write_run_meta(root, meta)

    best = table.sort_values("roi", ascending=False).iloc[0] if len(table) else None
    _print_compact_json(
        {
            "run_id": run_id,
            "artifacts_dir": str(root),
            "best": None if best is None else best["strategy"],
        }
    )
    return root


# -----------------------------
# Argument parsing
# -----------------------------
def _add_common(p: argparse.ArgumentParser, default_out: str) -> None:
    p.add_argument("--data", required=True, help="CSV, Parquet or market_chart JSON")
    p.add_argument("--config", default=None)
    p.add_argument("--from", dest="date_from", default=None)
    p.add_argument("--to", dest="date_to", default=None)
    p.add_argument("--out-dir", default=default_out)
    p.add_argument("--run-id", default=None)
    p.add_argument(
        "--hash-data",
        action="store_true",
        help="Compute SHA256 of the price file.",
    )
    p.add_argument("--period", type=int, default=None, help="RSI / Bollinger period")
    p.add_argument("--fast", type=int, default=None)
    p.add_argument("--slow", type=int, default=None)
    p.add_argument("--signal", type=int, default=None)
    p.add_argument("--multiplier", type=float, default=None)


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    keys = ("period", "fast", "slow", "signal", "multiplier", "fee_rate", "initial_balance")
    return {k: getattr(args, k, None) for k in keys}


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(description="Crypto indicator & backtest CLI")
    p.add_argument("--log-level", default="WARNING")
    sub = p.add_subparsers(dest="cmd", required=True)

    # ---------------- indicators ----------------
    p_ind = sub.add_parser("indicators", help="Compute one indicator series")
    _add_common(p_ind, "outputs/indicators")
    p_ind.add_argument("--kind", required=True, help="rsi | macd | bollinger (bb)")

    # ---------------- backtest ----------------
    p_bt = sub.add_parser("backtest", help="Run a single-strategy backtest")
    _add_common(p_bt, "outputs/backtest")
    p_bt.add_argument("--strategy", default=None, help="rsi | macd | bollinger (bb)")
    p_bt.add_argument("--fee-rate", type=float, default=None)
    p_bt.add_argument("--initial-balance", type=float, default=None)
    p_bt.add_argument(
        "--write-trades", action=argparse.BooleanOptionalAction, default=True
    )
    p_bt.add_argument(
        "--write-equity", action=argparse.BooleanOptionalAction, default=True
    )

    # ---------------- compare ----------------
    p_cmp = sub.add_parser("compare", help="Backtest several strategies concurrently")
    _add_common(p_cmp, "outputs/compare")
    p_cmp.add_argument("--strategies", nargs="+", default=list(KINDS))
    p_cmp.add_argument("--workers", type=int, default=None)
    p_cmp.add_argument("--fee-rate", type=float, default=None)
    p_cmp.add_argument("--initial-balance", type=float, default=None)

    args = p.parse_args(argv)
    logging.basicConfig(level=str(args.log_level).upper(), format=LOG_FORMAT)

    argv_list = list(argv) if argv is not None else []
    common = dict(
        config_path=args.config,
        out_dir=args.out_dir,
        run_id=args.run_id,
        date_from=args.date_from,
        date_to=args.date_to,
        hash_data=bool(args.hash_data),
        argv=argv_list,
        **_overrides(args),
    )

    if args.cmd == "indicators":
        cmd_indicators(args.data, args.kind, **common)
        return

    if args.cmd == "backtest":
        cmd_backtest(
            args.data,
            write_trades=bool(args.write_trades),
            write_equity=bool(args.write_equity),
            strategy=args.strategy,
            **common,
        )
        return

    if args.cmd == "compare":
        cmd_compare(
            args.data,
            strategies=args.strategies,
            workers=args.workers,
            **common,
        )
        return


if __name__ == "__main__":
    main()
