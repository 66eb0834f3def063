"""
Data IO Layer
-------------
Loads a price series from disk and normalises it into PricePoints.
Supports CSV/Parquet tables and CoinGecko ``market_chart`` JSON documents.
Timestamps become integer epoch milliseconds (UTC).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from .models import PricePoint

logger = logging.getLogger(__name__)

TIME_COLS = ("date", "timestamp", "time", "datetime", "ts")
PRICE_COLS = ("price", "close")

_EPOCH = pd.Timestamp("1970-01-01", tz="UTC")
_ONE_MS = pd.Timedelta(milliseconds=1)


def _to_epoch_ms(s: pd.Series, *, source: str) -> pd.Series:
    """Numeric values are taken as epoch ms; anything else is parsed as UTC."""
    if pd.api.types.is_numeric_dtype(s):
        return pd.to_numeric(s, errors="coerce").round().astype("Int64")

    parsed = pd.to_datetime(s, errors="coerce", utc=True)
    if bool(parsed.isna().any()):
        raise ValueError(f"load_price_series: datetime parse failed in {source!r}")
    return ((parsed - _EPOCH) // _ONE_MS).astype("Int64")


def _day_start_ms(value: str, *, days: int = 0) -> int:
    ts = pd.Timestamp(value)
    ts = ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
    return int((ts.normalize() + pd.Timedelta(days=days) - _EPOCH) // _ONE_MS)


def _read_table(path: Path) -> pd.DataFrame:
    suf = path.suffix.lower()
    if suf == ".parquet":
        return pd.read_parquet(path)
    if suf == ".csv":
        return pd.read_csv(path)
    if suf == ".json":
        return _read_market_chart(path)
    raise ValueError(f"Unsupported price file type: {suf} ({path})")


def _read_market_chart(path: Path) -> pd.DataFrame:
    """CoinGecko /coins/{id}/market_chart payload: {"prices": [[ms, price], ...]}."""
    with open(path, "r", encoding="utf-8") as f:
        payload: Any = json.load(f)

    rows = payload.get("prices") if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        raise ValueError(f"load_price_series: no 'prices' array in {str(path)!r}")
    return pd.DataFrame(rows, columns=["date", "price"])


def frame_to_series(df: pd.DataFrame, *, source: str = "<frame>") -> list[PricePoint]:
    """
    Normalises a table with a time column and a price column.

    Rows without a price are dropped, duplicate timestamps keep the last row,
    and the result is sorted by time.
    """
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]

    if isinstance(df.index, pd.DatetimeIndex):
        df = df.reset_index(names="date")

    time_col = next((c for c in TIME_COLS if c in df.columns), None)
    price_col = next((c for c in PRICE_COLS if c in df.columns), None)
    if time_col is None or price_col is None:
        raise ValueError(
            f"load_price_series: need one of {TIME_COLS} and one of {PRICE_COLS} "
            f"in {source!r}; got columns={list(df.columns)}"
        )

    out = pd.DataFrame(
        {
            "date": _to_epoch_ms(df[time_col], source=source),
            "price": pd.to_numeric(df[price_col], errors="coerce"),
        }
    )

    n_before = len(out)
    out = out.dropna()
    if len(out) < n_before:
        logger.warning(
            "%s: dropped %d rows with missing time/price", source, n_before - len(out)
        )

    dup = out["date"].duplicated(keep="last")
    if bool(dup.any()):
        logger.warning("%s: dropped %d duplicate timestamps", source, int(dup.sum()))
        out = out[~dup]

    out = out.sort_values("date", kind="mergesort")
    return [
        PricePoint(date=int(d), price=float(p))
        for d, p in zip(out["date"].tolist(), out["price"].tolist())
    ]


def load_price_series(path: str | Path) -> list[PricePoint]:
    """Loads and normalises a price file (CSV, Parquet or market_chart JSON)."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Price file not found: {path}")

    series = frame_to_series(_read_table(p), source=str(p))
    logger.info("Loaded %d price points from %s", len(series), p)
    return series


def slice_dates(
    series: Sequence[PricePoint],
    date_from: str | None = None,
    date_to: str | None = None,
) -> list[PricePoint]:
    """
    Keeps points whose UTC calendar day lies in [date_from, date_to].
    Either bound may be omitted.
    """
    if date_from is None and date_to is None:
        return list(series)

    lo = _day_start_ms(date_from) if date_from else None
    hi = _day_start_ms(date_to, days=1) if date_to else None

    return [
        p
        for p in series
        if (lo is None or p.date >= lo) and (hi is None or p.date < hi)
    ]
