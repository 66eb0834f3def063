"""
Configuration Schemas
---------------------
Dataclasses describing indicator parameters and simulated execution costs,
plus the YAML loader that merges a file onto the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import InvalidParameter
from .validator import (
    normalize_kind,
    require_balance,
    require_fee_rate,
    require_multiplier,
    require_period,
    validate_keys,
)

INITIAL_BALANCE = 10_000.0
FEE_RATE = 0.001  # 0.1% per side

DEFAULT_PERIODS = {"rsi": 14, "bollinger": 20}


@dataclass
class IndicatorCfg:
    """
    Indicator parameters.

    ``period`` is shared by RSI and Bollinger Bands; left unset it resolves to
    14 for RSI and 20 for Bollinger.
    """

    period: Optional[int] = None
    fast: int = 12
    slow: int = 26
    signal: int = 9
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.period is not None:
            self.period = require_period("period", self.period)
        self.fast = require_period("fast", self.fast)
        self.slow = require_period("slow", self.slow)
        self.signal = require_period("signal", self.signal)
        if self.fast >= self.slow:
            raise InvalidParameter(
                "fast", self.fast, f"must be smaller than slow={self.slow}"
            )
        self.multiplier = require_multiplier("multiplier", self.multiplier)

    def resolved_period(self, kind: str) -> int:
        if self.period is not None:
            return self.period
        return DEFAULT_PERIODS[normalize_kind(kind)]


@dataclass
class ExecutionCfg:
    """Simulated account: starting cash and flat fee charged on each side."""

    initial_balance: float = INITIAL_BALANCE
    fee_rate: float = FEE_RATE

    def __post_init__(self) -> None:
        self.initial_balance = require_balance(self.initial_balance)
        self.fee_rate = require_fee_rate(self.fee_rate)


@dataclass
class Config:
    """Root configuration object."""

    asset: str = "bitcoin"
    strategy: str = "rsi"
    indicators: IndicatorCfg = field(default_factory=IndicatorCfg)
    execution: ExecutionCfg = field(default_factory=ExecutionCfg)

    def __post_init__(self) -> None:
        self.strategy = normalize_kind(self.strategy, name="strategy")


def _build(data: dict[str, Any]) -> Config:
    indicators = IndicatorCfg(**(data.get("indicators") or {}))
    execution = ExecutionCfg(**(data.get("execution") or {}))
    top = {k: v for k, v in data.items() if k not in ("indicators", "execution")}
    return Config(indicators=indicators, execution=execution, **top)


def load_config(path: str | Path) -> Config:
    """
    Loads a YAML config file onto the defaults.
    Unknown keys raise ValueError; bad values raise InvalidParameter.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(p, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config Error: expected a mapping at the top of {path!r}")

    validate_keys(data, Config)
    return _build(data)
