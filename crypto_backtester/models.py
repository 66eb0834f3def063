"""
Domain Records
--------------
Immutable records shared by the indicator engine and the simulator.

Undefined indicator values are represented as ``None``; NaN only appears in
the pandas frames exported by ``metrics``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal, Optional

Side = Literal["BUY", "SELL"]


@dataclass(frozen=True)
class PricePoint:
    """One observation of the asset price at ``date`` (epoch milliseconds)."""

    date: int
    price: float


@dataclass(frozen=True)
class BollingerBand:
    upper: Optional[float] = None
    middle: Optional[float] = None
    lower: Optional[float] = None

    @property
    def defined(self) -> bool:
        return self.upper is not None and self.lower is not None


@dataclass(frozen=True)
class MacdPoint:
    macd: Optional[float] = None
    signal: Optional[float] = None
    histogram: Optional[float] = None


@dataclass(frozen=True)
class TradeExecution:
    """
    A single fill in the trade ledger.

    ``balance_after`` is the paper value of the new position on a BUY
    (quantity * fill price) and the cash balance on a SELL.
    ``profit``/``profit_percent`` are only set on SELL records.
    """

    id: str
    side: Side
    price: float
    date: int
    balance_after: float
    profit: Optional[float] = None
    profit_percent: Optional[float] = None


@dataclass(frozen=True)
class EquityPoint:
    date: int
    balance: float


@dataclass(frozen=True)
class BacktestResult:
    """Aggregate report of one simulation run."""

    strategy_name: str
    total_trades: int
    profitable_trades: int
    win_rate: float
    net_profit: float
    roi: float
    max_drawdown: float
    trades: tuple[TradeExecution, ...] = ()
    equity_curve: tuple[EquityPoint, ...] = ()

    @property
    def sell_trades(self) -> tuple[TradeExecution, ...]:
        return tuple(t for t in self.trades if t.side == "SELL")

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable view; nested records become dicts."""
        return asdict(self)
