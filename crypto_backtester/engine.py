"""
Backtest Simulator
------------------
Walks a price series once and trades a single long-only position
(FLAT <-> LONG) on the signals of one strategy.

Execution model:
- BUY deploys the whole cash balance net of the fee; the ledger records the
  paper value of the new position.
- SELL liquidates the whole position net of the fee; the ledger records the
  resulting cash plus the trade's profit.
- A position still open after the last bar is closed at the last price.
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .config import FEE_RATE, INITIAL_BALANCE, IndicatorCfg
from .models import BacktestResult, EquityPoint, PricePoint, Side, TradeExecution
from .rules import build_signals, strategy_label
from .validator import normalize_kind, require_balance, require_fee_rate

logger = logging.getLogger(__name__)


@dataclass
class _SimulationContext:
    """Mutable state owned by one run_backtest call."""

    balance: float
    fee_rate: float
    quantity: float = 0.0
    entry_price: float = 0.0
    peak_equity: float = 0.0
    max_drawdown: float = 0.0
    trades: list[TradeExecution] = field(default_factory=list)
    equity_curve: list[EquityPoint] = field(default_factory=list)

    @property
    def is_long(self) -> bool:
        return self.quantity > 0

    def equity(self, price: float) -> float:
        return self.quantity * price if self.is_long else self.balance

    def buy(self, price: float, date: int) -> None:
        self.quantity = self.balance * (1.0 - self.fee_rate) / price
        self.balance = 0.0
        self.entry_price = price
        self._record("BUY", price, date, self.quantity * price)

    def sell(self, price: float, date: int) -> None:
        proceeds = self.quantity * price * (1.0 - self.fee_rate)
        profit = proceeds - self.quantity * self.entry_price
        profit_pct = (price - self.entry_price) / self.entry_price * 100.0

        self.balance = proceeds
        self.quantity = 0.0
        self._record("SELL", price, date, proceeds, profit, profit_pct)

    def mark(self, price: float, date: int) -> None:
        equity = self.equity(price)
        self.equity_curve.append(EquityPoint(date=date, balance=equity))

        if equity > self.peak_equity:
            self.peak_equity = equity
        drawdown = (self.peak_equity - equity) / self.peak_equity * 100.0
        if drawdown > self.max_drawdown:
            self.max_drawdown = drawdown

    def _record(
        self,
        side: Side,
        price: float,
        date: int,
        balance_after: float,
        profit: Optional[float] = None,
        profit_pct: Optional[float] = None,
    ) -> None:
        trade = TradeExecution(
            id=uuid.uuid4().hex,
            side=side,
            price=price,
            date=date,
            balance_after=balance_after,
            profit=profit,
            profit_percent=profit_pct,
        )
        self.trades.append(trade)
        logger.debug("%s %.8g @ %s -> balance_after=%.2f", side, price, date, balance_after)


def run_backtest(
    series: Sequence[PricePoint],
    strategy: str = "rsi",
    params: IndicatorCfg | None = None,
    *,
    fee_rate: float = FEE_RATE,
    initial_balance: float = INITIAL_BALANCE,
) -> BacktestResult:
    """
    Simulates ``strategy`` ('rsi', 'macd' or 'bollinger') over ``series``.

    Returns a fresh BacktestResult; nothing is shared between calls.
    """
    strategy = normalize_kind(strategy, name="strategy")
    params = params if params is not None else IndicatorCfg()
    fee_rate = require_fee_rate(fee_rate)
    initial_balance = require_balance(initial_balance)

    signals = build_signals(series, strategy, params)
    ctx = _SimulationContext(
        balance=initial_balance, fee_rate=fee_rate, peak_equity=initial_balance
    )

    for point, (buy, sell) in zip(series, signals):
        price = float(point.price)
        if buy and not ctx.is_long:
            ctx.buy(price, point.date)
        elif sell and ctx.is_long:
            ctx.sell(price, point.date)
        ctx.mark(price, point.date)

    if ctx.is_long and series:
        last = series[-1]
        ctx.sell(float(last.price), last.date)

    result = _summarize(ctx, strategy_label(strategy, params), initial_balance)
    logger.info(
        "%s: %d trades, roi=%.2f%%, max_drawdown=%.2f%%",
        result.strategy_name,
        result.total_trades,
        result.roi,
        result.max_drawdown,
    )
    return result


def _summarize(
    ctx: _SimulationContext, name: str, initial_balance: float
) -> BacktestResult:
    sells = [t for t in ctx.trades if t.side == "SELL"]
    profitable = sum(1 for t in sells if (t.profit or 0.0) > 0)
    win_rate = profitable / len(sells) * 100.0 if sells else 0.0

    # final equity is the last mark, taken before any forced-close fee
    final_equity = ctx.equity_curve[-1].balance if ctx.equity_curve else initial_balance
    net_profit = final_equity - initial_balance

    return BacktestResult(
        strategy_name=name,
        total_trades=len(ctx.trades),
        profitable_trades=profitable,
        win_rate=win_rate,
        net_profit=net_profit,
        roi=net_profit / initial_balance * 100.0,
        max_drawdown=ctx.max_drawdown,
        trades=tuple(ctx.trades),
        equity_curve=tuple(ctx.equity_curve),
    )


def run_backtests(
    series: Sequence[PricePoint],
    strategies: Iterable[str],
    params: IndicatorCfg | None = None,
    *,
    fee_rate: float = FEE_RATE,
    initial_balance: float = INITIAL_BALANCE,
    max_workers: int | None = None,
) -> dict[str, BacktestResult]:
    """
    Runs independent simulations of several strategies concurrently.

    Results are keyed by canonical strategy name in request order; a strategy
    requested twice is simulated once.
    """
    names = list(dict.fromkeys(normalize_kind(s, name="strategy") for s in strategies))
    if not names:
        return {}

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            name: pool.submit(
                run_backtest,
                series,
                name,
                params,
                fee_rate=fee_rate,
                initial_balance=initial_balance,
            )
            for name in names
        }
        return {name: fut.result() for name, fut in futures.items()}
