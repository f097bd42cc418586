"""
Simulated account for backtesting.

Tracks balance, the trade ledger and the equity curve through one strategy
replay, and owns the fee, slippage and position sizing rules every strategy
shares.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional

from config import BacktestConfig
from models.backtest import ExecutedTrade, TradeOutcome, TradeSide

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    """
    An open position owned by one backtest run.

    Never patched in place: every transition (partial close, stop move,
    extremum update) produces a new value via with_changes().
    """
    side: TradeSide
    entry_price: float
    stop_price: float
    target_price: float
    entry_index: int
    size: float
    second_target: Optional[float] = None
    tp1_hit: bool = False
    tp2_hit: bool = False
    breakeven: bool = False
    highest_since_entry: Optional[float] = None
    lowest_since_entry: Optional[float] = None

    @property
    def is_long(self) -> bool:
        return self.side == TradeSide.LONG

    @property
    def initial_risk(self) -> float:
        """Distance between entry and stop, always positive while the stop is protective"""
        return abs(self.entry_price - self.stop_price)

    def with_changes(self, **changes) -> "Position":
        return replace(self, **changes)


class SimulatedPortfolio:
    """
    Simulates the account behind one backtest.

    Tracks:
    - Running balance (realized P&L only)
    - Trade ledger, one entry per partial or full close
    - Equity curve, seeded with the starting balance
    - Gross profit / loss for the profit factor
    """

    def __init__(self, config: BacktestConfig):
        """
        Initialize the portfolio.

        Args:
            config: Fee, slippage, sizing cap and starting balance
        """
        self.config = config
        self.balance = config.starting_balance

        self.trades: List[ExecutedTrade] = []
        self.equity_curve: List[float] = [config.starting_balance]

        self.wins = 0
        self.losses = 0
        self.gross_profit = 0.0
        self.gross_loss = 0.0

    # ----- Fills -----

    def entry_fill(self, price: float, side: TradeSide) -> float:
        """Entry price after slippage against the trader"""
        if side == TradeSide.LONG:
            return price * (1 + self.config.slippage)
        return price * (1 - self.config.slippage)

    def exit_fill(self, price: float, side: TradeSide) -> float:
        """Exit price after slippage against the trader"""
        if side == TradeSide.LONG:
            return price * (1 - self.config.slippage)
        return price * (1 + self.config.slippage)

    # ----- Sizing -----

    def calculate_position_size(self, entry_price: float, stop_price: float, risk_fraction: float) -> float:
        """
        Position notional for a trade risking `risk_fraction` of the balance.

        notional = (balance * risk) / (risk_distance / entry), capped at
        max_position_fraction of the balance. The entry fee is deducted from
        the notional, not from the balance.

        Returns:
            Notional after the entry fee, or 0 when the stop gives no risk distance
        """
        risk_distance = abs(entry_price - stop_price)
        if risk_distance <= 0 or entry_price <= 0:
            return 0.0

        position_size = (self.balance * risk_fraction) / (risk_distance / entry_price)
        capped_size = min(position_size, self.balance * self.config.max_position_fraction)
        entry_fee = capped_size * self.config.fee_rate

        return capped_size - entry_fee

    # ----- Closing -----

    def close(
        self,
        position: Position,
        closed_size: float,
        exit_price: float,
        entry_time: int,
        exit_time: int,
        reason: str = "",
    ) -> ExecutedTrade:
        """
        Book a partial or full close and append it to the ledger.

        Args:
            position: Position being reduced
            closed_size: Notional being closed
            exit_price: Fill price (slippage already applied)
            entry_time: Timestamp of the entry candle
            exit_time: Timestamp of the exit candle
            reason: Exit ladder rung that fired

        Returns:
            The executed trade
        """
        if position.is_long:
            price_change = exit_price - position.entry_price
        else:
            price_change = position.entry_price - exit_price

        pnl = price_change * (closed_size / position.entry_price)
        pnl -= closed_size * self.config.fee_rate

        self.balance += pnl
        pnl_percent = pnl / self.balance * 100 if self.balance else 0.0

        if pnl > 0:
            self.wins += 1
            self.gross_profit += pnl
            outcome = TradeOutcome.WIN
        else:
            self.losses += 1
            self.gross_loss += abs(pnl)
            outcome = TradeOutcome.LOSS

        trade = ExecutedTrade(
            entry_time=entry_time,
            entry_price=position.entry_price,
            exit_time=exit_time,
            exit_price=exit_price,
            side=position.side,
            pnl=pnl,
            pnl_percent=pnl_percent,
            outcome=outcome,
            exit_reason=reason,
        )
        self.trades.append(trade)

        logger.debug(f"{outcome.value} ({reason}): {position.side.value} {pnl:.2f} ({pnl_percent:.1f}%)")
        return trade

    def record_equity(self) -> None:
        """Append the current balance to the equity curve"""
        self.equity_curve.append(self.balance)

    @property
    def total_trades(self) -> int:
        return self.wins + self.losses

    def get_trades_newest_first(self) -> List[ExecutedTrade]:
        """Ledger ordered by entry time descending; stable for partial closes"""
        return sorted(self.trades, key=lambda t: t.entry_time, reverse=True)
