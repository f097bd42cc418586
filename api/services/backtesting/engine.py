"""
Core backtesting engine.

Replays one strategy policy bar-by-bar over an immutable candle series and
books every entry and exit through the shared simulated portfolio.
"""

import logging
import math
from typing import Optional, Sequence

from config import BacktestConfig, get_backtest_config
from models.backtest import BacktestResult, Candle
from services.logging_config import log_method, strategy_context
from .metrics import PerformanceMetrics
from .portfolio import Position, SimulatedPortfolio
from .registry import DEFAULT_STRATEGY_ID, resolve_strategy
from .strategies.base import BaseStrategy, ExitDecision, Setup

logger = logging.getLogger(__name__)


class BacktestEngine:
    """
    Generic driver shared by every strategy.

    Flow:
    1. Return an empty result if the series is shorter than the strategy needs
    2. Let the strategy precompute its indicator series once
    3. For each bar from the strategy's warm-up index:
       - Flat: carry/refresh the setup, then check the trigger
       - In a position: per-bar upkeep, then the first matching exit rung
       - Record the balance on the equity curve
    4. Aggregate statistics
    """

    def __init__(self, strategy: BaseStrategy, config: Optional[BacktestConfig] = None):
        """
        Initialize the backtest engine.

        Args:
            strategy: Fresh strategy policy instance (owned by this run)
            config: Bookkeeping constants; defaults to the environment config
        """
        self.strategy = strategy
        self.config = config or get_backtest_config()

    def run(self, candles: Sequence[Candle]) -> BacktestResult:
        """
        Run the backtest.

        Args:
            candles: Candles ascending by time

        Returns:
            BacktestResult with statistics, equity curve and trade ledger
        """
        with strategy_context(self.strategy.strategy_id):
            return self._replay(candles)

    def _replay(self, candles: Sequence[Candle]) -> BacktestResult:
        strategy = self.strategy

        if not candles or len(candles) < strategy.min_candles:
            logger.info(
                f"{len(candles) if candles else 0} candles, "
                f"need {strategy.min_candles}; returning empty result"
            )
            return self._empty_result()

        strategy.prepare(candles)
        portfolio = SimulatedPortfolio(self.config)

        position: Optional[Position] = None
        setup: Optional[Setup] = None

        for i in range(strategy.warmup_index, len(candles)):
            if position is None:
                setup = strategy.detect_setup(i, setup)
                if setup is not None:
                    position = self._try_entry(portfolio, i, setup)
                    if position is not None:
                        setup = None
            else:
                position = strategy.track(i, position)
                decision = strategy.evaluate_exit(i, position)
                if decision is not None:
                    position = self._apply_exit(portfolio, i, position, decision)

            portfolio.record_equity()

        return self._build_result(portfolio)

    def _try_entry(self, portfolio: SimulatedPortfolio, i: int, setup: Setup) -> Optional[Position]:
        """Open a position if the trigger fires and the plan gives a usable risk distance"""
        strategy = self.strategy
        signal = strategy.detect_trigger(i, setup)
        if signal is None:
            return None

        entry_price = portfolio.entry_fill(signal.price, signal.side)
        plan = strategy.plan_exits(i, signal, entry_price)
        size = portfolio.calculate_position_size(entry_price, plan.stop, strategy.risk_fraction)

        if size <= 0 or math.isnan(size):
            logger.debug(f"Skipped entry at bar {i}, no risk distance")
            return None

        logger.debug(
            f"{signal.side.value.upper()} @ {entry_price:.4f} "
            f"stop {plan.stop:.4f} target {plan.target:.4f} {signal.note}".rstrip()
        )

        return Position(
            side=signal.side,
            entry_price=entry_price,
            stop_price=plan.stop,
            target_price=plan.target,
            second_target=plan.second_target,
            entry_index=i,
            size=size,
            highest_since_entry=self.strategy.closes[i],
            lowest_since_entry=self.strategy.closes[i],
        )

    def _apply_exit(
        self,
        portfolio: SimulatedPortfolio,
        i: int,
        position: Position,
        decision: ExitDecision,
    ) -> Optional[Position]:
        """Book the exit; return the surviving position after a partial, else None"""
        times = self.strategy.times
        closed_size = position.size * decision.fraction

        portfolio.close(
            position,
            closed_size=closed_size,
            exit_price=portfolio.exit_fill(decision.level, position.side),
            entry_time=times[position.entry_index],
            exit_time=times[i],
            reason=decision.reason,
        )

        if not decision.is_partial:
            return None
        return position.with_changes(size=position.size - closed_size, **decision.changes)

    def _build_result(self, portfolio: SimulatedPortfolio) -> BacktestResult:
        summary = PerformanceMetrics.calculate(
            wins=portfolio.wins,
            losses=portfolio.losses,
            gross_profit=portfolio.gross_profit,
            gross_loss=portfolio.gross_loss,
            equity_curve=portfolio.equity_curve,
            starting_balance=self.config.starting_balance,
            periods_per_year=self.config.periods_per_year,
        )

        logger.info(
            f"{portfolio.total_trades} trades | "
            f"{portfolio.wins}W-{portfolio.losses}L | WR: {summary.win_rate:.1f}% | "
            f"PF: {summary.profit_factor:.2f} | Sharpe: {summary.sharpe_ratio:.2f} | "
            f"Return: {summary.total_return_pct:.1f}%"
        )

        return BacktestResult(
            strategy_id=self.strategy.strategy_id,
            total_trades=portfolio.total_trades,
            wins=portfolio.wins,
            losses=portfolio.losses,
            win_rate=summary.win_rate,
            profit_factor=summary.profit_factor,
            sharpe_ratio=summary.sharpe_ratio,
            total_return_pct=summary.total_return_pct,
            max_drawdown_pct=summary.max_drawdown_pct,
            final_balance=portfolio.balance,
            equity_curve=portfolio.equity_curve,
            trades=portfolio.get_trades_newest_first(),
        )

    def _empty_result(self) -> BacktestResult:
        return BacktestResult(
            strategy_id=self.strategy.strategy_id,
            final_balance=self.config.starting_balance,
            equity_curve=[self.config.starting_balance],
        )


@log_method(level=logging.DEBUG)
def run_backtest(
    candles: Sequence[Candle],
    strategy_id: str = DEFAULT_STRATEGY_ID,
    config: Optional[BacktestConfig] = None,
) -> BacktestResult:
    """
    Replay a strategy over a candle series.

    Args:
        candles: Candles ascending by time (not validated here)
        strategy_id: Registry identifier; unknown ids run the default strategy
        config: Bookkeeping constants; defaults to the environment config

    Returns:
        BacktestResult for the resolved strategy
    """
    strategy_class = resolve_strategy(strategy_id)
    engine = BacktestEngine(strategy=strategy_class(), config=config)
    return engine.run(candles)
