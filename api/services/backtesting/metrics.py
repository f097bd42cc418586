"""
Performance metrics calculation for backtesting.

Calculates win rate, profit factor, Sharpe ratio, drawdown and return from a
finished simulated portfolio.
"""

import math
import statistics
import logging
from dataclasses import dataclass
from typing import List, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerformanceSummary:
    """Aggregate statistics for one run"""
    win_rate: float
    profit_factor: float
    sharpe_ratio: float
    total_return_pct: float
    max_drawdown_pct: float


class PerformanceMetrics:
    """
    Calculate performance metrics from backtest results.
    """

    # Bars per year used when annualizing, unless the caller overrides it
    TRADING_DAYS_PER_YEAR = 252

    @classmethod
    def calculate(
        cls,
        wins: int,
        losses: int,
        gross_profit: float,
        gross_loss: float,
        equity_curve: Sequence[float],
        starting_balance: float,
        periods_per_year: int = TRADING_DAYS_PER_YEAR,
    ) -> PerformanceSummary:
        """
        Calculate all performance metrics.

        Args:
            wins: Number of winning closes
            losses: Number of losing closes
            gross_profit: Sum of winning P&L
            gross_loss: Sum of absolute losing P&L
            equity_curve: Balance snapshots, seed first
            starting_balance: Balance the run started from
            periods_per_year: Annualization factor for the Sharpe ratio

        Returns:
            PerformanceSummary with all metrics
        """
        total_trades = wins + losses
        win_rate = wins / total_trades * 100 if total_trades > 0 else 0.0

        final_balance = equity_curve[-1] if equity_curve else starting_balance
        total_return_pct = (final_balance / starting_balance - 1) * 100

        return PerformanceSummary(
            win_rate=win_rate,
            profit_factor=cls.calculate_profit_factor(gross_profit, gross_loss),
            sharpe_ratio=cls.calculate_sharpe_ratio(equity_curve, periods_per_year),
            total_return_pct=total_return_pct,
            max_drawdown_pct=cls.calculate_max_drawdown(equity_curve),
        )

    @staticmethod
    def calculate_profit_factor(gross_profit: float, gross_loss: float) -> float:
        """
        Gross profit over gross loss.

        +inf when there are profits and no losses, 0 when both are zero.
        """
        if gross_loss > 0:
            return gross_profit / gross_loss
        return math.inf if gross_profit > 0 else 0.0

    @classmethod
    def calculate_sharpe_ratio(
        cls,
        equity_curve: Sequence[float],
        periods_per_year: int = TRADING_DAYS_PER_YEAR,
    ) -> float:
        """
        Calculate annualized Sharpe ratio.

        Sharpe = mean(returns) / pstdev(returns) * sqrt(periods_per_year),
        with a zero risk-free rate. Returns 0 when there is no variation.
        """
        returns = cls.calculate_period_returns(equity_curve)
        if not returns:
            return 0.0

        mean_return = statistics.fmean(returns)
        std_return = statistics.pstdev(returns)

        if std_return == 0:
            return 0.0

        return (mean_return / std_return) * math.sqrt(periods_per_year)

    @staticmethod
    def calculate_period_returns(equity_curve: Sequence[float]) -> List[float]:
        """Bar-over-bar fractional change of the equity curve"""
        returns = []
        for i in range(1, len(equity_curve)):
            prev = equity_curve[i - 1]
            if prev > 0:
                returns.append((equity_curve[i] - prev) / prev)
        return returns

    @staticmethod
    def calculate_max_drawdown(equity_curve: Sequence[float]) -> float:
        """
        Calculate maximum drawdown percentage.

        Max drawdown is the largest peak-to-trough decline.
        """
        if not equity_curve:
            return 0.0

        peak = equity_curve[0]
        max_dd = 0.0

        for equity in equity_curve:
            if equity > peak:
                peak = equity
            if peak > 0:
                max_dd = max(max_dd, (peak - equity) / peak * 100)

        return max_dd
