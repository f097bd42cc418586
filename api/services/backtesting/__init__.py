"""
Backtesting module for StrategyLab.

Replays a candle series through one of the registered strategy state
machines and reports trade statistics.

Components:
- BacktestEngine: Generic bar-by-bar driver
- SimulatedPortfolio: Balance, ledger, equity curve, sizing and fills
- PerformanceMetrics: Win rate, profit factor, Sharpe, drawdown
- registry: Strategy lookup and descriptions
"""

from .engine import BacktestEngine, run_backtest
from .portfolio import Position, SimulatedPortfolio
from .metrics import PerformanceMetrics
from .registry import (
    DEFAULT_STRATEGY_ID,
    STRATEGIES,
    get_strategy_description,
    list_strategies,
    resolve_strategy,
)

__all__ = [
    "BacktestEngine",
    "run_backtest",
    "Position",
    "SimulatedPortfolio",
    "PerformanceMetrics",
    "DEFAULT_STRATEGY_ID",
    "STRATEGIES",
    "get_strategy_description",
    "list_strategies",
    "resolve_strategy",
]
