"""
Backtestable trading strategies.

Each strategy is a policy driven by BacktestEngine through four hooks:
- detect_setup / detect_trigger -> entry
- plan_exits -> stop and targets
- evaluate_exit -> first matching rung of the exit ladder
"""

from .base import BaseStrategy, EntrySignal, ExitDecision, ExitPlan, Setup
from .mean_reversion import MeanReversionStrategy
from .ema_crossover import EMACrossoverStrategy
from .bb_squeeze import BBSqueezeBreakoutStrategy
from .trend_continuation import TrendContinuationStrategy
from .bb_snap_back import BBSnapBackStrategy
from .hoffman_irb import HoffmanIRBStrategy
from .htf_momentum import HTFMomentumStrategy, DynamicRetestStrategy

__all__ = [
    "BaseStrategy",
    "EntrySignal",
    "ExitDecision",
    "ExitPlan",
    "Setup",
    "MeanReversionStrategy",
    "EMACrossoverStrategy",
    "BBSqueezeBreakoutStrategy",
    "TrendContinuationStrategy",
    "BBSnapBackStrategy",
    "HoffmanIRBStrategy",
    "HTFMomentumStrategy",
    "DynamicRetestStrategy",
]
