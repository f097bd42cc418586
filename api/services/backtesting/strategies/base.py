"""
Base class for backtestable strategy policies.

A policy holds the indicator series for one run and answers four questions
for the generic driver in engine.py:

- detect_setup: does a precondition hold (or still hold) at this bar?
- detect_trigger: does the bar-level event that opens a position fire?
- plan_exits: where do the stop and targets go for this entry?
- evaluate_exit: which rung of the exit ladder fires at this bar, if any?
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from models.backtest import Candle, TradeSide
from services.indicators import IndicatorService, is_nan
from ..portfolio import Position

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Setup:
    """A precondition observed at `index`, waiting for its trigger. Side may be left open."""
    side: Optional[TradeSide]
    index: int
    levels: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class EntrySignal:
    """Trigger fired; `price` is the reference fill before slippage"""
    side: TradeSide
    price: float
    note: str = ""


@dataclass(frozen=True)
class ExitPlan:
    """Protective stop and targets for a new position"""
    stop: float
    target: float
    second_target: Optional[float] = None


@dataclass(frozen=True)
class ExitDecision:
    """
    One rung of the exit ladder firing.

    `level` is the price before slippage. `fraction` is the share of the
    remaining size to close; below 1 the position survives with `changes`
    applied (flags, moved stop).
    """
    reason: str
    level: float
    fraction: float = 1.0
    changes: Dict[str, object] = field(default_factory=dict)

    @property
    def is_partial(self) -> bool:
        return self.fraction < 1.0


class BaseStrategy:
    """
    Shared plumbing for the strategy state machines.

    Subclasses set the class attributes and override prepare() plus the four
    policy hooks. A fresh instance is created for every run, so indicator
    series stored on it are never shared between runs.
    """

    strategy_id: str = ""
    min_candles: int = 50
    warmup_index: int = 50
    risk_fraction: float = 0.02

    def __init__(self):
        self.indicators = IndicatorService()
        self.candles: Sequence[Candle] = []
        self.opens: List[float] = []
        self.highs: List[float] = []
        self.lows: List[float] = []
        self.closes: List[float] = []
        self.volumes: List[float] = []
        self.times: List[int] = []

    def prepare(self, candles: Sequence[Candle]) -> None:
        """Split candles into columns; subclasses extend this to compute indicators"""
        self.candles = candles
        self.opens = [c.open for c in candles]
        self.highs = [c.high for c in candles]
        self.lows = [c.low for c in candles]
        self.closes = [c.close for c in candles]
        self.volumes = [c.volume for c in candles]
        self.times = [c.time for c in candles]

    # ----- Policy hooks -----

    def detect_setup(self, i: int, previous: Optional[Setup]) -> Optional[Setup]:
        raise NotImplementedError

    def detect_trigger(self, i: int, setup: Setup) -> Optional[EntrySignal]:
        raise NotImplementedError

    def plan_exits(self, i: int, signal: EntrySignal, entry_price: float) -> ExitPlan:
        raise NotImplementedError

    def evaluate_exit(self, i: int, position: Position) -> Optional[ExitDecision]:
        raise NotImplementedError

    def track(self, i: int, position: Position) -> Position:
        """Per-bar position upkeep before exits are evaluated (extrema, stop moves)"""
        return position

    # ----- Candle helpers -----

    def is_green(self, i: int) -> bool:
        return self.closes[i] > self.opens[i]

    def is_red(self, i: int) -> bool:
        return self.closes[i] < self.opens[i]

    def body(self, i: int) -> float:
        return abs(self.closes[i] - self.opens[i])

    # ----- Exit ladder helpers -----

    def reached(self, i: int, position: Position, level: float) -> bool:
        """Bar traded through a favorable level (high for longs, low for shorts)"""
        if is_nan(level):
            return False
        if position.is_long:
            return self.highs[i] >= level
        return self.lows[i] <= level

    def closed_through(self, i: int, position: Position, level: float) -> bool:
        """Bar closed at or beyond a favorable level"""
        if is_nan(level):
            return False
        if position.is_long:
            return self.closes[i] >= level
        return self.closes[i] <= level

    def stopped(self, i: int, position: Position) -> bool:
        """Bar traded through the protective stop"""
        if position.is_long:
            return self.lows[i] <= position.stop_price
        return self.highs[i] >= position.stop_price

    def held_for(self, i: int, position: Position) -> int:
        return i - position.entry_index

    @staticmethod
    def offset(price: float, side: TradeSide, fraction: float) -> float:
        """Move a price `fraction` in the side's favorable direction (negative for adverse)"""
        if side == TradeSide.LONG:
            return price * (1 + fraction)
        return price * (1 - fraction)

    @staticmethod
    def r_multiple(entry: float, stop: float, side: TradeSide, multiple: float) -> float:
        """Price `multiple` risk units beyond entry in the side's favor"""
        risk = abs(entry - stop)
        if side == TradeSide.LONG:
            return entry + risk * multiple
        return entry - risk * multiple

    def stop_reason(self, position: Position) -> str:
        return "Breakeven" if position.breakeven else "Stop Loss"


def breakeven_partial(reason: str, level: float, position: Position, **extra) -> ExitDecision:
    """Close half at `level` and move the stop to the entry price"""
    changes = {"tp1_hit": True, "breakeven": True, "stop_price": position.entry_price}
    changes.update(extra)
    return ExitDecision(reason=reason, level=level, fraction=0.5, changes=changes)
