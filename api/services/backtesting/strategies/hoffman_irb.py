"""
Hoffman Inventory Retracement Bar (IRB) Strategy for backtesting.

Trades the break of a retracement bar in a steep 20 EMA trend.
"""

import logging
import math
from typing import Optional, Sequence

from models.backtest import Candle, TradeSide
from .base import BaseStrategy, EntrySignal, ExitDecision, ExitPlan, Setup
from ..portfolio import Position

logger = logging.getLogger(__name__)


class HoffmanIRBStrategy(BaseStrategy):
    """
    Hoffman IRB Strategy.

    Rules:
    - Trend: EMA(20) above EMA(80) with the EMA(20) rising at 28 degrees or more
      (mirror for shorts)
    - Previous candle is an IRB: a 45% wick against the trend
    - BUY when the current high takes out the IRB high; SELL on a break of the low
    - Stop just past the other end of the IRB, target 1.3R
    - Stop moves to breakeven once price travels 1R
    """

    strategy_id = "hoffman-irb"
    min_candles = 100
    warmup_index = 85
    risk_fraction = 0.01

    IRB_WICK_RATIO = 0.45
    MIN_ANGLE = 28.0
    ANGLE_LOOKBACK = 5
    STOP_BUFFER = 0.001
    TARGET_R = 1.3

    def prepare(self, candles: Sequence[Candle]) -> None:
        super().prepare(candles)
        self.ema20 = self.indicators.calculate_ema(self.closes, 20)
        self.ema80 = self.indicators.calculate_ema(self.closes, 80)

    def irb_side(self, j: int) -> Optional[TradeSide]:
        """Direction of the retracement bar at j, if it is one"""
        bar_range = self.highs[j] - self.lows[j]
        if bar_range <= 0:
            return None

        if self.is_green(j):
            if (self.highs[j] - self.closes[j]) / bar_range >= self.IRB_WICK_RATIO:
                return TradeSide.LONG
        elif (self.closes[j] - self.lows[j]) / bar_range >= self.IRB_WICK_RATIO:
            return TradeSide.SHORT
        return None

    def ema_angle(self, i: int) -> float:
        """Slope of EMA(20) over the lookback, in degrees"""
        if i < self.ANGLE_LOOKBACK:
            return 0.0
        base = self.ema20[i - self.ANGLE_LOOKBACK]
        slope = (self.ema20[i] - base) / base
        return math.degrees(math.atan(slope))

    def detect_setup(self, i: int, previous: Optional[Setup]) -> Optional[Setup]:
        irb = self.irb_side(i - 1)
        if irb is None:
            return None

        angle = self.ema_angle(i)
        levels = {"irb_high": self.highs[i - 1], "irb_low": self.lows[i - 1], "angle": angle}

        if irb == TradeSide.LONG and self.ema20[i] > self.ema80[i] and angle >= self.MIN_ANGLE:
            return Setup(side=TradeSide.LONG, index=i, levels=levels)
        if irb == TradeSide.SHORT and self.ema20[i] < self.ema80[i] and angle <= -self.MIN_ANGLE:
            return Setup(side=TradeSide.SHORT, index=i, levels=levels)
        return None

    def detect_trigger(self, i: int, setup: Setup) -> Optional[EntrySignal]:
        if setup.side == TradeSide.LONG and self.highs[i] > setup.levels["irb_high"]:
            return EntrySignal(side=TradeSide.LONG, price=setup.levels["irb_high"], note="IRB break")
        if setup.side == TradeSide.SHORT and self.lows[i] < setup.levels["irb_low"]:
            return EntrySignal(side=TradeSide.SHORT, price=setup.levels["irb_low"], note="IRB break")
        return None

    def plan_exits(self, i: int, signal: EntrySignal, entry_price: float) -> ExitPlan:
        if signal.side == TradeSide.LONG:
            stop = self.lows[i - 1] * (1 - self.STOP_BUFFER)
        else:
            stop = self.highs[i - 1] * (1 + self.STOP_BUFFER)
        return ExitPlan(
            stop=stop,
            target=self.r_multiple(entry_price, stop, signal.side, self.TARGET_R),
        )

    def track(self, i: int, position: Position) -> Position:
        if position.breakeven:
            return position
        one_r = self.r_multiple(position.entry_price, position.stop_price, position.side, 1.0)
        if self.reached(i, position, one_r):
            return position.with_changes(stop_price=position.entry_price, breakeven=True)
        return position

    def evaluate_exit(self, i: int, position: Position) -> Optional[ExitDecision]:
        if self.reached(i, position, position.target_price):
            return ExitDecision(reason="Target (1.3R)", level=position.target_price)
        if self.stopped(i, position):
            return ExitDecision(reason=self.stop_reason(position), level=position.stop_price)
        return None
