"""
50 EMA Trend Continuation Strategy for backtesting.

Buys engulfing resumptions after a short pullback in the direction of the 50 EMA.
"""

import logging
from typing import Optional, Sequence

from models.backtest import Candle, TradeSide
from .base import BaseStrategy, EntrySignal, ExitDecision, ExitPlan, Setup
from ..portfolio import Position

logger = logging.getLogger(__name__)


class TrendContinuationStrategy(BaseStrategy):
    """
    50 EMA Trend Continuation Strategy.

    Rules:
    - Direction from close vs EMA(50)
    - At least 2 consecutive counter-trend candles right before the current one
    - BUY when the current candle is a bullish engulfing of the previous one
    - SELL on a bearish engulfing below the EMA
    - Stop beyond the 6-bar swing, target 2R
    """

    strategy_id = "50ema-trend-continuation"
    min_candles = 60
    warmup_index = 52
    risk_fraction = 0.02

    PULLBACK_SCAN = 5
    MIN_PULLBACK_BARS = 2
    SWING_BARS = 5
    STOP_BUFFER = 0.002
    TARGET_R = 2.0

    def prepare(self, candles: Sequence[Candle]) -> None:
        super().prepare(candles)
        self.ema50 = self.indicators.calculate_ema(self.closes, 50)

    def count_pullback(self, i: int, side: TradeSide) -> int:
        """Consecutive counter-trend candles ending at i - 1"""
        counter = self.is_red if side == TradeSide.LONG else self.is_green
        count = 0
        for j in range(i - 1, max(i - self.PULLBACK_SCAN, 0) - 1, -1):
            if not counter(j):
                break
            count += 1
        return count

    def detect_setup(self, i: int, previous: Optional[Setup]) -> Optional[Setup]:
        close, ema = self.closes[i], self.ema50[i]
        if close > ema:
            side = TradeSide.LONG
        elif close < ema:
            side = TradeSide.SHORT
        else:
            return None

        pullback = self.count_pullback(i, side)
        if pullback < self.MIN_PULLBACK_BARS:
            return None
        return Setup(side=side, index=i, levels={"pullback_bars": pullback})

    def detect_trigger(self, i: int, setup: Setup) -> Optional[EntrySignal]:
        bigger_body = self.body(i) > self.body(i - 1)

        if setup.side == TradeSide.LONG:
            engulfing = (
                self.is_green(i) and self.is_red(i - 1) and bigger_body
                and self.opens[i] <= self.closes[i - 1]
                and self.closes[i] >= self.opens[i - 1]
            )
        else:
            engulfing = (
                self.is_red(i) and self.is_green(i - 1) and bigger_body
                and self.opens[i] >= self.closes[i - 1]
                and self.closes[i] <= self.opens[i - 1]
            )

        if not engulfing:
            return None
        return EntrySignal(side=setup.side, price=self.closes[i], note="engulfing")

    def plan_exits(self, i: int, signal: EntrySignal, entry_price: float) -> ExitPlan:
        start = max(0, i - self.SWING_BARS)
        if signal.side == TradeSide.LONG:
            stop = min(self.lows[start:i + 1]) * (1 - self.STOP_BUFFER)
        else:
            stop = max(self.highs[start:i + 1]) * (1 + self.STOP_BUFFER)
        return ExitPlan(
            stop=stop,
            target=self.r_multiple(entry_price, stop, signal.side, self.TARGET_R),
        )

    def evaluate_exit(self, i: int, position: Position) -> Optional[ExitDecision]:
        if self.reached(i, position, position.target_price):
            return ExitDecision(reason="Target (2R)", level=position.target_price)
        if self.stopped(i, position):
            return ExitDecision(reason=self.stop_reason(position), level=position.stop_price)
        return None
