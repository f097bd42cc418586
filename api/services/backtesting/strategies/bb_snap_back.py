"""
Bollinger Band Snap-Back Strategy for backtesting.

Buys oversold tags of the lower band inside a long-term uptrend once price
snaps back inside the band (and the mirror image below the 200 EMA).
"""

import logging
from typing import Optional, Sequence

from models.backtest import Candle, TradeSide
from .base import BaseStrategy, EntrySignal, ExitDecision, ExitPlan, Setup, breakeven_partial
from ..portfolio import Position

logger = logging.getLogger(__name__)


class BBSnapBackStrategy(BaseStrategy):
    """
    Bollinger Band Snap-Back Strategy.

    Rules:
    - Long bias above EMA(200), short bias below it
    - Setup: band tag with RSI(7) < 30 (long) or > 70 (short)
    - Trigger on the setup bar or the next one: candle turns back and
      closes inside the band
    - Stop is the tighter of the 11-bar swing and 1.5x ATR(14)
    - 50% off at the middle band with breakeven, rest at the far band
    """

    strategy_id = "bb-snap-back"
    min_candles = 210
    warmup_index = 210
    risk_fraction = 0.02

    RSI_OVERSOLD = 30
    RSI_OVERBOUGHT = 70
    SWING_BARS = 10
    STOP_BUFFER = 0.002
    ATR_STOP_MULTIPLIER = 1.5
    TRIGGER_WINDOW = 1

    def prepare(self, candles: Sequence[Candle]) -> None:
        super().prepare(candles)
        self.ema200 = self.indicators.calculate_ema(self.closes, 200)
        self.bb_upper, self.bb_middle, self.bb_lower = self.indicators.calculate_bollinger_bands(
            self.closes, 20, 2.0
        )
        self.rsi = self.indicators.calculate_rsi(self.closes, 7)
        self.atr = self.indicators.calculate_atr(candles, 14)

    def detect_setup(self, i: int, previous: Optional[Setup]) -> Optional[Setup]:
        close, ema = self.closes[i], self.ema200[i]

        if close > ema and self.lows[i] <= self.bb_lower[i] and self.rsi[i] < self.RSI_OVERSOLD:
            return Setup(side=TradeSide.LONG, index=i)
        if close < ema and self.highs[i] >= self.bb_upper[i] and self.rsi[i] > self.RSI_OVERBOUGHT:
            return Setup(side=TradeSide.SHORT, index=i)

        # An armed setup survives one bar waiting for the snap-back candle
        if previous is not None and i - previous.index <= self.TRIGGER_WINDOW:
            return previous
        return None

    def detect_trigger(self, i: int, setup: Setup) -> Optional[EntrySignal]:
        close = self.closes[i]
        if setup.side == TradeSide.LONG:
            if self.is_green(i) and close > self.bb_lower[i] and close > self.ema200[i]:
                return EntrySignal(side=TradeSide.LONG, price=close, note="snap back up")
        elif self.is_red(i) and close < self.bb_upper[i] and close < self.ema200[i]:
            return EntrySignal(side=TradeSide.SHORT, price=close, note="snap back down")
        return None

    def plan_exits(self, i: int, signal: EntrySignal, entry_price: float) -> ExitPlan:
        start = max(0, i - self.SWING_BARS)
        atr_distance = self.atr[i] * self.ATR_STOP_MULTIPLIER

        if signal.side == TradeSide.LONG:
            swing_stop = min(self.lows[start:i + 1]) * (1 - self.STOP_BUFFER)
            return ExitPlan(
                stop=max(swing_stop, entry_price - atr_distance),
                target=self.bb_middle[i],
                second_target=self.bb_upper[i],
            )

        swing_stop = max(self.highs[start:i + 1]) * (1 + self.STOP_BUFFER)
        return ExitPlan(
            stop=min(swing_stop, entry_price + atr_distance),
            target=self.bb_middle[i],
            second_target=self.bb_lower[i],
        )

    def evaluate_exit(self, i: int, position: Position) -> Optional[ExitDecision]:
        if not position.tp1_hit and self.reached(i, position, position.target_price):
            return breakeven_partial("TP1 (Middle Band)", position.target_price, position)

        if position.tp1_hit and self.reached(i, position, position.second_target):
            return ExitDecision(reason="TP2 (Outer Band)", level=position.second_target)

        if self.stopped(i, position):
            return ExitDecision(reason=self.stop_reason(position), level=position.stop_price)

        return None
