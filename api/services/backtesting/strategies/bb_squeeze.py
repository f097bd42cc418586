"""
Bollinger Band Squeeze Breakout Strategy for backtesting.

Waits for band width to compress into its lowest quintile, then trades the
volume-backed breakout with a two-step scale-out and a trailing stop.
"""

import logging
from typing import Optional, Sequence

from models.backtest import Candle, TradeSide
from services.indicators import is_nan
from .base import BaseStrategy, EntrySignal, ExitDecision, ExitPlan, Setup, breakeven_partial
from ..portfolio import Position

logger = logging.getLogger(__name__)


class BBSqueezeBreakoutStrategy(BaseStrategy):
    """
    Bollinger Band Squeeze Breakout Strategy.

    Rules:
    - Squeeze: current band width at or below the 20th percentile of the
      trailing 90 widths (at least 72 of them defined)
    - BUY when close breaks the upper band on 2x average volume, RSI(14)
      between 50 and 70, MACD histogram positive and rising
    - SELL on the mirrored break of the lower band, RSI between 30 and 50
    - Stop 1.8%; 50% off at +2.5%, half the rest at +4.5%, then trail 2%
    - Time exit after 48 bars
    """

    strategy_id = "bb-squeeze-breakout"
    min_candles = 100
    warmup_index = 90
    risk_fraction = 0.02

    STOP_PCT = 0.018
    FIRST_TARGET_PCT = 0.025
    SECOND_TARGET_PCT = 0.045
    TRAIL_PCT = 0.02
    SQUEEZE_LOOKBACK = 90
    SQUEEZE_MIN_SAMPLES = 72
    SQUEEZE_PERCENTILE = 0.2
    VOLUME_MULTIPLIER = 2.0
    MAX_HOLD_BARS = 48

    def prepare(self, candles: Sequence[Candle]) -> None:
        super().prepare(candles)
        self.bb_upper, self.bb_middle, self.bb_lower = self.indicators.calculate_bollinger_bands(
            self.closes, 20, 2.0
        )
        self.bb_width = [upper - lower for upper, lower in zip(self.bb_upper, self.bb_lower)]
        self.rsi = self.indicators.calculate_rsi(self.closes, 14)
        _, _, self.histogram = self.indicators.calculate_macd(self.closes, 12, 26, 9)
        self.volume_sma = self.indicators.calculate_sma(self.volumes, 20)

    def is_squeeze(self, i: int) -> bool:
        widths = [
            w for w in self.bb_width[max(0, i - self.SQUEEZE_LOOKBACK):i]
            if not is_nan(w)
        ]
        if len(widths) < self.SQUEEZE_MIN_SAMPLES:
            return False

        widths.sort()
        threshold = widths[int(len(widths) * self.SQUEEZE_PERCENTILE)]
        return self.bb_width[i] <= threshold

    def detect_setup(self, i: int, previous: Optional[Setup]) -> Optional[Setup]:
        if not self.is_squeeze(i):
            return None
        return Setup(side=None, index=i, levels={"width": self.bb_width[i]})

    def detect_trigger(self, i: int, setup: Setup) -> Optional[EntrySignal]:
        close = self.closes[i]
        rsi = self.rsi[i]
        hist, prev_hist = self.histogram[i], self.histogram[i - 1]
        volume_spike = self.volumes[i] > self.volume_sma[i] * self.VOLUME_MULTIPLIER

        if close > self.bb_upper[i]:
            if volume_spike and 50 <= rsi <= 70 and hist > 0 and hist > prev_hist:
                return EntrySignal(side=TradeSide.LONG, price=close, note="squeeze break up")
        elif close < self.bb_lower[i]:
            if volume_spike and 30 <= rsi <= 50 and hist < 0 and hist < prev_hist:
                return EntrySignal(side=TradeSide.SHORT, price=close, note="squeeze break down")

        return None

    def plan_exits(self, i: int, signal: EntrySignal, entry_price: float) -> ExitPlan:
        return ExitPlan(
            stop=self.offset(entry_price, signal.side, -self.STOP_PCT),
            target=self.offset(entry_price, signal.side, self.FIRST_TARGET_PCT),
            second_target=self.offset(entry_price, signal.side, self.SECOND_TARGET_PCT),
        )

    def track(self, i: int, position: Position) -> Position:
        close = self.closes[i]
        if position.is_long and close > position.highest_since_entry:
            return position.with_changes(highest_since_entry=close)
        if not position.is_long and close < position.lowest_since_entry:
            return position.with_changes(lowest_since_entry=close)
        return position

    def evaluate_exit(self, i: int, position: Position) -> Optional[ExitDecision]:
        if not position.tp1_hit and self.reached(i, position, position.target_price):
            return breakeven_partial("TP1 (+2.5%)", position.target_price, position)

        if position.tp1_hit and not position.tp2_hit and self.reached(i, position, position.second_target):
            return ExitDecision(
                reason="TP2 (+4.5%)",
                level=position.second_target,
                fraction=0.5,
                changes={"tp2_hit": True},
            )

        if position.tp2_hit:
            if position.is_long:
                trail = position.highest_since_entry * (1 - self.TRAIL_PCT)
                hit = self.lows[i] <= trail
            else:
                trail = position.lowest_since_entry * (1 + self.TRAIL_PCT)
                hit = self.highs[i] >= trail
            if hit:
                return ExitDecision(reason="Trailing Stop", level=trail)
            return None

        if self.stopped(i, position):
            return ExitDecision(reason=self.stop_reason(position), level=position.stop_price)

        if self.held_for(i, position) >= self.MAX_HOLD_BARS:
            return ExitDecision(reason="Time Exit", level=self.closes[i])

        return None
