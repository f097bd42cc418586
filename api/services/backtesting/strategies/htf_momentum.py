"""
Higher-Timeframe SMA Crossover Momentum Strategy for backtesting.

Long-only pullback-to-50-EMA entries inside a 200 EMA uptrend, plus the
dynamic retest variant that shares its rules.
"""

import logging
from typing import Optional, Sequence

from models.backtest import Candle, TradeSide
from .base import BaseStrategy, EntrySignal, ExitDecision, ExitPlan, Setup, breakeven_partial
from ..portfolio import Position

logger = logging.getLogger(__name__)


class HTFMomentumStrategy(BaseStrategy):
    """
    HTF SMA Crossover Momentum Strategy (long only).

    Rules:
    - Setup: candle trades through EMA(50) while its low holds above EMA(200)
      and RSI(14) sits between 40 and 55
    - Setup expires after 5 bars or on a close 1% below EMA(50)
    - BUY at the next open once the previous candle is green and closed above EMA(50)
    - Stop at the 10-bar swing low, at least 2x ATR(14) away
    - 50% off at the 20-bar swing high (at least 1.5R), rest on a close below EMA(20)
    """

    strategy_id = "htf-sma-crossover-momentum"
    min_candles = 200
    warmup_index = 200
    risk_fraction = 0.02

    RSI_LOW = 40
    RSI_HIGH = 55
    SETUP_EXPIRY_BARS = 5
    INVALIDATION_PCT = 0.01
    SWING_LOW_BARS = 10
    SWING_HIGH_BARS = 20
    ATR_STOP_MULTIPLIER = 2.0
    FALLBACK_STOP_PCT = 0.02
    MIN_TARGET_R = 1.0
    FALLBACK_TARGET_R = 1.5

    def prepare(self, candles: Sequence[Candle]) -> None:
        super().prepare(candles)
        self.ema20 = self.indicators.calculate_ema(self.closes, 20)
        self.ema50 = self.indicators.calculate_ema(self.closes, 50)
        self.ema200 = self.indicators.calculate_ema(self.closes, 200)
        self.rsi = self.indicators.calculate_rsi(self.closes, 14)
        self.atr = self.indicators.calculate_atr(candles, 14)

    def detect_setup(self, i: int, previous: Optional[Setup]) -> Optional[Setup]:
        setup = previous
        ema50 = self.ema50[i]

        uptrend = self.lows[i] > self.ema200[i]
        retest = self.lows[i] <= ema50 <= self.highs[i]
        if uptrend and retest and self.RSI_LOW <= self.rsi[i] <= self.RSI_HIGH:
            setup = Setup(side=TradeSide.LONG, index=i)

        if setup is None:
            return None
        if self.closes[i] < ema50 * (1 - self.INVALIDATION_PCT):
            return None
        if i - setup.index > self.SETUP_EXPIRY_BARS:
            return None
        return setup

    def detect_trigger(self, i: int, setup: Setup) -> Optional[EntrySignal]:
        if i <= setup.index:
            return None
        if self.is_green(i - 1) and self.closes[i - 1] > self.ema50[i - 1]:
            return EntrySignal(side=TradeSide.LONG, price=self.opens[i], note="retest confirmed")
        return None

    def plan_exits(self, i: int, signal: EntrySignal, entry_price: float) -> ExitPlan:
        min_distance = self.atr[i] * self.ATR_STOP_MULTIPLIER

        stop = self.indicators.swing_low(self.candles, i, self.SWING_LOW_BARS)
        if entry_price - stop < min_distance:
            stop = entry_price - min_distance
        if stop >= entry_price:
            stop = entry_price * (1 - self.FALLBACK_STOP_PCT)

        risk = entry_price - stop
        target = self.indicators.swing_high(self.candles, i, self.SWING_HIGH_BARS)
        if target <= entry_price + risk * self.MIN_TARGET_R:
            target = entry_price + risk * self.FALLBACK_TARGET_R

        return ExitPlan(stop=stop, target=target)

    def evaluate_exit(self, i: int, position: Position) -> Optional[ExitDecision]:
        if not position.tp1_hit and self.reached(i, position, position.target_price):
            return breakeven_partial("TP1 (Swing High)", position.target_price, position)

        if position.tp1_hit and self.closes[i] < self.ema20[i]:
            return ExitDecision(reason="Trend Break (<20EMA)", level=self.closes[i])

        if self.stopped(i, position):
            return ExitDecision(reason=self.stop_reason(position), level=position.stop_price)

        return None


class DynamicRetestStrategy(HTFMomentumStrategy):
    """Dynamic Retest: the HTF momentum rule set under its own identifier."""

    strategy_id = "dynamic-retest"
