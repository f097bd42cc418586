"""
EMA Crossover Strategy for backtesting.

Trades 20/50 EMA crossovers confirmed by RSI, scaling out at 1.5R.
"""

import logging
from typing import Optional, Sequence

from models.backtest import Candle, TradeSide
from .base import BaseStrategy, EntrySignal, ExitDecision, ExitPlan, Setup, breakeven_partial
from ..portfolio import Position

logger = logging.getLogger(__name__)


class EMACrossoverStrategy(BaseStrategy):
    """
    EMA Crossover Strategy with a partial take-profit.

    Rules:
    - BUY when EMA(20) crosses above EMA(50) with RSI(14) > 50
    - SELL when EMA(20) crosses below EMA(50) with RSI(14) < 50
    - Stop 1.8% from entry
    - Close 50% at 1.5R and move the stop to breakeven, rest at 2.5R
    """

    strategy_id = "ema-crossover-partial"
    min_candles = 50
    warmup_index = 50
    risk_fraction = 0.02

    STOP_PCT = 0.018
    FIRST_TARGET_R = 1.5
    SECOND_TARGET_R = 2.5

    def prepare(self, candles: Sequence[Candle]) -> None:
        super().prepare(candles)
        self.ema_fast = self.indicators.calculate_ema(self.closes, 20)
        self.ema_slow = self.indicators.calculate_ema(self.closes, 50)
        self.rsi = self.indicators.calculate_rsi(self.closes, 14)

    def detect_setup(self, i: int, previous: Optional[Setup]) -> Optional[Setup]:
        prev_fast, prev_slow = self.ema_fast[i - 1], self.ema_slow[i - 1]
        fast, slow = self.ema_fast[i], self.ema_slow[i]

        if prev_fast <= prev_slow and fast > slow:
            return Setup(side=TradeSide.LONG, index=i)
        if prev_fast >= prev_slow and fast < slow:
            return Setup(side=TradeSide.SHORT, index=i)
        return None

    def detect_trigger(self, i: int, setup: Setup) -> Optional[EntrySignal]:
        rsi = self.rsi[i]
        if setup.side == TradeSide.LONG and rsi > 50:
            return EntrySignal(side=TradeSide.LONG, price=self.closes[i], note="bullish cross")
        if setup.side == TradeSide.SHORT and rsi < 50:
            return EntrySignal(side=TradeSide.SHORT, price=self.closes[i], note="bearish cross")
        return None

    def plan_exits(self, i: int, signal: EntrySignal, entry_price: float) -> ExitPlan:
        stop = self.offset(entry_price, signal.side, -self.STOP_PCT)
        return ExitPlan(
            stop=stop,
            target=self.r_multiple(entry_price, stop, signal.side, self.FIRST_TARGET_R),
            second_target=self.r_multiple(entry_price, stop, signal.side, self.SECOND_TARGET_R),
        )

    def evaluate_exit(self, i: int, position: Position) -> Optional[ExitDecision]:
        if not position.tp1_hit and self.reached(i, position, position.target_price):
            return breakeven_partial("TP1 (1.5R)", position.target_price, position)

        if position.tp1_hit and self.reached(i, position, position.second_target):
            return ExitDecision(reason="TP2 (2.5R)", level=position.second_target)

        if self.stopped(i, position):
            return ExitDecision(reason=self.stop_reason(position), level=position.stop_price)

        return None
