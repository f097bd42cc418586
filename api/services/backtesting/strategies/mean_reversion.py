"""
Mean Reversion Strategy for backtesting.

Fades band extremes on elevated volume and exits at the band midline.
"""

import logging
from typing import Optional, Sequence

from models.backtest import Candle, TradeSide
from .base import BaseStrategy, EntrySignal, ExitDecision, ExitPlan, Setup
from ..portfolio import Position

logger = logging.getLogger(__name__)


class MeanReversionStrategy(BaseStrategy):
    """
    Mean Reversion Strategy for backtesting.

    Rules:
    - BUY when the low tags the lower Bollinger Band (20, 2), RSI(14) < 35
      and volume is above 1.2x its 20-bar average
    - SELL when the high tags the upper band, RSI(14) > 65, same volume rule
    - Stop 3% from entry, target the middle band at entry
    - Exit early on the opposite RSI extreme or after 48 bars
    """

    strategy_id = "mean-reversion-hf"
    min_candles = 50
    warmup_index = 50
    risk_fraction = 0.02

    STOP_PCT = 0.03
    RSI_OVERSOLD = 35
    RSI_OVERBOUGHT = 65
    RSI_EXIT_LONG = 70
    RSI_EXIT_SHORT = 30
    VOLUME_MULTIPLIER = 1.2
    MAX_HOLD_BARS = 48

    def prepare(self, candles: Sequence[Candle]) -> None:
        super().prepare(candles)
        self.bb_upper, self.bb_middle, self.bb_lower = self.indicators.calculate_bollinger_bands(
            self.closes, 20, 2.0
        )
        self.rsi = self.indicators.calculate_rsi(self.closes, 14)
        self.volume_sma = self.indicators.calculate_sma(self.volumes, 20)

    def detect_setup(self, i: int, previous: Optional[Setup]) -> Optional[Setup]:
        volume_spike = self.volumes[i] > self.volume_sma[i] * self.VOLUME_MULTIPLIER

        side = None
        if self.lows[i] <= self.bb_lower[i] and self.rsi[i] < self.RSI_OVERSOLD and volume_spike:
            side = TradeSide.LONG
        # The short test runs last and wins when both bands are tagged
        if self.highs[i] >= self.bb_upper[i] and self.rsi[i] > self.RSI_OVERBOUGHT and volume_spike:
            side = TradeSide.SHORT

        if side is None:
            return None
        return Setup(side=side, index=i)

    def detect_trigger(self, i: int, setup: Setup) -> Optional[EntrySignal]:
        return EntrySignal(side=setup.side, price=self.closes[i], note=f"RSI {self.rsi[i]:.1f}")

    def plan_exits(self, i: int, signal: EntrySignal, entry_price: float) -> ExitPlan:
        return ExitPlan(
            stop=self.offset(entry_price, signal.side, -self.STOP_PCT),
            target=self.bb_middle[i],
        )

    def evaluate_exit(self, i: int, position: Position) -> Optional[ExitDecision]:
        if self.closed_through(i, position, position.target_price):
            return ExitDecision(reason="Mean Reversion", level=position.target_price)

        if position.is_long and self.rsi[i] > self.RSI_EXIT_LONG:
            return ExitDecision(reason="RSI Overbought", level=self.closes[i])
        if not position.is_long and self.rsi[i] < self.RSI_EXIT_SHORT:
            return ExitDecision(reason="RSI Oversold", level=self.closes[i])

        if self.stopped(i, position):
            return ExitDecision(reason=self.stop_reason(position), level=position.stop_price)

        if self.held_for(i, position) >= self.MAX_HOLD_BARS:
            return ExitDecision(reason="Time Exit", level=self.closes[i])

        return None
