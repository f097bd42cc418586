"""
StrategyLab Test Mocks Package
==============================
Candle generators shared by the test suite.

This package provides:
- Random-walk candles for determinism and invariant checks
- Hand-built scenarios with known strategy outcomes

Usage:
    from tests.mocks.fixtures import generate_flat_candles, generate_band_touch_candles
"""

from tests.mocks.fixtures import (
    BAND_TOUCH_INDEX,
    IRB_INDEX,
    SQUEEZE_BREAKOUT_INDEX,
    make_candle,
    generate_random_walk_candles,
    generate_flat_candles,
    generate_trend_pullback_candles,
    generate_band_touch_candles,
    generate_irb_breakout_candles,
    generate_squeeze_breakout_candles,
    generate_macd_cross_candles,
)

__all__ = [
    "BAND_TOUCH_INDEX",
    "IRB_INDEX",
    "SQUEEZE_BREAKOUT_INDEX",
    "make_candle",
    "generate_random_walk_candles",
    "generate_flat_candles",
    "generate_trend_pullback_candles",
    "generate_band_touch_candles",
    "generate_irb_breakout_candles",
    "generate_squeeze_breakout_candles",
    "generate_macd_cross_candles",
]
