"""
Candle Fixtures for Testing
===========================
Provides candle series for testing indicators, strategies and the backtest engine.

This module provides:
- Random-walk candles for determinism and invariant checks
- Hand-built scenarios with known outcomes:
  - Flat: every bar identical, nothing should ever trade
  - Trend pullback: uptrend, two red candles, bullish engulfing, continuation
  - Lower band touch: oscillation, sell-off to the lower band on a volume
    spike, recovery to the band midline
  - IRB breakout: steep ramp, retracement bar, break of its high
  - Squeeze breakout: wide chop, tight bands, volume-backed upside break
  - MACD cross: uptrend, choppy stall, thrust back over the signal line

Usage:
    from tests.mocks.fixtures import generate_flat_candles

    candles = generate_flat_candles(count=60)
    result = run_backtest(candles, "mean-reversion-hf")
"""

import math
import random
from typing import List, Optional

from models.backtest import Candle

START_TIME = 1_700_000_000
BAR_SECONDS = 3600


def _time(i: int) -> int:
    return START_TIME + i * BAR_SECONDS


def make_candle(
    i: int,
    open_price: float,
    high: float,
    low: float,
    close: float,
    volume: float = 1000.0,
) -> Candle:
    """Candle at bar index i on the hourly test clock"""
    return Candle(time=_time(i), open=open_price, high=high, low=low, close=close, volume=volume)


def _generate_base_prices(
    start_price: float,
    count: int,
    trend: float,
    volatility: float,
    rng: random.Random,
) -> List[float]:
    """
    Generate close prices with trend and volatility.

    Args:
        start_price: Starting price
        count: Number of bars
        trend: Per-bar drift (e.g., 0.002 = 0.2% per bar)
        volatility: Per-bar volatility as decimal
        rng: Seeded random source

    Returns:
        List of close prices
    """
    prices = [start_price]
    price = start_price

    for _ in range(count - 1):
        price = price * (1 + trend + rng.gauss(0, volatility))
        # Ensure price stays positive
        price = max(price, 0.01)
        prices.append(round(price, 2))

    return prices


def generate_random_walk_candles(
    count: int = 400,
    start_price: float = 100.0,
    trend: float = 0.0,
    volatility: float = 0.015,
    seed: Optional[int] = 42,
) -> List[Candle]:
    """
    Generate a reproducible random-walk candle series.

    Opens gap slightly from the previous close, wicks extend past the body,
    and volume is log-normal around 1M.
    """
    rng = random.Random(seed)
    closes = _generate_base_prices(start_price, count, trend, volatility, rng)

    candles = []
    for i, close in enumerate(closes):
        prev_close = closes[i - 1] if i > 0 else close
        open_price = round(prev_close * (1 + rng.gauss(0, 0.003)), 2)
        extra_range = close * volatility * 0.5

        high = max(open_price, close) + rng.uniform(0, extra_range)
        low = max(min(open_price, close) - rng.uniform(0, extra_range), 0.01)
        volume = max(int(1_000_000 * math.exp(rng.gauss(0, 0.4))), 10_000)

        candles.append(make_candle(i, open_price, round(high, 2), round(low, 2), close, volume))

    return candles


def generate_flat_candles(count: int = 60, price: float = 100.0, volume: float = 1000.0) -> List[Candle]:
    """Every bar has open == high == low == close"""
    return [make_candle(i, price, price, price, price, volume) for i in range(count)]


def generate_trend_pullback_candles(count: int = 250, pullback_at: int = 198) -> List[Candle]:
    """
    Steady uptrend with one two-bar pullback and a bullish engulfing.

    Bars before `pullback_at` are green, +0.5 per bar from 100. Bars
    pullback_at and pullback_at + 1 are red; pullback_at + 2 engulfs the
    second red candle and closes 0.5 above the pre-pullback close. The
    trend then resumes at +0.5 per bar, far enough to reach a 2R target.
    """
    candles = []
    for i in range(pullback_at):
        close = 100.0 + 0.5 * i
        open_price = close - 0.3
        candles.append(make_candle(i, open_price, close + 0.1, open_price - 0.1, close))

    p = candles[-1].close
    candles.append(make_candle(pullback_at, p + 0.1, p + 0.2, p - 0.6, p - 0.5))
    candles.append(make_candle(pullback_at + 1, p - 0.5, p - 0.4, p - 1.1, p - 1.0))
    candles.append(make_candle(pullback_at + 2, p - 1.1, p + 0.6, p - 1.2, p + 0.5))

    engulf_close = p + 0.5
    for step, i in enumerate(range(pullback_at + 3, count), start=1):
        close = engulf_close + 0.5 * step
        open_price = close - 0.3
        candles.append(make_candle(i, open_price, close + 0.1, open_price - 0.1, close))

    return candles


# Bar index of the lower band touch in generate_band_touch_candles()
BAND_TOUCH_INDEX = 55


def generate_band_touch_candles() -> List[Candle]:
    """
    Oscillation, sell-off to the lower Bollinger Band, recovery.

    - Bars 0-49 alternate closes of 100 and 101
    - Bars 50-54 step down to 97.5
    - Bar 55 closes at 96 with a low of 95.5 on double volume
      (20-bar BB middle 99.775, lower ~97.10, RSI(14) ~33.3)
    - Bars 56-59 recover to 100, bars 60-63 hold at 100
    """
    closes = [100.0 if i % 2 == 0 else 101.0 for i in range(50)]
    closes += [99.5, 99.0, 98.5, 98.0, 97.5]

    candles = []
    for i, close in enumerate(closes):
        open_price = closes[i - 1] if i > 0 else close
        candles.append(make_candle(i, open_price, max(open_price, close) + 0.1, min(open_price, close) - 0.1, close))

    candles.append(make_candle(BAND_TOUCH_INDEX, 97.5, 97.6, 95.5, 96.0, volume=2000.0))

    prev = 96.0
    for i, close in enumerate([97.0, 98.0, 99.0, 100.0, 100.0, 100.0, 100.0, 100.0], start=BAND_TOUCH_INDEX + 1):
        candles.append(make_candle(i, prev, close + 0.1, prev - 0.1, close))
        prev = close

    return candles


# Bar index of the inventory retracement bar in generate_irb_breakout_candles()
IRB_INDEX = 96


def generate_irb_breakout_candles(follow_through: bool = True) -> List[Candle]:
    """
    Steep ramp, a bullish IRB, and the break of its high.

    - Bars 0-59 flat at 100
    - Bars 60-95 full-bodied green candles at +10% per bar, which holds the
      EMA(20) angle near 31 degrees
    - Bar 96 (the IRB) opens at the prior close P, high 1.10P, low 0.99P,
      closes at 1.02P: a green bar with a 73% upper wick
    - Bar 97 trades to 1.12P, through the IRB high
    - Bar 98 reaches 1.22P, past 1R, so the stop moves to the entry price
    - Bar 99 reaches 1.26P, through the 1.3R target (about 1.2456P). With
      follow_through=False it drops to 1.08P instead, through the entry price
    """
    candles = generate_flat_candles(count=60)

    close = 100.0
    for i in range(60, IRB_INDEX):
        open_price = close
        close = open_price * 1.10
        candles.append(make_candle(i, open_price, close, open_price, close))

    p = close
    candles.append(make_candle(IRB_INDEX, p, p * 1.10, p * 0.99, p * 1.02))
    candles.append(make_candle(IRB_INDEX + 1, p * 1.02, p * 1.12, p * 1.02, p * 1.12))
    candles.append(make_candle(IRB_INDEX + 2, p * 1.12, p * 1.22, p * 1.12, p * 1.22))
    if follow_through:
        candles.append(make_candle(IRB_INDEX + 3, p * 1.22, p * 1.26, p * 1.21, p * 1.25))
    else:
        candles.append(make_candle(IRB_INDEX + 3, p * 1.22, p * 1.23, p * 1.08, p * 1.09))

    return candles


# Bar index of the breakout bar in generate_squeeze_breakout_candles()
SQUEEZE_BREAKOUT_INDEX = 110


def generate_squeeze_breakout_candles() -> List[Candle]:
    """
    Wide chop, a 20-bar squeeze, and a volume-backed upside break.

    - Bars 0-89 alternate closes of 103 and 97 (band width 12)
    - Bars 90-109 alternate 100.5 and 99.5; at bar 110 the width (~3.28) sits
      below the 20th percentile of the prior 90 widths (~11.40)
    - Bar 110 closes at 103 on 5x volume: above the upper band (~101.76),
      RSI(14) ~61, MACD histogram turning from -0.017 to +0.18
    - Bar 111 reaches 106 (TP1 at +2.5%), bar 112 reaches 108 (TP2 at +4.5%)
      and closes at 107.5, bar 113 dips to 105, through the 2% trail
    """
    closes = [103.0 if i % 2 == 0 else 97.0 for i in range(90)]
    closes += [100.5 if i % 2 == 0 else 99.5 for i in range(90, SQUEEZE_BREAKOUT_INDEX)]

    candles = []
    for i, close in enumerate(closes):
        open_price = closes[i - 1] if i > 0 else close
        candles.append(make_candle(i, open_price, max(open_price, close) + 0.1, min(open_price, close) - 0.1, close))

    i = SQUEEZE_BREAKOUT_INDEX
    candles.append(make_candle(i, 99.5, 103.1, 99.4, 103.0, volume=5000.0))
    candles.append(make_candle(i + 1, 103.0, 106.0, 102.5, 105.5))
    candles.append(make_candle(i + 2, 105.5, 108.0, 105.0, 107.5))
    candles.append(make_candle(i + 3, 107.5, 107.6, 105.0, 105.2))

    return candles


def generate_macd_cross_candles() -> List[Candle]:
    """
    Long uptrend, a choppy stall, and a thrust that turns MACD back up.

    - Bars 0-219 close at 100 + 0.5 * i
    - Bars 220-232 alternate -2 / +2.5 starting with a down bar, ending at
      210.5; MACD sinks under its signal line (2.41 vs 2.71 at bar 232)
    - Bar 233 closes at 218.5: MACD 2.90 over signal 2.74, RSI(14) ~65.7,
      EMA(9) 212.1 > EMA(21) 209.6 > SMA(50) 203.5, SMA(200) 166.6
    """
    closes = [100.0 + 0.5 * i for i in range(220)]
    for step in range(13):
        closes.append(closes[-1] + (-2.0 if step % 2 == 0 else 2.5))
    closes.append(closes[-1] + 8.0)

    candles = []
    for i, close in enumerate(closes):
        open_price = closes[i - 1] if i > 0 else close
        candles.append(make_candle(i, open_price, max(open_price, close) + 0.2, min(open_price, close) - 0.2, close))
    return candles
