"""
Live Signal Checker
Evaluates the latest candle of a series against a fixed trend + momentum
confluence rule and reports a Buy or Sell signal when every condition holds.
"""
import logging
from typing import Optional, Sequence

from models.backtest import Candle, Signal, SignalSide
from services.indicators import IndicatorService

logger = logging.getLogger(__name__)

MIN_CANDLES = 50


def check_signal(candles: Sequence[Candle]) -> Optional[Signal]:
    """
    Check the last candle for a confluence signal.

    Buy when:
    - EMA(9) > EMA(21) > SMA(50) and price > SMA(200)
    - MACD crosses above its signal line, OR StochRSI %K crosses above %D below 30
    - 40 < RSI(14) < 70

    Sell is the mirror image (StochRSI cross above 70, 30 < RSI < 60).
    Comparisons against indicators still warming up are never true, so a
    series shorter than 200 candles never signals.

    Args:
        candles: Candles ascending by time

    Returns:
        Signal for the last candle, or None
    """
    if not candles or len(candles) < MIN_CANDLES:
        return None

    indicators = IndicatorService()
    closes = [c.close for c in candles]

    ema9 = indicators.calculate_ema(closes, 9)
    ema21 = indicators.calculate_ema(closes, 21)
    sma50 = indicators.calculate_sma(closes, 50)
    sma200 = indicators.calculate_sma(closes, 200)
    rsi = indicators.calculate_rsi(closes, 14)
    stoch_k, stoch_d = indicators.calculate_stoch_rsi(closes, 14, 14, 3, 3)
    macd_line, signal_line, _ = indicators.calculate_macd(closes, 12, 26, 9)

    last = len(candles) - 1
    prev = last - 1
    price = closes[last]
    current_rsi = rsi[last]
    k, d = stoch_k[last], stoch_d[last]
    prev_k, prev_d = stoch_k[prev], stoch_d[prev]

    macd_cross_up = macd_line[prev] <= signal_line[prev] and macd_line[last] > signal_line[last]
    macd_cross_down = macd_line[prev] >= signal_line[prev] and macd_line[last] < signal_line[last]
    stoch_cross_up = prev_k <= prev_d and k > d and k < 30
    stoch_cross_down = prev_k >= prev_d and k < d and k > 70

    uptrend = ema9[last] > ema21[last] > sma50[last] and price > sma200[last]
    downtrend = ema9[last] < ema21[last] < sma50[last] and price < sma200[last]

    if uptrend and (macd_cross_up or stoch_cross_up) and 40 < current_rsi < 70:
        trigger = "MACD Cross" if macd_cross_up else "Stoch Cross"
        logger.info(f"Buy signal @ {price:.4f}: {trigger}, RSI {current_rsi:.1f}")
        return Signal(
            side=SignalSide.BUY,
            price=price,
            reason=f"Strong Uptrend + {trigger} | RSI: {current_rsi:.0f}",
        )

    if downtrend and (macd_cross_down or stoch_cross_down) and 30 < current_rsi < 60:
        trigger = "MACD Cross" if macd_cross_down else "Stoch Cross"
        logger.info(f"Sell signal @ {price:.4f}: {trigger}, RSI {current_rsi:.1f}")
        return Signal(
            side=SignalSide.SELL,
            price=price,
            reason=f"Strong Downtrend + {trigger} | RSI: {current_rsi:.0f}",
        )

    return None
