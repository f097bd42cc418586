"""
Technical Indicator Calculations
Pure Python implementations of the indicators used by the backtest strategies
and the live signal check.

Every function returns a list the same length as its input. Positions before
the warm-up threshold hold NaN so indices stay aligned with candle indices.
"""
import math
import statistics
from typing import List, Sequence, Tuple

from models.backtest import Candle

NAN = float("nan")


def is_nan(value: float) -> bool:
    """True for the NaN warm-up marker"""
    return value != value


class IndicatorService:
    """Service for calculating technical indicators"""

    def calculate_sma(self, data: Sequence[float], period: int) -> List[float]:
        """
        Calculate Simple Moving Average

        Args:
            data: Price (or any numeric) series
            period: Number of periods for the average

        Returns:
            List of SMA values, NaN for indices < period - 1
        """
        sma = []
        for i in range(len(data)):
            if i < period - 1:
                sma.append(NAN)
                continue
            window = data[i - period + 1:i + 1]
            sma.append(sum(window) / period)
        return sma

    def calculate_ema(self, data: Sequence[float], period: int) -> List[float]:
        """
        Calculate Exponential Moving Average

        Seeded with the SMA of the first `period` values at index period - 1.

        Args:
            data: Price series
            period: Number of periods for the average

        Returns:
            List of EMA values, NaN before the seed index
        """
        k = 2 / (period + 1)
        ema: List[float] = []

        for i in range(len(data)):
            if i < period - 1:
                ema.append(NAN)
            elif i == period - 1:
                ema.append(sum(data[:period]) / period)
            else:
                # EMA = Price(t) * k + EMA(y) * (1 - k)
                ema.append(data[i] * k + ema[i - 1] * (1 - k))

        return ema

    def calculate_rsi(self, data: Sequence[float], period: int = 14) -> List[float]:
        """
        Calculate Relative Strength Index

        The first value (index == period) averages the first `period` changes.
        Every later value recomputes gains and losses from the trailing window
        data[i - period + 1 : i + 1] and divides by `period`, rather than
        carrying a Wilder smoothing state. Strategy thresholds are tuned
        against this series.

        Args:
            data: Closing prices
            period: RSI period (default 14)

        Returns:
            List of RSI values (0-100 scale), NaN for indices < period
        """
        rsi = [NAN] * min(len(data), period)
        if len(data) <= period:
            return rsi

        gains = 0.0
        losses = 0.0
        for i in range(1, period + 1):
            change = data[i] - data[i - 1]
            if change > 0:
                gains += change
            else:
                losses -= change
        rsi.append(self._rsi_from_averages(gains / period, losses / period))

        for i in range(period + 1, len(data)):
            window_gains = 0.0
            window_losses = 0.0
            for j in range(i - period + 2, i + 1):
                diff = data[j] - data[j - 1]
                if diff > 0:
                    window_gains += diff
                else:
                    window_losses -= diff
            rsi.append(self._rsi_from_averages(window_gains / period, window_losses / period))

        return rsi

    @staticmethod
    def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
        if avg_loss == 0:
            return 100.0
        rs = avg_gain / avg_loss
        return 100 - (100 / (1 + rs))

    def calculate_macd(
        self,
        data: Sequence[float],
        fast_period: int = 12,
        slow_period: int = 26,
        signal_period: int = 9,
    ) -> Tuple[List[float], List[float], List[float]]:
        """
        Calculate MACD (Moving Average Convergence Divergence)

        Args:
            data: Closing prices
            fast_period: Fast EMA period (default 12)
            slow_period: Slow EMA period (default 26)
            signal_period: Signal line period (default 9)

        Returns:
            Tuple of (MACD line, Signal line, Histogram), all input-aligned
        """
        fast_ema = self.calculate_ema(data, fast_period)
        slow_ema = self.calculate_ema(data, slow_period)

        macd_line = [
            NAN if is_nan(fast) or is_nan(slow) else fast - slow
            for fast, slow in zip(fast_ema, slow_ema)
        ]

        # Signal line is an EMA over the defined part of the MACD line
        first_defined = next(
            (i for i, value in enumerate(macd_line) if not is_nan(value)),
            len(macd_line),
        )
        signal_line = [NAN] * first_defined + self.calculate_ema(
            macd_line[first_defined:], signal_period
        )

        histogram = [
            NAN if is_nan(macd) or is_nan(signal) else macd - signal
            for macd, signal in zip(macd_line, signal_line)
        ]

        return macd_line, signal_line, histogram

    def calculate_bollinger_bands(
        self,
        data: Sequence[float],
        period: int = 20,
        std_dev: float = 2.0,
    ) -> Tuple[List[float], List[float], List[float]]:
        """
        Calculate Bollinger Bands

        Bands use the population standard deviation of the trailing window.

        Args:
            data: Closing prices
            period: Moving average period (default 20)
            std_dev: Number of standard deviations (default 2.0)

        Returns:
            Tuple of (Upper band, Middle band (SMA), Lower band)
        """
        middle_band = self.calculate_sma(data, period)
        upper_band = []
        lower_band = []

        for i in range(len(data)):
            mean = middle_band[i]
            if i < period - 1 or is_nan(mean):
                upper_band.append(NAN)
                lower_band.append(NAN)
                continue

            window = data[i - period + 1:i + 1]
            std = statistics.pstdev(window, mu=mean)

            upper_band.append(mean + (std * std_dev))
            lower_band.append(mean - (std * std_dev))

        return upper_band, middle_band, lower_band

    def calculate_true_range(self, candles: Sequence[Candle]) -> List[float]:
        """True range per bar; the first bar uses its own high - low"""
        true_ranges = []
        for i, candle in enumerate(candles):
            if i == 0:
                true_ranges.append(candle.high - candle.low)
                continue
            prev_close = candles[i - 1].close
            true_ranges.append(max(
                candle.high - candle.low,
                abs(candle.high - prev_close),
                abs(candle.low - prev_close),
            ))
        return true_ranges

    def calculate_atr(self, candles: Sequence[Candle], period: int = 14) -> List[float]:
        """
        Calculate Average True Range

        Args:
            candles: OHLC candles
            period: ATR period (default 14)

        Returns:
            List of ATR values; seeded with the mean of the first `period`
            true ranges, then Wilder-smoothed
        """
        true_ranges = self.calculate_true_range(candles)
        atr: List[float] = []

        for i, tr in enumerate(true_ranges):
            if i < period - 1:
                atr.append(NAN)
            elif i == period - 1:
                atr.append(sum(true_ranges[:period]) / period)
            else:
                atr.append((atr[i - 1] * (period - 1) + tr) / period)

        return atr

    def calculate_stoch_rsi(
        self,
        data: Sequence[float],
        rsi_period: int = 14,
        stoch_period: int = 14,
        k_smooth: int = 3,
        d_smooth: int = 3,
    ) -> Tuple[List[float], List[float]]:
        """
        Calculate Stochastic RSI

        Args:
            data: Closing prices
            rsi_period: RSI period
            stoch_period: Lookback for the stochastic of RSI
            k_smooth: SMA length for %K
            d_smooth: SMA length for %D

        Returns:
            Tuple of (%K values, %D values)
        """
        rsi = self.calculate_rsi(data, rsi_period)

        stoch_rsi = []
        for i in range(len(rsi)):
            if i < stoch_period - 1 or is_nan(rsi[i]):
                stoch_rsi.append(NAN)
                continue

            window = rsi[i - stoch_period + 1:i + 1]
            if any(is_nan(value) for value in window):
                stoch_rsi.append(NAN)
                continue

            lowest = min(window)
            value_range = max(window) - lowest
            if value_range == 0:
                stoch_rsi.append(50.0)  # Neutral when no variation
            else:
                stoch_rsi.append((rsi[i] - lowest) / value_range * 100)

        k_values = self.calculate_sma(stoch_rsi, k_smooth)
        d_values = self.calculate_sma(k_values, d_smooth)

        return k_values, d_values

    def swing_high(self, candles: Sequence[Candle], index: int, lookback: int) -> float:
        """Highest high of the `lookback` candles strictly before `index`"""
        window = candles[max(0, index - lookback):index]
        return max((c.high for c in window), default=-math.inf)

    def swing_low(self, candles: Sequence[Candle], index: int, lookback: int) -> float:
        """Lowest low of the `lookback` candles strictly before `index`"""
        window = candles[max(0, index - lookback):index]
        return min((c.low for c in window), default=math.inf)
