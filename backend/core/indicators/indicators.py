"""Technical indicators for signal generation.

Every function takes an ascending price series and returns the value for the
last bar. Short or empty input never raises: each indicator has a documented
neutral default for windows below its minimum length.
"""

import math
from typing import Sequence

import numpy as np

from core.models import (
    Bar,
    BollingerBands,
    MACDValue,
    StochasticValue,
    TechnicalIndicators,
)
from core.models.config import StrategyConfig

TRADING_DAYS_PER_YEAR = 252


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def _mean_std(window: np.ndarray) -> tuple[float, float]:
    """Population mean and stdev, computed on values shifted by the first one.

    The shift keeps a flat window exact (mean == value, stdev == 0).
    """
    base = float(window[0])
    shifted = window - base
    return base + float(np.mean(shifted)), float(np.std(shifted))


# =============================================================================
# Moving averages
# =============================================================================

def ema_series(values: Sequence[float], period: int) -> list[float]:
    """Exponential moving average at every index, seeded with the first value.

    Args:
        values: Sequence of price values
        period: EMA period (multiplier = 2 / (period + 1))

    Returns:
        List of EMA values, same length as input
    """
    arr = _as_array(values)
    if arr.size == 0:
        return []

    multiplier = 2.0 / (period + 1)
    result = np.empty_like(arr)
    result[0] = arr[0]
    for i in range(1, arr.size):
        result[i] = result[i - 1] + multiplier * (arr[i] - result[i - 1])

    return result.tolist()


def ema(values: Sequence[float], period: int) -> float:
    """EMA of the last value. Empty input returns 0."""
    series = ema_series(values, period)
    return series[-1] if series else 0.0


def sma(values: Sequence[float], period: int) -> float:
    """Simple moving average of the last ``period`` values.

    Fewer than ``period`` values returns the last value (0 if empty).
    """
    if len(values) == 0:
        return 0.0
    if len(values) < period:
        return float(values[-1])
    mean, _ = _mean_std(_as_array(values[-period:]))
    return mean


# =============================================================================
# Oscillators
# =============================================================================

def rsi(prices: Sequence[float], period: int = 14) -> float:
    """
    Relative Strength Index with Wilder's smoothing.

    The first average gain/loss is the simple mean of the first ``period``
    changes; every later change is folded in as
    ``avg = (avg * (period - 1) + value) / period``.

    Returns:
        50 when there are fewer than period + 1 prices or the window is flat,
        100 when there were gains but no losses, else 100 - 100 / (1 + RS).
    """
    if len(prices) < period + 1:
        return 50.0

    changes = np.diff(_as_array(prices))
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))

    for i in range(period, changes.size):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period

    if avg_loss == 0:
        return 50.0 if avg_gain == 0 else 100.0

    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def macd(
    prices: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDValue:
    """
    Moving Average Convergence Divergence.

    The MACD line is tracked over the whole window so the signal line is a
    genuine ``signal_period`` EMA of it.

    Returns:
        MACDValue for the last bar (all zeros for empty input)
    """
    if len(prices) == 0:
        return MACDValue()

    fast = np.asarray(ema_series(prices, fast_period))
    slow = np.asarray(ema_series(prices, slow_period))
    macd_line = fast - slow
    signal_line = ema_series(macd_line.tolist(), signal_period)

    macd_value = float(macd_line[-1])
    signal_value = signal_line[-1]
    return MACDValue(
        macd=macd_value,
        signal=signal_value,
        histogram=macd_value - signal_value,
    )


def _percent_k(highs: np.ndarray, lows: np.ndarray, close: float) -> float:
    highest_high = float(np.max(highs))
    lowest_low = float(np.min(lows))
    range_size = highest_high - lowest_low
    if range_size == 0:
        return 50.0
    return (close - lowest_low) / range_size * 100.0


def stochastic(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
    d_period: int = 3,
) -> StochasticValue:
    """
    Stochastic oscillator.

    %K = (close - lowest low) / (highest high - lowest low) * 100 over the
    trailing ``period`` bars (50 when the range is zero).
    %D = SMA of the last ``d_period`` %K values; when fewer %K values exist,
    the mean of those available.

    Returns:
        StochasticValue, {k: 50, d: 50} when there are fewer than ``period`` closes
    """
    n = min(len(highs), len(lows), len(closes))
    if n < period:
        return StochasticValue()

    high_arr = _as_array(highs[-n:])
    low_arr = _as_array(lows[-n:])
    close_arr = _as_array(closes[-n:])

    k_values = []
    for end in range(max(period, n - d_period + 1), n + 1):
        start = end - period
        k_values.append(
            _percent_k(high_arr[start:end], low_arr[start:end], float(close_arr[end - 1]))
        )

    return StochasticValue(k=k_values[-1], d=float(np.mean(k_values)))


# =============================================================================
# Volatility / levels
# =============================================================================

def bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    num_std: float = 2.0,
) -> BollingerBands:
    """
    Bollinger Bands: SMA(period) +/- num_std * population stdev(period).

    Fewer than ``period`` prices returns all three bands at the last price
    (0 if empty).
    """
    if len(prices) < period:
        last = float(prices[-1]) if len(prices) else 0.0
        return BollingerBands(upper=last, middle=last, lower=last)

    middle, std = _mean_std(_as_array(prices[-period:]))
    return BollingerBands(
        upper=middle + std * num_std,
        middle=middle,
        lower=middle - std * num_std,
    )


def volatility(prices: Sequence[float], period: int = 20) -> float:
    """
    Annualized volatility: population stdev of the last
    min(len - 1, period) log returns, times sqrt(252).

    Fewer than two prices (or any non-positive price in the window) returns 0.
    """
    if len(prices) < 2:
        return 0.0

    samples = min(len(prices) - 1, period)
    window = _as_array(prices[-(samples + 1):])
    if np.any(window <= 0):
        return 0.0

    returns = np.diff(np.log(window))
    return float(np.std(returns)) * math.sqrt(TRADING_DAYS_PER_YEAR)


def support_resistance(
    highs: Sequence[float],
    lows: Sequence[float],
    period: int = 20,
) -> tuple[float, float]:
    """
    Support = lowest low, resistance = highest high over the trailing ``period``.

    Returns:
        Tuple of (support, resistance); zeros for empty input
    """
    support = float(np.min(_as_array(lows[-period:]))) if len(lows) else 0.0
    resistance = float(np.max(_as_array(highs[-period:]))) if len(highs) else 0.0
    return support, resistance


# =============================================================================
# IndicatorCalculator class
# =============================================================================

class IndicatorCalculator:
    """Calculator for the full indicator snapshot used by the engine."""

    def __init__(self, config: StrategyConfig | None = None):
        self.config = config or StrategyConfig()

    def calculate(self, bars: Sequence[Bar]) -> TechnicalIndicators:
        """
        Calculate all indicators for the last bar of an ascending window.

        Args:
            bars: Bars in ascending timestamp order

        Returns:
            TechnicalIndicators snapshot (neutral snapshot for an empty window)
        """
        if len(bars) == 0:
            return TechnicalIndicators()

        prices = [b.price for b in bars]
        highs = [b.high for b in bars]
        lows = [b.low for b in bars]
        return self.calculate_from_series(prices, highs, lows)

    def calculate_from_series(
        self,
        prices: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
    ) -> TechnicalIndicators:
        """Same as ``calculate`` but from pre-extracted price series."""
        if len(prices) == 0:
            return TechnicalIndicators()

        cfg = self.config
        support, resistance = support_resistance(highs, lows, cfg.sr_period)

        return TechnicalIndicators(
            rsi=rsi(prices, cfg.rsi_period),
            macd=macd(prices, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal),
            bollinger_bands=bollinger_bands(prices, cfg.bb_period, cfg.bb_std),
            sma20=sma(prices, 20),
            sma50=sma(prices, 50),
            ema12=ema(prices, 12),
            ema26=ema(prices, 26),
            stochastic=stochastic(highs, lows, prices, cfg.stoch_period, cfg.stoch_d_period),
            volatility=volatility(prices, cfg.volatility_period),
            support=support,
            resistance=resistance,
        )
