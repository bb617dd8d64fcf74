"""Feature extraction for the neural network.

Turns one bar plus its indicator snapshot into a fixed-length vector. The same
extractor builds training samples and inference inputs so both phases see
identically scaled values.
"""

import logging
from typing import Sequence

from core.indicators import IndicatorCalculator
from core.models import Bar, TechnicalIndicators, TrainingSample

logger = logging.getLogger(__name__)

FEATURE_NAMES = (
    "rsi",
    "macd_scaled",
    "bb_upper",
    "bb_middle",
    "bb_lower",
    "sma20",
    "sma50",
    "ema12",
    "ema26",
    "stoch_k",
    "stoch_d",
    "volatility_pct",
    "change_percent",
    "support_distance",
    "resistance_distance",
)
FEATURE_COUNT = len(FEATURE_NAMES)

MACD_SCALE = 1000.0
VOLATILITY_SCALE = 100.0


def normalize(values: Sequence[float]) -> list[float]:
    """Min-max normalize a vector against its own extremes.

    The max maps to 1.0 and the min to 0.0; a vector with zero range maps
    every element to 0.5.
    """
    if len(values) == 0:
        return []

    low = min(values)
    high = max(values)
    span = high - low
    if span == 0:
        return [0.5] * len(values)
    return [(v - low) / span for v in values]


class FeatureExtractor:
    """Builds normalized feature vectors from bars and indicator snapshots."""

    size = FEATURE_COUNT

    def raw_features(self, bar: Bar, indicators: TechnicalIndicators) -> list[float]:
        """The un-normalized feature values, in FEATURE_NAMES order."""
        price = bar.price
        support = indicators.support
        resistance = indicators.resistance
        bands = indicators.bollinger_bands

        support_distance = (price - support) / support if support else 0.0
        resistance_distance = (resistance - price) / price if price else 0.0

        return [
            indicators.rsi,
            indicators.macd.macd * MACD_SCALE,
            bands.upper,
            bands.middle,
            bands.lower,
            indicators.sma20,
            indicators.sma50,
            indicators.ema12,
            indicators.ema26,
            indicators.stochastic.k,
            indicators.stochastic.d,
            indicators.volatility * VOLATILITY_SCALE,
            bar.change_percent,
            support_distance,
            resistance_distance,
        ]

    def extract(self, bar: Bar, indicators: TechnicalIndicators) -> list[float]:
        """Normalized feature vector for one bar."""
        return normalize(self.raw_features(bar, indicators))


def prepare_training_samples(
    bars: Sequence[Bar],
    calculator: IndicatorCalculator | None = None,
    extractor: FeatureExtractor | None = None,
) -> list[TrainingSample]:
    """
    Build labelled samples from an ascending bar window.

    For every bar except the last, indicators are computed over the window
    ending at that bar, and the label is 1 iff the next bar's price is strictly
    higher. The final bar has no next bar and never yields a sample.

    Args:
        bars: Bars in ascending timestamp order
        calculator: Indicator calculator (default periods if omitted)
        extractor: Feature extractor

    Returns:
        List of TrainingSample, one per bar except the last
    """
    calculator = calculator or IndicatorCalculator()
    extractor = extractor or FeatureExtractor()

    prices = [b.price for b in bars]
    highs = [b.high for b in bars]
    lows = [b.low for b in bars]

    samples = []
    for i in range(len(bars) - 1):
        current = bars[i]
        indicators = calculator.calculate_from_series(
            prices[: i + 1], highs[: i + 1], lows[: i + 1]
        )
        samples.append(
            TrainingSample(
                features=extractor.extract(current, indicators),
                label=1 if bars[i + 1].price > current.price else 0,
                timestamp=current.timestamp,
            )
        )

    logger.debug(f"Prepared {len(samples)} training samples from {len(bars)} bars")
    return samples
