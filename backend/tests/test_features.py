"""Tests for feature extraction and training sample preparation."""

import pytest

from core.features import (
    FEATURE_COUNT,
    FeatureExtractor,
    normalize,
    prepare_training_samples,
)
from core.models import BollingerBands, MACDValue, TechnicalIndicators

from conftest import make_bar, make_bars, wave_prices


class TestNormalize:
    """Tests for per-vector min-max normalization."""

    def test_extremes_map_to_zero_and_one(self):
        result = normalize([3.0, -1.0, 7.0, 5.0])

        assert result[2] == 1.0
        assert result[1] == 0.0
        assert result[0] == pytest.approx(0.5)
        assert result[3] == pytest.approx(0.75)

    def test_equal_elements_map_to_half(self):
        assert normalize([2.5] * 15) == [0.5] * 15

    def test_empty(self):
        assert normalize([]) == []


class TestFeatureExtractor:
    """Tests for FeatureExtractor."""

    @pytest.fixture
    def indicators(self):
        return TechnicalIndicators(
            rsi=62.0,
            macd=MACDValue(macd=0.0004, signal=0.0002, histogram=0.0002),
            bollinger_bands=BollingerBands(upper=1.12, middle=1.10, lower=1.08),
            sma20=1.10,
            sma50=1.09,
            ema12=1.105,
            ema26=1.1,
            volatility=0.08,
            support=1.08,
            resistance=1.13,
        )

    def test_raw_feature_order(self, indicators):
        bar = make_bar(1.11, prev_price=1.10)
        raw = FeatureExtractor().raw_features(bar, indicators)

        assert len(raw) == FEATURE_COUNT == 15
        assert raw[0] == 62.0
        assert raw[1] == pytest.approx(0.4)  # macd * 1000
        assert raw[2:5] == [1.12, 1.10, 1.08]
        assert raw[9:11] == [50.0, 50.0]  # default stochastic
        assert raw[11] == pytest.approx(8.0)  # volatility * 100
        assert raw[12] == pytest.approx(bar.change_percent)
        assert raw[13] == pytest.approx((1.11 - 1.08) / 1.08)
        assert raw[14] == pytest.approx((1.13 - 1.11) / 1.11)

    def test_extract_is_normalized(self, indicators):
        features = FeatureExtractor().extract(make_bar(1.11), indicators)

        assert len(features) == FEATURE_COUNT
        assert all(0.0 <= f <= 1.0 for f in features)
        assert max(features) == 1.0
        assert min(features) == 0.0

    def test_zero_support_gives_zero_ratio(self):
        """A zero support level must not divide by zero."""
        raw = FeatureExtractor().raw_features(make_bar(1.1), TechnicalIndicators())
        assert raw[13] == 0.0


class TestPrepareTrainingSamples:
    """Tests for labelled sample generation."""

    def test_final_bar_never_yields_sample(self):
        bars = make_bars(wave_prices(40))
        samples = prepare_training_samples(bars)

        assert len(samples) == len(bars) - 1
        assert samples[-1].timestamp == bars[-2].timestamp

    def test_labels_look_ahead_one_bar(self):
        bars = make_bars([1.0, 1.1, 1.05, 1.05, 1.2])
        samples = prepare_training_samples(bars)

        # up, down, flat (not strictly greater), up
        assert [s.label for s in samples] == [1, 0, 0, 1]

    def test_sample_features_have_fixed_length(self):
        samples = prepare_training_samples(make_bars(wave_prices(30)))
        assert all(len(s.features) == FEATURE_COUNT for s in samples)

    def test_empty_and_single_bar(self):
        assert prepare_training_samples([]) == []
        assert prepare_training_samples(make_bars([1.1])) == []
