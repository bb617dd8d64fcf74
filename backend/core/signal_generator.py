"""Signal generator combining the neural model with rule-based scoring.

This module is pure business logic with no I/O dependencies.
Persistence of predictions is injected via a callback, so the same
generator runs against Redis, an in-memory store, or nothing at all.
"""

import logging
import time
from typing import Awaitable, Callable, Protocol, Sequence

from core.features import FeatureExtractor
from core.indicators import IndicatorCalculator
from core.models import (
    VALID_DURATIONS,
    Bar,
    BarBuffer,
    Direction,
    PredictionRecord,
    RiskSettings,
    Signal,
    SignalResult,
    SignalStatus,
    StrategyConfig,
    TechnicalIndicators,
)
from core.rules import RuleBasedScorer

logger = logging.getLogger(__name__)

# Type aliases for callbacks
SignalCallback = Callable[[Signal], Awaitable[None]]
SavePredictionCallback = Callable[[str, PredictionRecord], Awaitable[None]]


class Predictor(Protocol):
    """Anything that maps a feature vector to P(up)."""

    def predict(self, features: Sequence[float]) -> float:
        ...


class SignalGenerator:
    """
    Generate CALL/PUT signals from a bar window.

    Strategy Logic:
    - combined = p_ml * w_ml + p_rule * w_rule (+ sentiment term when given)
    - combined > call_threshold → CALL
    - combined < put_threshold → PUT
    - otherwise no clear signal

    Risk levels:
    - adj = volatility × entry × volatility_risk_mult
    - stop = entry ∓ adj, target = entry ± reward_risk_ratio × adj
    - zero volatility falls back to the percentage stop/target in RiskSettings

    All I/O operations are injected via callbacks:
    - save_prediction: Append the prediction to the per-symbol log
    """

    def __init__(
        self,
        config: StrategyConfig | None = None,
        risk: RiskSettings | None = None,
        save_prediction: SavePredictionCallback | None = None,
    ):
        self.config = config or StrategyConfig()
        self.risk = risk or RiskSettings()
        self.indicator_calc = IndicatorCalculator(self.config)
        self.extractor = FeatureExtractor()
        self.scorer = RuleBasedScorer(level_tolerance=self.config.level_tolerance)

        # Injected callback (None = predictions are not logged)
        self._save_prediction = save_prediction
        self._callbacks: list[SignalCallback] = []

    def on_signal(self, callback: SignalCallback) -> None:
        """Register callback for new signals.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def off_signal(self, callback: SignalCallback) -> None:
        """Unregister callback for new signals."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    # -------------------------------------------------------------------------
    # Pure pieces
    # -------------------------------------------------------------------------

    def combine(self, p_ml: float, p_rule: float, sentiment: float | None = None) -> float:
        """
        Weighted combination of model and rule probabilities.

        With a sentiment score in [-1, 1], ``sentiment_weight`` is taken out
        of the model weight and given to (sentiment + 1) / 2.
        """
        cfg = self.config
        if sentiment is None:
            return p_ml * cfg.ml_weight + p_rule * cfg.rule_weight

        return (
            p_ml * (cfg.ml_weight - cfg.sentiment_weight)
            + p_rule * cfg.rule_weight
            + (sentiment + 1.0) / 2.0 * cfg.sentiment_weight
        )

    def classify(self, combined: float) -> Direction | None:
        """Direction for a combined score, None inside the dead zone."""
        if combined > self.config.call_threshold:
            return Direction.CALL
        if combined < self.config.put_threshold:
            return Direction.PUT
        return None

    def calculate_risk_levels(
        self,
        direction: Direction,
        entry_price: float,
        volatility: float,
    ) -> tuple[float, float]:
        """
        Calculate stop loss and take profit prices.

        Returns:
            Tuple of (stop_loss, take_profit)
        """
        adj = volatility * entry_price * self.config.volatility_risk_mult

        if adj > 0:
            stop_distance = adj
            target_distance = adj * self.config.reward_risk_ratio
        else:
            stop_distance = entry_price * self.risk.default_stop_loss_pct / 100
            target_distance = entry_price * self.risk.default_take_profit_pct / 100

        if direction == Direction.CALL:
            return entry_price - stop_distance, entry_price + target_distance
        return entry_price + stop_distance, entry_price - target_distance

    @staticmethod
    def report_confidence(combined: float) -> float:
        """Distance from the coin-flip midpoint, rescaled to [0, 1]."""
        return min(abs(combined - 0.5) * 2.0, 1.0)

    @staticmethod
    def headline(direction: Direction, combined: float) -> str:
        if direction == Direction.CALL:
            return f"Strong bullish signal ({combined * 100:.1f}% confidence)"
        return f"Strong bearish signal ({(1 - combined) * 100:.1f}% confidence)"

    def build_window(self, symbol: str, history: Sequence[Bar], current: Bar) -> BarBuffer:
        """Ascending window of history plus the current bar."""
        buffer = BarBuffer(symbol=symbol, max_size=max(len(history) + 1, 1))
        buffer.extend(sorted(history, key=lambda b: b.timestamp))
        buffer.add(current)
        return buffer

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def generate(
        self,
        symbol: str,
        history: Sequence[Bar],
        current: Bar | None,
        model: Predictor,
        duration: int = 5,
        sentiment: float | None = None,
    ) -> SignalResult:
        """
        Generate a signal for the current bar.

        Args:
            symbol: Instrument symbol (e.g. EURUSD)
            history: Historical bars (any order; sorted by timestamp)
            current: Latest bar; its price is the entry price
            model: Predictor returning P(next bar higher)
            duration: Option expiry in minutes (1, 3 or 5)
            sentiment: Optional news sentiment in [-1, 1]

        Returns:
            SignalResult. ``signal`` is only set when status is GENERATED.

        Raises:
            ValueError: On an invalid duration or sentiment, or when the
                model rejects the feature vector.
        """
        if duration not in VALID_DURATIONS:
            raise ValueError(f"duration must be one of {VALID_DURATIONS}, got {duration}")
        if sentiment is not None and not -1.0 <= sentiment <= 1.0:
            raise ValueError(f"sentiment must be within [-1, 1], got {sentiment}")

        if not history or current is None:
            logger.warning(f"No market data for {symbol}, skipping signal generation")
            return SignalResult(
                status=SignalStatus.DATA_UNAVAILABLE,
                detail=f"Market data unavailable for {symbol}",
            )

        window = self.build_window(symbol, history, current)
        indicators = self.indicator_calc.calculate_from_series(
            window.get_prices(), window.get_highs(), window.get_lows()
        )
        features = self.extractor.extract(current, indicators)

        p_ml = model.predict(features)
        rules = self.scorer.score(indicators, current)
        combined = self.combine(p_ml, rules.confidence, sentiment)

        direction = self.classify(combined)
        if direction is None:
            logger.debug(
                f"{symbol}: no clear signal (combined={combined:.3f}, "
                f"ml={p_ml:.3f}, rules={rules.confidence:.3f})"
            )
            return SignalResult(
                status=SignalStatus.NO_CLEAR_SIGNAL,
                detail=f"Combined confidence {combined:.3f} is inside the dead zone",
                combined_confidence=combined,
            )

        signal = self._build_signal(
            symbol, current, direction, combined, duration, indicators, rules.reasoning
        )
        logger.info(
            f"{direction.value} signal: {symbol} @ {signal.entry_price} "
            f"SL={signal.stop_loss:.5f} TP={signal.take_profit:.5f} "
            f"confidence={signal.confidence:.3f}"
        )

        if self._save_prediction:
            record = PredictionRecord(
                timestamp=signal.timestamp,
                prediction=direction,
                confidence=signal.confidence,
                features=features,
            )
            try:
                await self._save_prediction(symbol, record)
            except Exception as e:
                logger.warning(f"Failed to save prediction for {symbol}: {e}")

        for callback in self._callbacks:
            try:
                await callback(signal)
            except Exception as e:
                logger.error(f"Signal callback error: {e}")

        return SignalResult(
            status=SignalStatus.GENERATED,
            signal=signal,
            combined_confidence=combined,
        )

    def _build_signal(
        self,
        symbol: str,
        current: Bar,
        direction: Direction,
        combined: float,
        duration: int,
        indicators: TechnicalIndicators,
        rule_reasons: list[str],
    ) -> Signal:
        entry_price = current.price
        stop_loss, take_profit = self.calculate_risk_levels(
            direction, entry_price, indicators.volatility
        )

        return Signal(
            symbol=symbol,
            direction=direction,
            confidence=self.report_confidence(combined),
            duration=duration,
            entry_price=entry_price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            timestamp=int(time.time() * 1000),
            reasoning=(self.headline(direction, combined), *rule_reasons),
            technical_indicators=indicators,
        )
