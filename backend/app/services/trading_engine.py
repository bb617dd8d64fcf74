"""Trading bot engine: the public operations the API layer calls.

Wires the pure core (indicators, models, signal generator, evaluator) to the
market-data provider, key-value store and notification sink.
"""

import logging
from datetime import datetime, timezone

from app.config import Settings, get_settings
from app.services.model_registry import ModelRegistry
from app.storage import PredictionLog, TrainingDataCache
from core.evaluation import ModelEvaluator
from core.features import FeatureExtractor, prepare_training_samples
from core.indicators import IndicatorCalculator
from core.models import (
    Bar,
    Direction,
    ModelMetrics,
    RiskSettings,
    Signal,
    SignalResult,
    SignalStatus,
    StrategyConfig,
    TechnicalIndicators,
    TrainingMetrics,
    VALID_DURATIONS,
)
from core.neural import MIN_TRAINING_SAMPLES
from core.protocols import KeyValueStore, MarketDataProvider, NotificationSink
from core.signal_generator import SignalGenerator

logger = logging.getLogger(__name__)


class TrainingInProgressError(RuntimeError):
    """Raised when train_models is called while a training run is active."""


class TradingBotEngine:
    """
    Facade over the signal core.

    Training is exclusive per engine: the ``is_training`` flag is set before
    the first await of ``train_models`` and a second call fails fast with
    TrainingInProgressError. Signal generation for different symbols may run
    concurrently.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        store: KeyValueStore,
        notifier: NotificationSink | None = None,
        settings: Settings | None = None,
        risk: RiskSettings | None = None,
        strategy: StrategyConfig | None = None,
    ):
        self.settings = settings or get_settings()
        self.provider = provider
        self.store = store
        self.notifier = notifier
        self.risk = risk or RiskSettings()
        self.strategy = strategy or StrategyConfig()

        self.calculator = IndicatorCalculator(self.strategy)
        self.extractor = FeatureExtractor()
        self.evaluator = ModelEvaluator()
        self.prediction_log = PredictionLog(store, max_records=self.settings.max_predictions)
        self.training_cache = TrainingDataCache(store)
        self.registry = ModelRegistry(
            store,
            architecture=self.settings.model_architecture(),
            seed=self.settings.model_seed,
        )
        self.generator = SignalGenerator(
            config=self.strategy,
            risk=self.risk,
            save_prediction=self.prediction_log.append,
        )
        self.generator.on_signal(self._on_signal)

        self._is_training = False
        # UTC date -> alerts sent that day
        self._alerts_sent: dict[str, int] = {}

    async def init(self) -> None:
        """Restore saved models for every supported symbol."""
        await self.registry.load_all(self.get_supported_symbols())

    # =========================================================================
    # Market data
    # =========================================================================

    def get_supported_symbols(self) -> list[str]:
        return list(self.settings.symbols)

    def _check_symbol(self, symbol: str) -> None:
        if symbol not in self.settings.symbols:
            raise ValueError(
                f"Unsupported symbol '{symbol}', expected one of {self.settings.symbols}"
            )

    async def get_market_data(self, symbol: str) -> Bar | None:
        self._check_symbol(symbol)
        return await self.provider.fetch_real_time_data(symbol)

    async def get_historical_data(self, symbol: str) -> list[Bar]:
        self._check_symbol(symbol)
        return await self.provider.fetch_historical_data(symbol, self.settings.history_period)

    def calculate_technical_indicators(self, bars: list[Bar]) -> TechnicalIndicators:
        return self.calculator.calculate(bars)

    # =========================================================================
    # Signals
    # =========================================================================

    async def generate_trading_signal(
        self,
        symbol: str,
        duration: int = 5,
        sentiment: float | None = None,
    ) -> SignalResult:
        """
        Generate a signal for a symbol.

        Returns:
            SignalResult; FAILED when an unexpected error occurs after the
            arguments were accepted

        Raises:
            ValueError: Unknown symbol, bad duration or sentiment out of range
        """
        self._check_symbol(symbol)
        if duration not in VALID_DURATIONS:
            raise ValueError(f"duration must be one of {VALID_DURATIONS}, got {duration}")
        if sentiment is not None and not -1.0 <= sentiment <= 1.0:
            raise ValueError(f"sentiment must be within [-1, 1], got {sentiment}")

        try:
            history = await self.get_historical_data(symbol)
            current = await self.get_market_data(symbol)
            model = await self.registry.get(symbol)
            return await self.generator.generate(
                symbol, history, current, model, duration, sentiment
            )
        except Exception as e:
            logger.error(f"Error generating signal for {symbol}: {e}", exc_info=True)
            return SignalResult(status=SignalStatus.FAILED, detail=str(e))

    def _passes_risk_gate(self, signal: Signal) -> bool:
        if signal.confidence < self.risk.min_confidence:
            logger.debug(
                f"{signal.symbol}: confidence {signal.confidence:.3f} below "
                f"min_confidence {self.risk.min_confidence}, not notifying"
            )
            return False

        today = datetime.now(timezone.utc).date().isoformat()
        if self._alerts_sent.get(today, 0) >= self.risk.max_daily_trades:
            logger.info(
                f"Daily alert limit ({self.risk.max_daily_trades}) reached, "
                f"not notifying {signal.symbol}"
            )
            return False

        self._alerts_sent = {today: self._alerts_sent.get(today, 0) + 1}
        return True

    async def _on_signal(self, signal: Signal) -> None:
        if self.notifier is None or not self._passes_risk_gate(signal):
            return
        try:
            await self.notifier.notify(signal)
        except Exception as e:
            logger.warning(f"Failed to send notification for {signal.symbol}: {e}")

    # =========================================================================
    # Training
    # =========================================================================

    def is_model_training(self) -> bool:
        return self._is_training

    async def train_models(self, symbol: str | None = None) -> dict[str, list[TrainingMetrics]]:
        """
        Train one symbol's model, or every supported symbol's.

        Symbols with fewer than MIN_TRAINING_SAMPLES samples are skipped.

        Returns:
            Mapping of symbol to the per-epoch metrics of this run (trained
            symbols only)

        Raises:
            TrainingInProgressError: If a training run is already active
            ValueError: Unknown symbol
        """
        if self._is_training:
            raise TrainingInProgressError("Model training is already in progress")
        if symbol is not None:
            self._check_symbol(symbol)

        self._is_training = True
        try:
            symbols = [symbol] if symbol else self.get_supported_symbols()
            results: dict[str, list[TrainingMetrics]] = {}
            for sym in symbols:
                history = await self._train_symbol(sym)
                if history is not None:
                    results[sym] = history
            logger.info(f"Training finished: {len(results)}/{len(symbols)} symbols trained")
            return results
        finally:
            self._is_training = False

    async def _train_symbol(self, symbol: str) -> list[TrainingMetrics] | None:
        bars = await self.get_historical_data(symbol)
        samples = prepare_training_samples(bars, self.calculator, self.extractor)

        try:
            samples = await self.training_cache.merge(symbol, samples)
        except Exception as e:
            logger.warning(f"Training data cache unavailable for {symbol}: {e}")

        if len(samples) < MIN_TRAINING_SAMPLES:
            logger.info(
                f"Skipping {symbol}: {len(samples)} samples "
                f"(need at least {MIN_TRAINING_SAMPLES})"
            )
            return None

        model = await self.registry.get(symbol)
        history = model.train(samples)
        await self.registry.save(symbol)
        return history

    def get_training_history(self, symbol: str) -> list[TrainingMetrics]:
        """Per-epoch metrics of the model's last training run (empty if untrained)."""
        self._check_symbol(symbol)
        model = self.registry.peek(symbol)
        return list(model.training_history) if model else []

    # =========================================================================
    # Evaluation
    # =========================================================================

    async def evaluate_model(self, symbol: str) -> ModelMetrics:
        """Metrics over the resolved part of the symbol's prediction log.

        Sends a model-performance notification once any prediction has resolved.
        """
        self._check_symbol(symbol)
        try:
            records = await self.prediction_log.load(symbol)
        except Exception as e:
            logger.warning(f"Failed to load predictions for {symbol}: {e}")
            return ModelMetrics()

        metrics = self.evaluator.evaluate(records)
        if self.notifier is not None and metrics.total_trades > 0:
            try:
                await self.notifier.notify_model_performance(
                    symbol, metrics.accuracy, metrics.total_trades
                )
            except Exception as e:
                logger.warning(f"Failed to send model performance for {symbol}: {e}")
        return metrics

    async def record_outcome(self, symbol: str, timestamp: int, actual: Direction) -> bool:
        """Backfill the realized direction of a logged prediction.

        Returns:
            True if the prediction was found and updated
        """
        self._check_symbol(symbol)
        try:
            return await self.prediction_log.update_outcome(symbol, timestamp, actual)
        except Exception as e:
            logger.warning(f"Failed to record outcome for {symbol}@{timestamp}: {e}")
            return False
