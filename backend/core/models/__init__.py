"""Data models."""

from core.models.bar import Bar, BarBuffer
from core.models.indicators import (
    BollingerBands,
    MACDValue,
    StochasticValue,
    TechnicalIndicators,
)
from core.models.signal import (
    VALID_DURATIONS,
    Direction,
    ModelMetrics,
    PredictionRecord,
    Signal,
    SignalResult,
    SignalStatus,
)
from core.models.config import ModelArchitecture, RiskSettings, StrategyConfig
from core.models.training import EpochResult, TrainingMetrics, TrainingSample

__all__ = [
    # Market data
    "Bar",
    "BarBuffer",
    # Indicators
    "BollingerBands",
    "MACDValue",
    "StochasticValue",
    "TechnicalIndicators",
    # Signals
    "VALID_DURATIONS",
    "Direction",
    "ModelMetrics",
    "PredictionRecord",
    "Signal",
    "SignalResult",
    "SignalStatus",
    # Config
    "ModelArchitecture",
    "RiskSettings",
    "StrategyConfig",
    # Training (hot path dataclasses)
    "EpochResult",
    "TrainingMetrics",
    "TrainingSample",
]
