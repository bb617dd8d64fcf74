"""Signal, prediction log and evaluation models."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.models.indicators import TechnicalIndicators

VALID_DURATIONS = (1, 3, 5)  # minutes


class Direction(str, Enum):
    """Predicted price direction for a binary-option style trade."""

    CALL = "CALL"  # Price up
    PUT = "PUT"  # Price down


class SignalStatus(str, Enum):
    """Why a signal generation call did or did not produce a signal."""

    GENERATED = "generated"
    NO_CLEAR_SIGNAL = "no_clear_signal"  # Confidence in the dead zone
    DATA_UNAVAILABLE = "data_unavailable"  # Market data fetch came back empty
    FAILED = "failed"  # Unexpected error while generating


class Signal(BaseModel):
    """Trading signal. Created once per generation call."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    direction: Direction
    confidence: float = Field(ge=0.0, le=1.0)
    duration: int
    entry_price: float
    stop_loss: float
    take_profit: float
    timestamp: int  # epoch milliseconds
    reasoning: tuple[str, ...] = ()
    technical_indicators: TechnicalIndicators

    @field_validator("duration")
    @classmethod
    def _check_duration(cls, value: int) -> int:
        if value not in VALID_DURATIONS:
            raise ValueError(f"duration must be one of {VALID_DURATIONS}, got {value}")
        return value


class PredictionRecord(BaseModel):
    """One logged prediction, later backfilled with the realized direction."""

    timestamp: int
    prediction: Direction
    confidence: float
    features: list[float] = Field(default_factory=list)
    actual_outcome: Direction | None = None

    @property
    def is_resolved(self) -> bool:
        return self.actual_outcome is not None

    @property
    def is_correct(self) -> bool:
        return self.actual_outcome is not None and self.prediction == self.actual_outcome


class ModelMetrics(BaseModel):
    """Aggregate performance over resolved predictions."""

    accuracy: float = 0.0
    precision: float = 0.0
    recall: float = 0.0
    f1_score: float = 0.0
    sharpe_ratio: float = 0.0
    win_rate: float = 0.0
    total_trades: int = 0
    profitable_trades: int = 0


@dataclass
class SignalResult:
    """Result of a signal generation call.

    Attributes:
        status: Outcome of the call (see SignalStatus).
        signal: The generated signal, only set when status is GENERATED.
        detail: Human-readable explanation for non-generated outcomes.
        combined_confidence: Raw weighted score before rescaling, if computed.
    """

    status: SignalStatus
    signal: Signal | None = None
    detail: str | None = None
    combined_confidence: float | None = None

    @property
    def has_signal(self) -> bool:
        return self.signal is not None
