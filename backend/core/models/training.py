"""Training data models.

These sit on the training hot path (thousands of samples, one metrics record
per epoch), so they use ``@dataclass(slots=True)`` and plain floats instead of
Pydantic models.
"""

from dataclasses import asdict, dataclass


@dataclass(slots=True)
class TrainingSample:
    """One labelled feature vector.

    ``label`` is 1 when the next bar closed strictly higher, else 0.
    """

    features: list[float]
    label: int
    timestamp: int  # epoch milliseconds of the bar the features describe

    def to_dict(self) -> dict:
        return {"features": list(self.features), "label": self.label, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> "TrainingSample":
        return cls(
            features=[float(v) for v in data["features"]],
            label=int(data["label"]),
            timestamp=int(data["timestamp"]),
        )


@dataclass(slots=True)
class TrainingMetrics:
    """Metrics for one completed epoch."""

    epoch: int
    loss: float
    accuracy: float
    validation_loss: float
    validation_accuracy: float
    learning_rate: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TrainingMetrics":
        return cls(**{k: data[k] for k in _METRIC_FIELDS})


@dataclass(slots=True)
class EpochResult:
    """Loss/accuracy pair from one pass over a sample set."""

    loss: float = 0.0
    accuracy: float = 0.0
    samples: int = 0


_METRIC_FIELDS = (
    "epoch",
    "loss",
    "accuracy",
    "validation_loss",
    "validation_accuracy",
    "learning_rate",
)
