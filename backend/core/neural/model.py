"""Per-symbol model: one network, its training history and its persistence."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

import orjson

from core.models import ModelArchitecture, TrainingMetrics, TrainingSample
from core.neural.network import NeuralNetwork

if TYPE_CHECKING:
    from core.protocols import KeyValueStore

logger = logging.getLogger(__name__)

MIN_TRAINING_SAMPLES = 50
MODEL_KEY_PREFIX = "model_"


def model_key(symbol: str) -> str:
    return f"{MODEL_KEY_PREFIX}{symbol}"


class SymbolModel:
    """
    Owns the network for one symbol.

    Weights only change through ``train`` or a successful ``load``. A failed
    load leaves the current (freshly initialized or previously trained)
    weights in place.
    """

    def __init__(
        self,
        symbol: str,
        architecture: ModelArchitecture | None = None,
        seed: int | None = None,
    ):
        self.symbol = symbol
        self._seed = seed
        self.network = NeuralNetwork(architecture, seed=seed)

    @property
    def key(self) -> str:
        return model_key(self.symbol)

    @property
    def architecture(self) -> ModelArchitecture:
        return self.network.architecture

    @property
    def training_history(self) -> list[TrainingMetrics]:
        return self.network.training_history

    @property
    def is_trained(self) -> bool:
        return self.network.is_trained

    def predict(self, features: Sequence[float]) -> float:
        return self.network.predict(features)

    def train(self, samples: Sequence[TrainingSample]) -> list[TrainingMetrics]:
        return self.network.train(samples, label=self.symbol)

    async def save(self, store: "KeyValueStore") -> None:
        """Write the serialized network under ``model_<symbol>``."""
        blob = orjson.dumps(self.network.to_dict()).decode()
        await store.set(self.key, blob)
        logger.info(f"Saved model for {self.symbol}")

    async def load(self, store: "KeyValueStore") -> bool:
        """
        Replace the network with the stored one.

        Returns:
            True if a stored model was restored; False when there is none,
            it is malformed, or the store fails.
        """
        try:
            raw = await store.get(self.key)
        except Exception as e:
            logger.warning(f"Failed to read model for {self.symbol}: {e}")
            return False

        if raw is None:
            return False

        try:
            self.network = NeuralNetwork.from_dict(orjson.loads(raw), seed=self._seed)
        except (orjson.JSONDecodeError, ValueError) as e:
            logger.warning(f"Discarding stored model for {self.symbol}: {e}")
            return False

        logger.info(
            f"Loaded model for {self.symbol} "
            f"({len(self.network.training_history)} epochs of history)"
        )
        return True
