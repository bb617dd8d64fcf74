"""Feedforward neural network trained with mini-batch gradient descent.

Binary classifier: hidden layers use the configured activation, the output
layer is always a sigmoid so the output reads as P(next bar closes higher).

Weights for layer ``l`` are stored as a ``(fan_out, fan_in)`` matrix. The
serialized form is that matrix flattened row-major, i.e. the weight from
source neuron ``j`` to destination neuron ``i`` sits at ``i * fan_in + j``.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

import numpy as np

from core.models import EpochResult, ModelArchitecture, TrainingMetrics, TrainingSample

logger = logging.getLogger(__name__)

EPSILON = 1e-15  # Floor inside log() for the cross-entropy loss
VALIDATION_SPLIT = 0.8  # Fraction of samples used for training
EARLY_STOP_MIN_EPOCHS = 20
EARLY_STOP_WINDOW = 5
LOG_EVERY_EPOCHS = 10


# =============================================================================
# Activation functions
# =============================================================================

def _sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-np.clip(x, -500.0, 500.0)))


def _sigmoid_derivative(x: np.ndarray) -> np.ndarray:
    s = _sigmoid(x)
    return s * (1.0 - s)


def _relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(0.0, x)


def _relu_derivative(x: np.ndarray) -> np.ndarray:
    return (x > 0).astype(np.float64)


def _tanh_derivative(x: np.ndarray) -> np.ndarray:
    t = np.tanh(x)
    return 1.0 - t * t


ACTIVATIONS: dict[str, tuple[Callable, Callable]] = {
    "relu": (_relu, _relu_derivative),
    "sigmoid": (_sigmoid, _sigmoid_derivative),
    "tanh": (np.tanh, _tanh_derivative),
}


def binary_cross_entropy(prediction: float, label: int) -> float:
    """BCE for one sample, with both log terms floored at EPSILON."""
    return -float(
        label * np.log(max(prediction, EPSILON))
        + (1 - label) * np.log(max(1.0 - prediction, EPSILON))
    )


# =============================================================================
# Network
# =============================================================================

class NeuralNetwork:
    """
    Multi-layer perceptron for binary direction classification.

    Lifecycle:
    - Constructed with Xavier-uniform weights and zero biases
    - ``train`` mutates the parameters and appends to ``training_history``
    - ``to_dict``/``from_dict`` serialize and restore everything
    """

    def __init__(
        self,
        architecture: ModelArchitecture | None = None,
        seed: int | None = None,
    ):
        self.architecture = architecture or ModelArchitecture()
        self.training_history: list[TrainingMetrics] = []
        self._rng = np.random.default_rng(seed)
        self.weights: list[np.ndarray] = []
        self.biases: list[np.ndarray] = []
        self.initialize_weights()

    # -------------------------------------------------------------------------
    # Parameters
    # -------------------------------------------------------------------------

    def initialize_weights(self) -> None:
        """Xavier-uniform weights in +/- sqrt(6 / (fan_in + fan_out)), zero biases."""
        self.weights = []
        self.biases = []

        sizes = self.architecture.layer_sizes
        for fan_in, fan_out in zip(sizes[:-1], sizes[1:]):
            limit = np.sqrt(6.0 / (fan_in + fan_out))
            self.weights.append(self._rng.uniform(-limit, limit, size=(fan_out, fan_in)))
            self.biases.append(np.zeros(fan_out))

    @property
    def num_layers(self) -> int:
        return len(self.weights)

    @property
    def is_trained(self) -> bool:
        return len(self.training_history) > 0

    def _activation_for(self, layer: int) -> tuple[Callable, Callable]:
        if layer == self.num_layers - 1:
            return ACTIVATIONS["sigmoid"]
        return ACTIVATIONS[self.architecture.activation]

    # -------------------------------------------------------------------------
    # Forward / backward
    # -------------------------------------------------------------------------

    def forward_propagate(
        self, inputs: Sequence[float]
    ) -> tuple[list[np.ndarray], list[np.ndarray]]:
        """
        Run one sample through the network.

        Returns:
            Tuple of (sums, activations). Index 0 of both is the input; index
            ``l + 1`` holds layer ``l``'s pre-activation sums and outputs.
        """
        x = np.asarray(inputs, dtype=np.float64)
        sums = [x]
        activations = [x]

        for layer in range(self.num_layers):
            z = self.weights[layer] @ activations[-1] + self.biases[layer]
            activate, _ = self._activation_for(layer)
            sums.append(z)
            activations.append(activate(z))

        return sums, activations

    def back_propagate(
        self,
        inputs: Sequence[float],
        target: float,
        sums: list[np.ndarray],
        activations: list[np.ndarray],
    ) -> tuple[list[np.ndarray], list[np.ndarray]]:
        """
        Gradients of the cross-entropy loss for one sample.

        The output error is ``prediction - target`` (BCE through a sigmoid).
        Hidden errors are ``W^T @ error`` scaled by the activation derivative
        at that layer's pre-activation sums. The gradient of a weight is the
        error of its destination neuron times the activation of its source.

        Returns:
            Tuple of (weight_gradients, bias_gradients), shaped like the
            parameters
        """
        weight_grads: list[np.ndarray] = [np.zeros_like(w) for w in self.weights]
        bias_grads: list[np.ndarray] = [np.zeros_like(b) for b in self.biases]

        error = activations[-1] - target

        for layer in range(self.num_layers - 1, -1, -1):
            weight_grads[layer] = np.outer(error, activations[layer])
            bias_grads[layer] = error.copy()

            if layer > 0:
                _, derivative = self._activation_for(layer - 1)
                error = (self.weights[layer].T @ error) * derivative(sums[layer])

        return weight_grads, bias_grads

    def update_weights(
        self,
        weight_grads: list[np.ndarray],
        bias_grads: list[np.ndarray],
    ) -> None:
        """One gradient-descent step: param -= learning_rate * grad."""
        lr = self.architecture.learning_rate
        for layer in range(self.num_layers):
            self.weights[layer] -= lr * weight_grads[layer]
            self.biases[layer] -= lr * bias_grads[layer]

    # -------------------------------------------------------------------------
    # Inference
    # -------------------------------------------------------------------------

    def _check_input(self, features: Sequence[float]) -> None:
        if len(features) != self.architecture.input_size:
            raise ValueError(
                f"Expected {self.architecture.input_size} features, got {len(features)}"
            )

    def predict(self, features: Sequence[float]) -> float:
        """
        Probability that the next bar closes higher.

        Raises:
            ValueError: If the feature vector length differs from input_size.
        """
        self._check_input(features)
        _, activations = self.forward_propagate(features)
        return float(activations[-1][0])

    # -------------------------------------------------------------------------
    # Training
    # -------------------------------------------------------------------------

    def evaluate(self, samples: Sequence[TrainingSample]) -> EpochResult:
        """Mean loss and accuracy over a sample set (no parameter updates)."""
        if not samples:
            return EpochResult()

        total_loss = 0.0
        correct = 0
        for sample in samples:
            _, activations = self.forward_propagate(sample.features)
            prediction = float(activations[-1][0])
            total_loss += binary_cross_entropy(prediction, sample.label)
            if (1 if prediction > 0.5 else 0) == sample.label:
                correct += 1

        return EpochResult(
            loss=total_loss / len(samples),
            accuracy=correct / len(samples),
            samples=len(samples),
        )

    def _train_epoch(self, train_data: list[TrainingSample]) -> EpochResult:
        batch_size = self.architecture.batch_size
        order = self._rng.permutation(len(train_data))
        epoch_data = [train_data[i] for i in order]

        total_loss = 0.0
        correct = 0

        for start in range(0, len(epoch_data), batch_size):
            batch = epoch_data[start : start + batch_size]
            acc_w = [np.zeros_like(w) for w in self.weights]
            acc_b = [np.zeros_like(b) for b in self.biases]

            for sample in batch:
                sums, activations = self.forward_propagate(sample.features)
                prediction = float(activations[-1][0])

                total_loss += binary_cross_entropy(prediction, sample.label)
                if (1 if prediction > 0.5 else 0) == sample.label:
                    correct += 1

                grads_w, grads_b = self.back_propagate(
                    sample.features, sample.label, sums, activations
                )
                for layer in range(self.num_layers):
                    acc_w[layer] += grads_w[layer]
                    acc_b[layer] += grads_b[layer]

            n = len(batch)
            self.update_weights([g / n for g in acc_w], [g / n for g in acc_b])

        return EpochResult(
            loss=total_loss / len(train_data),
            accuracy=correct / len(train_data),
            samples=len(train_data),
        )

    def should_early_stop(self) -> bool:
        """True when mean validation loss of the last 5 epochs exceeds the 5 before."""
        window = EARLY_STOP_WINDOW
        if len(self.training_history) < 2 * window:
            return False

        recent = self.training_history[-window:]
        earlier = self.training_history[-2 * window : -window]
        recent_avg = sum(m.validation_loss for m in recent) / window
        earlier_avg = sum(m.validation_loss for m in earlier) / window
        return recent_avg > earlier_avg

    def train(self, samples: Sequence[TrainingSample], label: str = "") -> list[TrainingMetrics]:
        """
        Train on labelled samples.

        Shuffles once and splits 80/20 into training and validation sets. Each
        epoch reshuffles the training set, runs mini-batches, then a full
        validation pass. Stops early once more than 20 epochs have completed
        and validation loss is trending up.

        Args:
            samples: Labelled feature vectors
            label: Name used in log lines (e.g. the symbol)

        Returns:
            The per-epoch metrics of this run (also kept in training_history)

        Raises:
            ValueError: If there are no samples or a feature vector has the
                wrong length.
        """
        if not samples:
            raise ValueError("Cannot train on an empty sample set")
        for sample in samples:
            self._check_input(sample.features)

        arch = self.architecture
        order = self._rng.permutation(len(samples))
        shuffled = [samples[i] for i in order]
        split = int(len(shuffled) * VALIDATION_SPLIT)
        train_data = shuffled[:split] or shuffled
        validation_data = shuffled[split:]

        logger.info(
            "Starting training%s: %d samples (%d train / %d validation), %d epochs",
            f" for {label}" if label else "",
            len(samples),
            len(train_data),
            len(validation_data),
            arch.epochs,
        )

        self.training_history = []
        started = time.monotonic()

        for epoch in range(1, arch.epochs + 1):
            train_result = self._train_epoch(train_data)
            val_result = self.evaluate(validation_data)

            self.training_history.append(
                TrainingMetrics(
                    epoch=epoch,
                    loss=train_result.loss,
                    accuracy=train_result.accuracy,
                    validation_loss=val_result.loss,
                    validation_accuracy=val_result.accuracy,
                    learning_rate=arch.learning_rate,
                )
            )

            if epoch % LOG_EVERY_EPOCHS == 0:
                logger.info(
                    f"Epoch {epoch}/{arch.epochs} - Loss: {train_result.loss:.4f}, "
                    f"Acc: {train_result.accuracy * 100:.1f}%, "
                    f"Val_Acc: {val_result.accuracy * 100:.1f}%"
                )

            if epoch > EARLY_STOP_MIN_EPOCHS and self.should_early_stop():
                logger.info(f"Early stopping at epoch {epoch}")
                break

        logger.info(
            "Training%s finished after %d epochs in %.2fs",
            f" for {label}" if label else "",
            len(self.training_history),
            time.monotonic() - started,
        )
        return list(self.training_history)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """JSON-serializable snapshot of architecture, parameters and history."""
        return {
            "architecture": self.architecture.model_dump(),
            "weights": [w.ravel().tolist() for w in self.weights],
            "biases": [b.tolist() for b in self.biases],
            "training_history": [m.to_dict() for m in self.training_history],
            "timestamp": int(time.time() * 1000),
        }

    @classmethod
    def from_dict(cls, data: dict, seed: int | None = None) -> "NeuralNetwork":
        """
        Restore a network from ``to_dict`` output.

        Raises:
            ValueError: If the blob is missing fields or parameter shapes do
                not match the architecture.
        """
        try:
            architecture = ModelArchitecture(**data["architecture"])
            raw_weights = data["weights"]
            raw_biases = data["biases"]
            if not isinstance(raw_weights, list) or not isinstance(raw_biases, list):
                raise TypeError("weights and biases must be lists")
            history = [TrainingMetrics.from_dict(m) for m in data.get("training_history", [])]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed model data: {e}") from e

        sizes = architecture.layer_sizes
        expected_layers = len(sizes) - 1
        if len(raw_weights) != expected_layers or len(raw_biases) != expected_layers:
            raise ValueError(
                f"Expected {expected_layers} layers, got {len(raw_weights)} weights "
                f"and {len(raw_biases)} biases"
            )

        weights = []
        biases = []
        for layer, (fan_in, fan_out) in enumerate(zip(sizes[:-1], sizes[1:])):
            try:
                w = np.asarray(raw_weights[layer], dtype=np.float64)
                b = np.asarray(raw_biases[layer], dtype=np.float64)
            except TypeError as e:
                raise ValueError(f"Layer {layer} parameters are not numeric: {e}") from e
            if w.size != fan_in * fan_out or b.size != fan_out:
                raise ValueError(f"Layer {layer} parameters do not match {fan_in}x{fan_out}")
            weights.append(w.reshape(fan_out, fan_in))
            biases.append(b.reshape(fan_out))

        network = cls(architecture, seed=seed)
        network.weights = weights
        network.biases = biases
        network.training_history = history
        return network
