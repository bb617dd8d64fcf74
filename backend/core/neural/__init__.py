"""Feedforward neural network and per-symbol model ownership."""

from core.neural.network import NeuralNetwork, binary_cross_entropy
from core.neural.model import MIN_TRAINING_SAMPLES, SymbolModel, model_key

__all__ = [
    "NeuralNetwork",
    "binary_cross_entropy",
    "MIN_TRAINING_SAMPLES",
    "SymbolModel",
    "model_key",
]
