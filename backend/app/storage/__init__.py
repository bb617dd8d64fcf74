"""Data storage layer."""

from app.storage.cache import MemoryStore, RedisStore, create_store
from app.storage.prediction_log import PredictionLog, predictions_key
from app.storage.training_cache import TrainingDataCache, training_data_key

__all__ = [
    "MemoryStore",
    "RedisStore",
    "create_store",
    "PredictionLog",
    "predictions_key",
    "TrainingDataCache",
    "training_data_key",
]
