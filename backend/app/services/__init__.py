"""Business services."""

from app.services.model_registry import ModelRegistry
from app.services.notifier import LogNotifier, Notification
from app.services.trading_engine import TradingBotEngine, TrainingInProgressError

__all__ = [
    "ModelRegistry",
    "LogNotifier",
    "Notification",
    "TradingBotEngine",
    "TrainingInProgressError",
]
