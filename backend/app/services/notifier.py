"""Log-backed notification sink with a bounded in-memory history."""

import logging
import time
from collections import deque
from typing import Any

from pydantic import BaseModel, Field

from core.models import Signal

logger = logging.getLogger(__name__)

MAX_HISTORY = 100


class Notification(BaseModel):
    """One delivered notification."""

    kind: str  # trading_signal | model_performance
    title: str
    body: str
    timestamp: int
    data: dict[str, Any] = Field(default_factory=dict)
    read: bool = False


class LogNotifier:
    """
    Writes notifications to the log and keeps the newest ``max_history``.

    Satisfies ``core.protocols.NotificationSink``.
    """

    def __init__(self, max_history: int = MAX_HISTORY):
        self._history: deque[Notification] = deque(maxlen=max_history)

    def _deliver(self, notification: Notification) -> None:
        logger.info(f"[NOTIFY] {notification.title}: {notification.body}")
        self._history.appendleft(notification)

    async def notify(self, signal: Signal) -> None:
        self._deliver(
            Notification(
                kind="trading_signal",
                title=f"{signal.symbol} Trading Signal",
                body=f"{signal.direction.value} signal with {signal.confidence * 100:.1f}% confidence",
                timestamp=int(time.time() * 1000),
                data=signal.model_dump(mode="json"),
            )
        )

    async def notify_model_performance(
        self,
        symbol: str,
        accuracy: float,
        total_trades: int,
    ) -> None:
        self._deliver(
            Notification(
                kind="model_performance",
                title=f"{symbol} Model Update",
                body=f"Model accuracy: {accuracy * 100:.1f}% ({total_trades} trades)",
                timestamp=int(time.time() * 1000),
                data={"symbol": symbol, "accuracy": accuracy, "total_trades": total_trades},
            )
        )

    def get_history(self) -> list[Notification]:
        """Newest first."""
        return list(self._history)

    def mark_all_read(self) -> None:
        for i, notification in enumerate(self._history):
            self._history[i] = notification.model_copy(update={"read": True})

    def clear_history(self) -> None:
        self._history.clear()
