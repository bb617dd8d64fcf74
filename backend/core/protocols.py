"""Collaborator protocols for market data, persistence and notifications.

Core code depends only on these interfaces; the app layer supplies the
Yahoo client, memory/Redis stores and notifiers that satisfy them.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.models import Bar, Signal


@runtime_checkable
class MarketDataProvider(Protocol):
    """Source of historical and latest bars."""

    async def fetch_historical_data(self, symbol: str, period: str = "3mo") -> list[Bar]:
        """Ascending bars for the period; empty list on failure."""
        ...

    async def fetch_real_time_data(self, symbol: str) -> Bar | None:
        """Latest bar, or None on failure."""
        ...


@runtime_checkable
class KeyValueStore(Protocol):
    """String key-value persistence. Any method may raise on backend failure."""

    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...

    async def clear(self) -> None:
        ...


@runtime_checkable
class NotificationSink(Protocol):
    """Receives signals that passed the risk gate and model evaluation summaries."""

    async def notify(self, signal: Signal) -> None:
        ...

    async def notify_model_performance(
        self,
        symbol: str,
        accuracy: float,
        total_trades: int,
    ) -> None:
        """Model evaluation summary for a symbol."""
        ...
