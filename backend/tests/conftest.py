"""Shared fixtures and bar builders."""

import math

import pytest

from core.models import Bar

DAY_MS = 86_400_000
START_MS = 1_700_000_000_000


def make_bar(
    price: float,
    index: int = 0,
    symbol: str = "EURUSD",
    spread: float = 0.0,
    prev_price: float | None = None,
) -> Bar:
    """Build a bar with high/low ``spread`` around the close."""
    prev = prev_price if prev_price is not None else price
    return Bar(
        symbol=symbol,
        open=prev,
        high=price + spread,
        low=price - spread,
        price=price,
        timestamp=START_MS + index * DAY_MS,
        change=price - prev,
        change_percent=(price - prev) / prev * 100 if prev else 0.0,
    )


def make_bars(prices: list[float], symbol: str = "EURUSD", spread: float = 0.0) -> list[Bar]:
    """Build ascending daily bars from a close series."""
    bars = []
    prev = None
    for i, price in enumerate(prices):
        bars.append(make_bar(price, i, symbol=symbol, spread=spread, prev_price=prev))
        prev = price
    return bars


def wave_prices(n: int, base: float = 1.1, amplitude: float = 0.01) -> list[float]:
    """Deterministic oscillating price series."""
    return [base + amplitude * math.sin(i / 3.0) + 0.001 * math.cos(i * 1.7) for i in range(n)]


@pytest.fixture
def flat_bars():
    """30 bars that all close at 1.10000 with zero range."""
    return make_bars([1.1] * 30)


@pytest.fixture
def wave_bars():
    """120 oscillating bars with a small high/low spread."""
    return make_bars(wave_prices(120), spread=0.002)


class FakeProvider:
    """MarketDataProvider serving fixed bars per symbol."""

    def __init__(self, bars_by_symbol: dict[str, list[Bar]], current: bool = True):
        self.bars_by_symbol = bars_by_symbol
        self.current = current
        self.historical_calls: list[tuple[str, str]] = []

    async def fetch_historical_data(self, symbol: str, period: str = "3mo") -> list[Bar]:
        self.historical_calls.append((symbol, period))
        return list(self.bars_by_symbol.get(symbol, []))

    async def fetch_real_time_data(self, symbol: str) -> Bar | None:
        bars = self.bars_by_symbol.get(symbol)
        if not self.current or not bars:
            return None
        last = bars[-1]
        return make_bar(last.price + 0.0005, index=len(bars), symbol=symbol,
                        spread=0.001, prev_price=last.price)
