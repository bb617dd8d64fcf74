"""Price bar (OHLCV) data models."""

from pydantic import BaseModel, ConfigDict, Field


class Bar(BaseModel):
    """One OHLCV observation.

    ``price`` is the close of the bar. ``change`` and ``change_percent`` are
    relative to the previous bar's close.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    open: float
    high: float
    low: float
    price: float
    volume: float = 0.0
    timestamp: int  # epoch milliseconds
    change: float = 0.0
    change_percent: float = 0.0


class BarBuffer(BaseModel):
    """Ascending-by-timestamp window of recent bars for indicator calculation."""

    symbol: str
    bars: list[Bar] = Field(default_factory=list)
    max_size: int = 500

    def add(self, bar: Bar) -> None:
        """Add a bar to the buffer, maintaining order and max size."""
        if self.bars and bar.timestamp <= self.bars[-1].timestamp:
            # Replace the live bar when it shares the last timestamp
            if bar.timestamp == self.bars[-1].timestamp:
                self.bars[-1] = bar
            return

        self.bars.append(bar)
        if len(self.bars) > self.max_size:
            self.bars = self.bars[-self.max_size :]

    def extend(self, bars: list[Bar]) -> None:
        """Add several bars in order."""
        for bar in bars:
            self.add(bar)

    def get_prices(self) -> list[float]:
        """Get list of close prices."""
        return [b.price for b in self.bars]

    def get_highs(self) -> list[float]:
        """Get list of high prices."""
        return [b.high for b in self.bars]

    def get_lows(self) -> list[float]:
        """Get list of low prices."""
        return [b.low for b in self.bars]

    def __len__(self) -> int:
        return len(self.bars)
