"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    ema,
    ema_series,
    sma,
    rsi,
    macd,
    bollinger_bands,
    stochastic,
    volatility,
    support_resistance,
    IndicatorCalculator,
)

__all__ = [
    "ema",
    "ema_series",
    "sma",
    "rsi",
    "macd",
    "bollinger_bands",
    "stochastic",
    "volatility",
    "support_resistance",
    "IndicatorCalculator",
]
