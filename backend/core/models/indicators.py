"""Technical indicator snapshot models."""

from pydantic import BaseModel, ConfigDict


class MACDValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


class BollingerBands(BaseModel):
    model_config = ConfigDict(frozen=True)

    upper: float = 0.0
    middle: float = 0.0
    lower: float = 0.0


class StochasticValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    k: float = 50.0
    d: float = 50.0


class TechnicalIndicators(BaseModel):
    """Indicator snapshot derived from one bar window.

    The defaults are the neutral snapshot returned for an empty window.
    """

    model_config = ConfigDict(frozen=True)

    rsi: float = 50.0
    macd: MACDValue = MACDValue()
    bollinger_bands: BollingerBands = BollingerBands()
    sma20: float = 0.0
    sma50: float = 0.0
    ema12: float = 0.0
    ema26: float = 0.0
    stochastic: StochasticValue = StochasticValue()
    volatility: float = 0.0
    support: float = 0.0
    resistance: float = 0.0
