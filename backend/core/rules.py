"""Deterministic rule-based technical-analysis scorer."""

from dataclasses import dataclass, field

from core.models import Bar, TechnicalIndicators

RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0
STOCH_OVERSOLD = 20.0
STOCH_OVERBOUGHT = 80.0


@dataclass
class RuleScore:
    """Outcome of the rule checks.

    Attributes:
        confidence: bullish / (bullish + bearish), 0.5 when nothing fired.
        reasoning: One reason per fired rule, in evaluation order.
    """

    confidence: float = 0.5
    reasoning: list[str] = field(default_factory=list)
    bullish: int = 0
    bearish: int = 0

    @property
    def fired(self) -> int:
        return self.bullish + self.bearish


class RuleBasedScorer:
    """
    Scores an indicator snapshot against six classic TA rules.

    Each rule votes bullish or bearish (or abstains). Bollinger and
    support/resistance rules abstain on degenerate levels (zero band width,
    resistance not above support) so a flat window scores exactly 0.5.
    """

    def __init__(self, level_tolerance: float = 0.01):
        self.level_tolerance = level_tolerance

    def score(self, indicators: TechnicalIndicators, bar: Bar) -> RuleScore:
        result = RuleScore()
        price = bar.price

        def bullish(reason: str) -> None:
            result.bullish += 1
            result.reasoning.append(reason)

        def bearish(reason: str) -> None:
            result.bearish += 1
            result.reasoning.append(reason)

        # RSI
        if indicators.rsi < RSI_OVERSOLD:
            bullish("RSI oversold (< 30) - bullish signal")
        elif indicators.rsi > RSI_OVERBOUGHT:
            bearish("RSI overbought (> 70) - bearish signal")

        # MACD
        m = indicators.macd
        if m.macd > m.signal and m.histogram > 0:
            bullish("MACD bullish crossover")
        elif m.macd < m.signal and m.histogram < 0:
            bearish("MACD bearish crossover")

        # Bollinger
        bands = indicators.bollinger_bands
        if bands.upper > bands.lower:
            if price <= bands.lower:
                bullish("Price at lower Bollinger Band - oversold")
            elif price >= bands.upper:
                bearish("Price at upper Bollinger Band - overbought")

        # Trend
        if indicators.ema12 > indicators.ema26 and price > indicators.sma20:
            bullish("Price above SMA20 with EMA12 > EMA26 - bullish trend")
        elif indicators.ema12 < indicators.ema26 and price < indicators.sma20:
            bearish("Price below SMA20 with EMA12 < EMA26 - bearish trend")

        # Stochastic
        stoch = indicators.stochastic
        if stoch.k < STOCH_OVERSOLD and stoch.d < STOCH_OVERSOLD:
            bullish("Stochastic oversold - bullish signal")
        elif stoch.k > STOCH_OVERBOUGHT and stoch.d > STOCH_OVERBOUGHT:
            bearish("Stochastic overbought - bearish signal")

        # Support / resistance
        if indicators.resistance > indicators.support and price > 0:
            if abs(price - indicators.support) / price < self.level_tolerance:
                bullish("Price near support level - potential bounce")
            elif abs(price - indicators.resistance) / price < self.level_tolerance:
                bearish("Price near resistance level - potential rejection")

        if result.fired:
            result.confidence = result.bullish / result.fired
        return result
