"""Engine configuration models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class StrategyConfig(BaseModel):
    """Indicator periods, combination weights and risk multipliers."""

    # Indicator periods
    rsi_period: int = Field(default=14, ge=1)
    macd_fast: int = Field(default=12, ge=1)
    macd_slow: int = Field(default=26, ge=1)
    macd_signal: int = Field(default=9, ge=1)
    bb_period: int = Field(default=20, ge=1)
    bb_std: float = Field(default=2.0, ge=0.0)
    stoch_period: int = Field(default=14, ge=1)
    stoch_d_period: int = Field(default=3, ge=1)
    volatility_period: int = Field(default=20, ge=1)
    sr_period: int = Field(default=20, ge=1)

    # Combination weights (model vs rules)
    ml_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    rule_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    # Taken out of ml_weight when a sentiment score is supplied
    sentiment_weight: float = Field(default=0.1, ge=0.0, le=0.1)

    # Dead zone boundaries on the combined score
    call_threshold: float = Field(default=0.6, ge=0.5, le=1.0)
    put_threshold: float = Field(default=0.4, ge=0.0, le=0.5)

    # Stop distance = volatility * entry * volatility_risk_mult
    volatility_risk_mult: float = Field(default=0.01, gt=0.0)
    reward_risk_ratio: float = Field(default=2.0, gt=0.0)

    # Proximity to support/resistance, as a fraction of price
    level_tolerance: float = Field(default=0.01, gt=0.0)

    @model_validator(mode="after")
    def _validate(self):
        if abs(self.ml_weight + self.rule_weight - 1.0) > 1e-9:
            raise ValueError(
                f"ml_weight + rule_weight must equal 1.0, got {self.ml_weight + self.rule_weight}"
            )
        if self.sentiment_weight > self.ml_weight:
            raise ValueError("sentiment_weight cannot exceed ml_weight")
        if self.put_threshold >= self.call_threshold:
            raise ValueError("put_threshold must be below call_threshold")
        if self.macd_fast >= self.macd_slow:
            raise ValueError("macd_fast must be shorter than macd_slow")
        return self


Activation = Literal["relu", "sigmoid", "tanh"]


class ModelArchitecture(BaseModel):
    """Shape and training hyper-parameters of the feedforward network."""

    input_size: int = Field(default=15, ge=1)
    hidden_layers: list[int] = Field(default_factory=lambda: [32, 16])
    output_size: int = Field(default=1, ge=1)
    activation: Activation = "relu"
    learning_rate: float = Field(default=0.001, gt=0.0)
    epochs: int = Field(default=100, ge=1)
    batch_size: int = Field(default=32, ge=1)

    @field_validator("hidden_layers")
    @classmethod
    def _check_hidden_layers(cls, value: list[int]) -> list[int]:
        if any(width < 1 for width in value):
            raise ValueError(f"hidden layer widths must be positive, got {value}")
        return value

    @property
    def layer_sizes(self) -> list[int]:
        """Input, hidden and output widths in order."""
        return [self.input_size, *self.hidden_layers, self.output_size]


class RiskSettings(BaseModel):
    """User risk parameters applied at the engine boundary."""

    max_position_size: float = Field(default=2.0, gt=0.0, le=100.0)  # % of balance
    max_daily_trades: int = Field(default=10, ge=1)
    default_stop_loss_pct: float = Field(default=2.0, gt=0.0, le=100.0)
    default_take_profit_pct: float = Field(default=4.0, gt=0.0)
    min_confidence: float = Field(default=0.6, ge=0.0, le=1.0)

    def position_size(self, balance: float) -> float:
        """Maximum stake for one trade given an account balance."""
        return max(balance, 0.0) * self.max_position_size / 100
