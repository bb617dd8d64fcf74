"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from core.models import ModelArchitecture
from core.models.config import Activation


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # Market data
    symbols: list[str] = ["EURUSD", "EURJPY", "USDCHF"]
    history_period: str = "3mo"  # Yahoo range for historical bars
    yahoo_base_url: str = "https://query1.finance.yahoo.com"
    request_timeout: float = 10.0
    requests_per_second: float = 5.0

    # Storage
    storage_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "fxsignal:"
    max_predictions: int = 1000

    # Model (input size is fixed by the feature extractor)
    hidden_layers: list[int] = [32, 16]
    activation: Activation = "relu"
    learning_rate: float = 0.001
    epochs: int = 100
    batch_size: int = 32
    model_seed: int | None = None

    # Risk
    risk_config_path: str | None = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    def model_architecture(self) -> ModelArchitecture:
        return ModelArchitecture(
            hidden_layers=self.hidden_layers,
            activation=self.activation,
            learning_rate=self.learning_rate,
            epochs=self.epochs,
            batch_size=self.batch_size,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
