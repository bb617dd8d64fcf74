"""Risk settings loaded from risk.yaml.

Supports:
- Position size, daily alert cap and default stop/target percentages
- Minimum confidence for a signal to be pushed to the notifier
- No YAML file = built-in defaults
- RISK_<FIELD> environment variables (or a .env beside the YAML) override
  file values, e.g. RISK_MIN_CONFIDENCE=0.75
"""

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

from core.models import RiskSettings

logger = logging.getLogger(__name__)

_DEFAULT_PATH = Path(__file__).parent.parent / "risk.yaml"
ENV_PREFIX = "RISK_"


def _env_overrides() -> dict[str, str]:
    """RISK_<FIELD> values from the environment, keyed by field name."""
    overrides = {}
    for field in RiskSettings.model_fields:
        value = os.environ.get(f"{ENV_PREFIX}{field.upper()}")
        if value:
            overrides[field] = value
    return overrides


def load_risk_settings(path: Path | str | None = None) -> RiskSettings:
    """Load risk settings from a YAML file.

    The file may hold the fields at the top level or under a ``risk:`` key.
    Falls back to defaults if the file doesn't exist. RISK_<FIELD>
    environment variables take precedence over the file.

    Raises:
        pydantic.ValidationError: If a value is out of range.
    """
    config_path = Path(path) if path else _DEFAULT_PATH

    # Variables already set in the process win over the .env file
    load_dotenv(config_path.parent / ".env", override=False)

    raw = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        if isinstance(raw.get("risk"), dict):
            raw = raw["risk"]
    else:
        logger.info("No risk config found at %s, using defaults", config_path)

    overrides = _env_overrides()
    if overrides:
        logger.info("Risk overrides from environment: %s", ", ".join(sorted(overrides)))

    settings = RiskSettings(**{**raw, **overrides})
    logger.info(
        "Loaded risk settings: max_position=%.1f%%, max_daily_trades=%d, "
        "stop=%.1f%%, target=%.1f%%, min_confidence=%.2f",
        settings.max_position_size,
        settings.max_daily_trades,
        settings.default_stop_loss_pct,
        settings.default_take_profit_pct,
        settings.min_confidence,
    )
    return settings
