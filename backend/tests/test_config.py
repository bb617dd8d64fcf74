"""Tests for settings and risk configuration loading."""

import pytest
from pydantic import ValidationError

from app.config import Settings
from app.risk_config import load_risk_settings
from core.models import ModelArchitecture, RiskSettings


class TestSettings:
    """Tests for Settings defaults and environment overrides."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.symbols == ["EURUSD", "EURJPY", "USDCHF"]
        assert settings.storage_backend == "memory"
        assert settings.model_architecture() == ModelArchitecture()

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SYMBOLS", '["EURUSD"]')
        monkeypatch.setenv("EPOCHS", "7")
        monkeypatch.setenv("STORAGE_BACKEND", "redis")

        settings = Settings(_env_file=None)

        assert settings.symbols == ["EURUSD"]
        assert settings.model_architecture().epochs == 7
        assert settings.storage_backend == "redis"

    def test_invalid_backend_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, storage_backend="sqlite")


class TestLoadRiskSettings:
    """Tests for load_risk_settings."""

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_risk_settings(tmp_path / "missing.yaml") == RiskSettings()

    def test_top_level_fields(self, tmp_path):
        path = tmp_path / "risk.yaml"
        path.write_text("max_daily_trades: 3\nmin_confidence: 0.75\n")

        risk = load_risk_settings(path)

        assert risk.max_daily_trades == 3
        assert risk.min_confidence == 0.75
        assert risk.default_stop_loss_pct == 2.0

    def test_nested_risk_key(self, tmp_path):
        path = tmp_path / "risk.yaml"
        path.write_text("risk:\n  max_position_size: 5.0\n  default_take_profit_pct: 6.0\n")

        risk = load_risk_settings(path)

        assert risk.max_position_size == 5.0
        assert risk.default_take_profit_pct == 6.0

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "risk.yaml"
        path.write_text("")
        assert load_risk_settings(path) == RiskSettings()

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "risk.yaml"
        path.write_text("min_confidence: 0.65\nmax_daily_trades: 3\n")
        monkeypatch.setenv("RISK_MIN_CONFIDENCE", "0.8")

        risk = load_risk_settings(path)

        assert risk.min_confidence == 0.8
        assert risk.max_daily_trades == 3

    def test_dotenv_beside_config(self, tmp_path, monkeypatch):
        # Registered so the value load_dotenv sets is removed afterwards
        monkeypatch.setenv("RISK_MAX_DAILY_TRADES", "")
        monkeypatch.delenv("RISK_MAX_DAILY_TRADES")
        (tmp_path / ".env").write_text("RISK_MAX_DAILY_TRADES=4\n")

        risk = load_risk_settings(tmp_path / "missing.yaml")

        assert risk.max_daily_trades == 4

    def test_out_of_range_rejected(self, tmp_path):
        path = tmp_path / "risk.yaml"
        path.write_text("min_confidence: 1.5\n")

        with pytest.raises(ValidationError):
            load_risk_settings(path)


class TestRiskSettings:
    """Tests for RiskSettings helpers."""

    def test_position_size(self):
        risk = RiskSettings(max_position_size=2.0)

        assert risk.position_size(10_000) == 200.0
        assert risk.position_size(-5) == 0.0
