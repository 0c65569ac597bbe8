"""Unit tests for application settings."""

import pytest
from pydantic import ValidationError

from awarescore.config.settings import RiskWeights, Settings


class TestRiskWeights:
    """Tests for RiskWeights validation."""

    def test_defaults_sum_to_one(self):
        """Test the default weights."""
        weights = RiskWeights()

        assert weights.phishing == 0.25
        assert weights.training_completion == 0.20
        assert weights.training_recency == 0.15
        assert weights.quiz_performance == 0.20
        assert weights.security_incidents == 0.15
        assert weights.login_anomalies == 0.05

    def test_rejects_bad_total(self):
        """Test weights that do not sum to 1.0 are rejected."""
        with pytest.raises(ValidationError, match="sum to 1.0"):
            RiskWeights(phishing=0.5)

    def test_rejects_negative_weight(self):
        """Test each weight must be within 0-1."""
        with pytest.raises(ValidationError):
            RiskWeights(phishing=-0.25, training_completion=0.7)

    def test_frozen(self):
        """Test weights cannot be changed after construction."""
        weights = RiskWeights()

        with pytest.raises(ValidationError):
            weights.phishing = 0.3


class TestSettings:
    """Tests for Settings loading."""

    def test_defaults(self, monkeypatch):
        """Test defaults without environment overrides."""
        monkeypatch.delenv("DATABASE_URL", raising=False)

        settings = Settings(_env_file=None)

        assert settings.ENVIRONMENT == "development"
        assert settings.bulk_scoring_concurrency == 4
        assert settings.risk_weights == RiskWeights()

    def test_nested_weights_from_environment(self, monkeypatch):
        """Test weights can be overridden with the nested delimiter."""
        monkeypatch.setenv("RISK_WEIGHTS__PHISHING", "0.30")
        monkeypatch.setenv("RISK_WEIGHTS__LOGIN_ANOMALIES", "0.0")

        settings = Settings(_env_file=None)

        assert settings.risk_weights.phishing == pytest.approx(0.30)
        assert settings.risk_weights.login_anomalies == 0.0

    def test_invalid_weights_from_environment(self, monkeypatch):
        """Test an environment override that breaks the total fails loudly."""
        monkeypatch.setenv("RISK_WEIGHTS__PHISHING", "0.9")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_concurrency_bounds(self):
        """Test bulk scoring concurrency must be positive."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, bulk_scoring_concurrency=0)
