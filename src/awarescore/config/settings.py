"""Application settings loaded from environment variables."""

import math
from functools import lru_cache
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RiskWeights(BaseModel):
    """Weights applied to the six risk factors.

    Immutable once built. The weights must sum to 1.0 so the overall score
    stays within the 0-100 range of the sub-scores.
    """

    model_config = ConfigDict(frozen=True)

    phishing: float = Field(default=0.25, ge=0.0, le=1.0)
    """Weight of phishing simulation behavior."""

    training_completion: float = Field(default=0.20, ge=0.0, le=1.0)
    """Weight of the training completion rate."""

    training_recency: float = Field(default=0.15, ge=0.0, le=1.0)
    """Weight of time since the last completed training."""

    quiz_performance: float = Field(default=0.20, ge=0.0, le=1.0)
    """Weight of recent quiz results."""

    security_incidents: float = Field(default=0.15, ge=0.0, le=1.0)
    """Weight of recent security incidents."""

    login_anomalies: float = Field(default=0.05, ge=0.0, le=1.0)
    """Weight of login pattern anomalies."""

    @model_validator(mode="after")
    def validate_total(self) -> Self:
        """Validate that the weights sum to 1.0."""
        total = (
            self.phishing
            + self.training_completion
            + self.training_recency
            + self.quiz_performance
            + self.security_incidents
            + self.login_anomalies
        )
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"risk weights must sum to 1.0, got {total}")
        return self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Runtime
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = "development"
    DEBUG: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./awarescore.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # Risk scoring
    risk_weights: RiskWeights = RiskWeights()
    bulk_scoring_concurrency: int = Field(default=4, ge=1, le=64)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
