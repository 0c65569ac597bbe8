"""Types for user risk scoring and risk history reporting."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from awarescore.phishing.types import UserDisplay

# =============================================================================
# Enums
# =============================================================================


class RiskLevel(str, Enum):
    """Risk level classification of an overall score (higher score = lower risk)."""

    LOW = "LOW"  # 80-100
    MEDIUM = "MEDIUM"  # 60-79.99
    HIGH = "HIGH"  # 40-59.99
    CRITICAL = "CRITICAL"  # 0-39.99


class TrendDirection(str, Enum):
    """Direction of a user's score over their recent snapshots."""

    INCREASING = "INCREASING"
    DECREASING = "DECREASING"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


class PredictionConfidence(str, Enum):
    """Confidence in a predicted score, driven by the amount of history."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# =============================================================================
# Scoring Results
# =============================================================================


@dataclass
class RiskScoreComponents:
    """The six factor sub-scores for one user, each in [0, 100]."""

    phishing: float
    training_completion: float
    training_recency: float
    quiz_performance: float
    security_incident: float
    login_anomaly: float

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {
            "phishing": self.phishing,
            "training_completion": self.training_completion,
            "training_recency": self.training_recency,
            "quiz_performance": self.quiz_performance,
            "security_incident": self.security_incident,
            "login_anomaly": self.login_anomaly,
        }

    def rounded(self) -> "RiskScoreComponents":
        """Return a copy with every sub-score rounded to 2 decimals."""
        return RiskScoreComponents(**{k: round(v, 2) for k, v in self.to_dict().items()})


@dataclass
class RiskScoreResult:
    """Outcome of scoring one user.

    Attributes:
        user_id: Scored user.
        tenant_id: Tenant of the user.
        components: Sub-scores, rounded to 2 decimals.
        overall_score: Weighted overall score, rounded to 2 decimals.
        risk_level: Level derived from the unrounded overall score.
        recommendations: Ordered guidance for the user.
        calculated_at: When the score was computed.
    """

    user_id: UUID
    tenant_id: UUID
    components: RiskScoreComponents
    overall_score: float
    risk_level: RiskLevel
    recommendations: list[str] = field(default_factory=list)
    calculated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": str(self.user_id),
            "tenant_id": str(self.tenant_id),
            "overall_score": self.overall_score,
            "risk_level": self.risk_level.value,
            "components": self.components.to_dict(),
            "recommendations": list(self.recommendations),
            "calculated_at": self.calculated_at.isoformat(),
        }


@dataclass
class BulkScoringSummary:
    """Outcome of re-scoring every user of a tenant."""

    attempted: int = 0
    succeeded: int = 0
    failed_user_ids: list[UUID] = field(default_factory=list)

    @property
    def failed(self) -> int:
        """Number of users whose score could not be computed."""
        return len(self.failed_user_ids)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failed_user_ids": [str(u) for u in self.failed_user_ids],
        }


# =============================================================================
# History & Reporting
# =============================================================================


@dataclass
class HighRiskUser:
    """A user whose latest overall score is below the reporting threshold."""

    user_id: UUID
    overall_score: float
    risk_level: RiskLevel
    calculated_at: datetime
    user: UserDisplay | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": str(self.user_id),
            "overall_score": self.overall_score,
            "risk_level": self.risk_level.value,
            "calculated_at": self.calculated_at.isoformat(),
            "user": self.user.to_dict() if self.user else None,
        }


@dataclass
class TenantRiskStats:
    """Tenant-wide summary of the latest score of every user."""

    total_users: int = 0
    users_assessed: int = 0
    average_score: float = 0.0
    level_counts: dict[RiskLevel, int] = field(
        default_factory=lambda: {level: 0 for level in RiskLevel}
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_users": self.total_users,
            "users_assessed": self.users_assessed,
            "average_score": self.average_score,
            "risk_distribution": {
                level.value: count for level, count in self.level_counts.items()
            },
        }


@dataclass
class RiskTrendPoint:
    """One historical score on a trend line."""

    user_id: UUID
    score: float
    risk_level: RiskLevel
    calculated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": str(self.user_id),
            "date": self.calculated_at.isoformat(),
            "score": self.score,
            "risk_level": self.risk_level.value,
        }


@dataclass
class RiskTrendPrediction:
    """Linear extrapolation of a user's score.

    ``predicted_score`` is None when there is not enough history.
    """

    user_id: UUID
    days_ahead: int
    trend: TrendDirection
    confidence: PredictionConfidence
    current_score: float | None = None
    predicted_score: float | None = None
    data_points: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": str(self.user_id),
            "days_ahead": self.days_ahead,
            "current_score": self.current_score,
            "predicted_score": self.predicted_score,
            "trend": self.trend.value,
            "confidence": self.confidence.value,
            "data_points": self.data_points,
        }
