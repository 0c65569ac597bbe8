"""Risk score history model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableJSON, PortableUUID, UTCDateTime


class RiskScoreRecord(Base):
    """One persisted risk score snapshot for a user.

    Append-only: every calculation inserts a new row, nothing is updated.
    """

    __tablename__ = "risk_scores"

    score_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    user_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)

    # Sub-scores (0-100, higher = lower risk)
    phishing_score: Mapped[float] = mapped_column(Float, nullable=False)
    training_completion_score: Mapped[float] = mapped_column(Float, nullable=False)
    training_recency_score: Mapped[float] = mapped_column(Float, nullable=False)
    quiz_performance_score: Mapped[float] = mapped_column(Float, nullable=False)
    security_incident_score: Mapped[float] = mapped_column(Float, nullable=False)
    login_anomaly_score: Mapped[float] = mapped_column(Float, nullable=False)

    overall_score: Mapped[float] = mapped_column(Float, nullable=False)
    risk_level: Mapped[str] = mapped_column(String(20), nullable=False)
    recommendations: Mapped[list[str]] = mapped_column(PortableJSON, nullable=False, default=list)
    calculated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    __table_args__ = (
        Index("idx_risk_score_tenant_user_calculated", "tenant_id", "user_id", "calculated_at"),
        Index("idx_risk_score_tenant_calculated", "tenant_id", "calculated_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<RiskScoreRecord(id={self.score_id}, user={self.user_id}, "
            f"overall={self.overall_score}, level={self.risk_level})>"
        )
