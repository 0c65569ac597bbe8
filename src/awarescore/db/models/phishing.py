"""Phishing simulation event model."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableJSON, PortableUUID, TimestampMixin, UTCDateTime


class PhishingEvent(Base, TimestampMixin):
    """One simulated phishing delivery to one user within one campaign.

    Rows are created in bulk when a campaign launches and are only ever
    mutated by recording user actions. They are never deleted: the table is
    the audit trail for compliance reporting.
    """

    __tablename__ = "phishing_events"

    event_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    user_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("users.user_id"), nullable=False
    )
    campaign_id: Mapped[str] = mapped_column(String(64), nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    clicked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    clicked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    reported: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reported_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # Serialized EventMetadata (see awarescore.phishing.types)
    event_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", PortableJSON, nullable=False, default=dict
    )
    # Bumped by every write; updates are conditional on the value they read
    metadata_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", "campaign_id", name="uq_phishing_event_target"),
        Index("idx_phishing_tenant_campaign", "tenant_id", "campaign_id"),
        Index("idx_phishing_tenant_user_sent", "tenant_id", "user_id", "sent_at"),
        Index("idx_phishing_tenant_sent", "tenant_id", "sent_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PhishingEvent(id={self.event_id}, campaign={self.campaign_id}, "
            f"user={self.user_id}, clicked={self.clicked}, reported={self.reported})>"
        )
