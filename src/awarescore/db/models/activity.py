"""Account activity models: audit log entries and login sessions."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import Index, String, func
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableJSON, PortableUUID, UTCDateTime


class SecurityIncidentAction(str, Enum):
    """Audit log actions that count as security incidents for risk scoring."""

    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    UNAUTHORIZED_ACCESS = "UNAUTHORIZED_ACCESS"
    DATA_BREACH = "DATA_BREACH"
    MALWARE_DETECTED = "MALWARE_DETECTED"
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"


class AuditLog(Base):
    """Append-only audit trail entry written by the platform services."""

    __tablename__ = "audit_logs"

    log_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    user_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource: Mapped[str | None] = mapped_column(String(255), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(PortableJSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_audit_log_tenant_user_created", "tenant_id", "user_id", "created_at"),
        Index("idx_audit_log_action", "action"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.log_id}, action={self.action}, user={self.user_id})>"


class LoginSession(Base):
    """A session opened by a successful login."""

    __tablename__ = "login_sessions"

    session_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    user_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_login_session_user_created", "tenant_id", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<LoginSession(id={self.session_id}, user={self.user_id}, ip={self.ip_address})>"
