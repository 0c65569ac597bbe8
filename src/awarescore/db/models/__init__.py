"""Database models for AwareScore."""

from .activity import AuditLog, LoginSession, SecurityIncidentAction
from .base import Base, PortableJSON, PortableUUID, TimestampMixin, UTCDateTime
from .directory import Department, User
from .phishing import PhishingEvent
from .risk import RiskScoreRecord
from .training import Enrollment, EnrollmentStatus, QuizAttempt

__all__ = [
    "Base",
    "TimestampMixin",
    "PortableJSON",
    "PortableUUID",
    "UTCDateTime",
    "Department",
    "User",
    "PhishingEvent",
    "Enrollment",
    "EnrollmentStatus",
    "QuizAttempt",
    "AuditLog",
    "LoginSession",
    "SecurityIncidentAction",
    "RiskScoreRecord",
]
