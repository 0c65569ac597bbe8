"""Database repositories for clean data access."""

from .activity import AuditLogRepository, LoginSessionRepository
from .base import BaseRepository
from .directory import DirectoryRepository
from .phishing import PhishingEventRepository
from .risk import RiskScoreRepository
from .training import EnrollmentRepository, QuizAttemptRepository

__all__ = [
    "BaseRepository",
    "AuditLogRepository",
    "DirectoryRepository",
    "EnrollmentRepository",
    "LoginSessionRepository",
    "PhishingEventRepository",
    "QuizAttemptRepository",
    "RiskScoreRepository",
]
