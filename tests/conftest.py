"""Pytest fixtures for AwareScore tests."""

import logging
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import pytest
import pytest_asyncio
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool
from uuid_utils.compat import uuid7

from awarescore.config.settings import Settings
from awarescore.db.config import SessionFactory, create_session_factory
from awarescore.db.models import (
    AuditLog,
    Base,
    Department,
    Enrollment,
    LoginSession,
    PhishingEvent,
    QuizAttempt,
    RiskScoreRecord,
    User,
)
from awarescore.db.models.training import EnrollmentStatus
from awarescore.messaging.events import InMemoryEventBus

# =============================================================================
# Logging Isolation
# =============================================================================

_LOGGERS_TOUCHED_BY_SETUP = ("", "sqlalchemy", "aiosqlite", "alembic")


@pytest.fixture(autouse=True)
def isolate_logging():
    """Undo setup_logging() between tests.

    setup_logging reconfigures structlog and installs a ProcessorFormatter
    handler on the root and library loggers; both are process-global.
    pytest's own capture handlers are left alone.
    """
    saved = {
        name: (logging.getLogger(name).level, logging.getLogger(name).propagate)
        for name in _LOGGERS_TOUCHED_BY_SETUP
    }
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    for name, (level, propagate) in saved.items():
        logger = logging.getLogger(name)
        logger.handlers = [
            h
            for h in logger.handlers
            if not isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
        ]
        logger.setLevel(level)
        logger.propagate = propagate


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create settings for testing."""
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'awarescore.db'}",
        log_level="DEBUG",
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine.

    Each test gets its own file database so that several sessions can be
    open at once (factor calculators and bulk scoring use one per task).
    """
    engine = create_async_engine(test_settings.DATABASE_URL, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> SessionFactory:
    """Create a session factory bound to the test engine."""
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(session_factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    """Create an in-memory event bus."""
    return InMemoryEventBus()


@pytest.fixture
def tenant_id() -> UUID:
    """Tenant used by the test."""
    return uuid7()


# =============================================================================
# Row Factories
# =============================================================================


class DataFactory:
    """Inserts rows with sensible defaults, committing each call."""

    def __init__(self, session_factory: SessionFactory, tenant_id: UUID):
        self.session_factory = session_factory
        self.tenant_id = tenant_id

    async def _add(self, *objs: Any) -> None:
        async with self.session_factory() as session:
            session.add_all(objs)
            await session.commit()

    async def department(self, name: str = "Engineering") -> Department:
        department = Department(department_id=uuid7(), tenant_id=self.tenant_id, name=name)
        await self._add(department)
        return department

    async def user(
        self,
        *,
        email: str | None = None,
        first_name: str | None = "Test",
        last_name: str | None = "User",
        department: Department | None = None,
        failed_login_attempts: int = 0,
        user_id: UUID | None = None,
    ) -> User:
        user_id = user_id or uuid7()
        user = User(
            user_id=user_id,
            tenant_id=self.tenant_id,
            email=email or f"user-{user_id.hex[-8:]}@example.com",
            first_name=first_name,
            last_name=last_name,
            department_id=department.department_id if department else None,
            failed_login_attempts=failed_login_attempts,
        )
        await self._add(user)
        return user

    async def users(self, count: int, **kwargs: Any) -> list[User]:
        return [await self.user(**kwargs) for _ in range(count)]

    async def phishing_events(
        self,
        user: User,
        *,
        total: int,
        clicked: int = 0,
        reported: int = 0,
        campaign_prefix: str = "PHISH-TEST",
        difficulty: str | None = None,
        sent_at: datetime | None = None,
    ) -> list[PhishingEvent]:
        """Insert ``total`` events for a user, the first ones clicked/reported."""
        base = sent_at or datetime.now(UTC) - timedelta(days=1)
        metadata = {"difficulty": difficulty} if difficulty else {}
        events = [
            PhishingEvent(
                event_id=uuid7(),
                tenant_id=self.tenant_id,
                user_id=user.user_id,
                campaign_id=f"{campaign_prefix}-{i}",
                subject="Action required",
                sent_at=base - timedelta(minutes=i),
                clicked=i < clicked,
                clicked_at=base - timedelta(minutes=i) + timedelta(minutes=5)
                if i < clicked
                else None,
                reported=i < reported,
                reported_at=base - timedelta(minutes=i) + timedelta(minutes=10)
                if i < reported
                else None,
                event_metadata=dict(metadata),
            )
            for i in range(total)
        ]
        await self._add(*events)
        return events

    async def enrollment(
        self,
        user: User,
        *,
        status: EnrollmentStatus = EnrollmentStatus.ENROLLED,
        completed_at: datetime | None = None,
    ) -> Enrollment:
        enrollment = Enrollment(
            enrollment_id=uuid7(),
            tenant_id=self.tenant_id,
            user_id=user.user_id,
            course_id=uuid7(),
            status=status.value,
            enrolled_at=datetime.now(UTC) - timedelta(days=400),
            completed_at=completed_at,
        )
        await self._add(enrollment)
        return enrollment

    async def quiz_attempt(
        self,
        user: User,
        *,
        score: float,
        is_passing: bool,
        completed_at: datetime | None = None,
    ) -> QuizAttempt:
        attempt = QuizAttempt(
            attempt_id=uuid7(),
            tenant_id=self.tenant_id,
            user_id=user.user_id,
            quiz_id=uuid7(),
            score=score,
            is_passing=is_passing,
            completed_at=completed_at or datetime.now(UTC),
        )
        await self._add(attempt)
        return attempt

    async def audit_log(
        self,
        user: User,
        *,
        action: str,
        created_at: datetime | None = None,
    ) -> AuditLog:
        log = AuditLog(
            log_id=uuid7(),
            tenant_id=self.tenant_id,
            user_id=user.user_id,
            action=action,
            details={},
            created_at=created_at or datetime.now(UTC),
        )
        await self._add(log)
        return log

    async def login_sessions(
        self,
        user: User,
        times: list[datetime],
        ip_addresses: list[str] | None = None,
    ) -> list[LoginSession]:
        ips = ip_addresses or ["10.0.0.1"] * len(times)
        sessions = [
            LoginSession(
                session_id=uuid7(),
                tenant_id=self.tenant_id,
                user_id=user.user_id,
                ip_address=ip,
                created_at=moment,
            )
            for moment, ip in zip(times, ips, strict=True)
        ]
        await self._add(*sessions)
        return sessions

    async def risk_score(
        self,
        user_id: UUID,
        *,
        overall_score: float,
        risk_level: str,
        calculated_at: datetime,
    ) -> RiskScoreRecord:
        record = RiskScoreRecord(
            score_id=uuid7(),
            tenant_id=self.tenant_id,
            user_id=user_id,
            phishing_score=overall_score,
            training_completion_score=overall_score,
            training_recency_score=overall_score,
            quiz_performance_score=overall_score,
            security_incident_score=overall_score,
            login_anomaly_score=overall_score,
            overall_score=overall_score,
            risk_level=risk_level,
            recommendations=[],
            calculated_at=calculated_at,
        )
        await self._add(record)
        return record


@pytest.fixture
def factory(session_factory: SessionFactory, tenant_id: UUID) -> DataFactory:
    """Row factory scoped to the test tenant."""
    return DataFactory(session_factory, tenant_id)
