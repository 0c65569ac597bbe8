"""Factor calculators for the six user risk sub-scores.

Each factor maps one signal set to a score in [0, 100] where higher means
lower risk. The scoring rules are pure functions; ``FactorCalculators``
fetches the signals for a user and applies them. Every fetch opens its own
session so the six factors can be computed concurrently.
"""

import asyncio
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from uuid import UUID

from awarescore.core.logging import get_logger
from awarescore.db.config import SessionFactory
from awarescore.db.models.activity import SecurityIncidentAction
from awarescore.db.models.training import EnrollmentStatus
from awarescore.db.repositories.activity import AuditLogRepository, LoginSessionRepository
from awarescore.db.repositories.directory import DirectoryRepository
from awarescore.db.repositories.phishing import PhishingEventRepository
from awarescore.db.repositories.training import EnrollmentRepository, QuizAttemptRepository
from awarescore.risk.types import RiskScoreComponents

logger = get_logger(__name__)

# Sample sizes
PHISHING_EVENT_LIMIT = 20
QUIZ_ATTEMPT_LIMIT = 10
LOGIN_SESSION_LIMIT = 50

# Neutral scores when there is no signal
NEUTRAL_SCORE = 50.0
LOGIN_BASELINE_SCORE = 80.0

# Security incidents
INCIDENT_WINDOW_DAYS = 90
SECURITY_INCIDENT_ACTIONS = frozenset(action.value for action in SecurityIncidentAction)

# Login anomalies
MIN_LOGIN_SESSIONS = 10
UNUSUAL_HOUR_START = 6  # sessions before 06:00 are unusual
UNUSUAL_HOUR_END = 22  # sessions after 22:59 are unusual
UNUSUAL_HOUR_RATIO = 0.3
MAX_DISTINCT_IPS = 5
MAX_FAILED_LOGINS = 3
ANOMALY_PENALTY = 15.0


def clamp_score(value: float) -> float:
    """Clamp a score to [0, 100]."""
    return max(0.0, min(100.0, value))


# =============================================================================
# Scoring Rules
# =============================================================================


def phishing_behavior_score(total: int, clicked: int, reported: int) -> float:
    """Score recent phishing simulation behavior.

    Clicking lowers the score by up to 50 points, reporting raises it by up
    to 30 points.

    Args:
        total: Simulations received in the sample.
        clicked: Simulations clicked in the sample.
        reported: Simulations reported in the sample.

    Returns:
        Score in [0, 100]; 50 when no simulation was received.
    """
    if total == 0:
        return NEUTRAL_SCORE
    return clamp_score(100 - clicked / total * 50 + reported / total * 30)


def training_completion_score(total: int, completed: int) -> float:
    """Score the share of enrolled courses completed; 0 without enrollments."""
    if total == 0:
        return 0.0
    return clamp_score(completed / total * 100)


def days_since(moment: datetime, now: datetime) -> int:
    """Whole days elapsed between ``moment`` and ``now``, rounded down."""
    return int((now - moment).total_seconds() // 86400)


def training_recency_score(days: int | None) -> float:
    """Score how recently the user last completed a course.

    Args:
        days: Whole days since the last completion, or None if never completed.

    Returns:
        100 within a month, decaying piecewise-linearly to 0 two years out.
    """
    if days is None:
        return 0.0
    if days <= 30:
        return 100.0
    if days <= 90:
        return 90 - (days - 30) / 60 * 20
    if days <= 180:
        return 70 - (days - 90) / 90 * 30
    if days <= 365:
        return 40 - (days - 180) / 185 * 20
    return max(0.0, 20 - (days - 365) / 365 * 20)


def quiz_performance_score(attempts: Sequence[tuple[float, bool]]) -> float:
    """Score recent quiz results as the mean of average score and pass rate.

    Args:
        attempts: ``(score, is_passing)`` pairs for the recent attempts.

    Returns:
        Score in [0, 100]; 50 without attempts.
    """
    if not attempts:
        return NEUTRAL_SCORE
    average = sum(score for score, _ in attempts) / len(attempts)
    pass_rate = sum(1 for _, passed in attempts if passed) / len(attempts) * 100
    return clamp_score((average + pass_rate) / 2)


def security_incident_score(count: int) -> float:
    """Score the number of security incidents in the trailing window."""
    if count <= 0:
        return 100.0
    if count == 1:
        return 85.0
    if count == 2:
        return 70.0
    return max(0.0, 70 - (count - 2) * 10)


def is_unusual_login_hour(moment: datetime) -> bool:
    """Whether a login happened outside 06:00-22:59 UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    return moment.hour < UNUSUAL_HOUR_START or moment.hour > UNUSUAL_HOUR_END


def count_login_anomalies(
    login_times: Sequence[datetime],
    ip_addresses: Sequence[str],
    failed_login_attempts: int,
) -> int:
    """Count the login anomaly signals present in a session sample.

    Signals:
        - more than 30% of sessions at unusual hours
        - more than 5 distinct IP addresses
        - more than 3 failed login attempts
    """
    anomalies = 0

    if login_times:
        unusual = sum(1 for t in login_times if is_unusual_login_hour(t))
        if unusual / len(login_times) > UNUSUAL_HOUR_RATIO:
            anomalies += 1

    if len(set(ip_addresses)) > MAX_DISTINCT_IPS:
        anomalies += 1

    if failed_login_attempts > MAX_FAILED_LOGINS:
        anomalies += 1

    return anomalies


def login_anomaly_score(
    login_times: Sequence[datetime],
    ip_addresses: Sequence[str],
    failed_login_attempts: int,
) -> float:
    """Score recent login behavior.

    With fewer than 10 sessions there is too little history to judge and a
    baseline of 80 is returned. Otherwise each anomaly costs 15 points.
    """
    if len(login_times) < MIN_LOGIN_SESSIONS:
        return LOGIN_BASELINE_SCORE
    anomalies = count_login_anomalies(login_times, ip_addresses, failed_login_attempts)
    return max(0.0, 100 - anomalies * ANOMALY_PENALTY)


# =============================================================================
# Calculators
# =============================================================================


class FactorCalculators:
    """Fetches a user's signals and computes the six factor sub-scores.

    Example:
        ```python
        calculators = FactorCalculators(session_factory)
        components = await calculators.calculate_all(tenant_id, user_id)
        print(components.phishing, components.login_anomaly)
        ```
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the calculators.

        Args:
            session_factory: Factory opening one session per factor.
            clock: Source of the current time (defaults to UTC now).
        """
        self.session_factory = session_factory
        self.clock = clock or (lambda: datetime.now(UTC))

    async def calculate_phishing_score(self, tenant_id: UUID, user_id: UUID) -> float:
        """Score the user's 20 most recent phishing simulations."""
        async with self.session_factory() as session:
            events = await PhishingEventRepository(session).list_for_user(
                tenant_id, user_id, limit=PHISHING_EVENT_LIMIT
            )
        return phishing_behavior_score(
            total=len(events),
            clicked=sum(1 for e in events if e.clicked),
            reported=sum(1 for e in events if e.reported),
        )

    async def calculate_training_completion_score(self, tenant_id: UUID, user_id: UUID) -> float:
        """Score the share of the user's enrollments that are completed."""
        async with self.session_factory() as session:
            repo = EnrollmentRepository(session)
            total = await repo.count_for_user(tenant_id, user_id)
            completed = await repo.count_for_user(
                tenant_id, user_id, status=EnrollmentStatus.COMPLETED
            )
        return training_completion_score(total, completed)

    async def calculate_training_recency_score(self, tenant_id: UUID, user_id: UUID) -> float:
        """Score the time since the user last completed a course."""
        async with self.session_factory() as session:
            completed_at = await EnrollmentRepository(session).latest_completion(
                tenant_id, user_id
            )
        if completed_at is None:
            return training_recency_score(None)
        return training_recency_score(days_since(completed_at, self.clock()))

    async def calculate_quiz_score(self, tenant_id: UUID, user_id: UUID) -> float:
        """Score the user's 10 most recent quiz attempts."""
        async with self.session_factory() as session:
            attempts = await QuizAttemptRepository(session).recent_for_user(
                tenant_id, user_id, limit=QUIZ_ATTEMPT_LIMIT
            )
        return quiz_performance_score([(a.score, a.is_passing) for a in attempts])

    async def calculate_incident_score(self, tenant_id: UUID, user_id: UUID) -> float:
        """Score the user's security incidents over the trailing 90 days."""
        since = self.clock() - timedelta(days=INCIDENT_WINDOW_DAYS)
        async with self.session_factory() as session:
            count = await AuditLogRepository(session).count_actions(
                tenant_id, user_id, SECURITY_INCIDENT_ACTIONS, since=since
            )
        return security_incident_score(count)

    async def calculate_login_anomaly_score(self, tenant_id: UUID, user_id: UUID) -> float:
        """Score the user's 50 most recent login sessions."""
        async with self.session_factory() as session:
            sessions = await LoginSessionRepository(session).recent_for_user(
                tenant_id, user_id, limit=LOGIN_SESSION_LIMIT
            )
            failed = await DirectoryRepository(session).get_failed_login_attempts(
                tenant_id, user_id
            )
        return login_anomaly_score(
            login_times=[s.created_at for s in sessions],
            ip_addresses=[s.ip_address for s in sessions],
            failed_login_attempts=failed or 0,
        )

    async def calculate_all(self, tenant_id: UUID, user_id: UUID) -> RiskScoreComponents:
        """Compute all six sub-scores concurrently."""
        (
            phishing,
            completion,
            recency,
            quiz,
            incidents,
            login,
        ) = await asyncio.gather(
            self.calculate_phishing_score(tenant_id, user_id),
            self.calculate_training_completion_score(tenant_id, user_id),
            self.calculate_training_recency_score(tenant_id, user_id),
            self.calculate_quiz_score(tenant_id, user_id),
            self.calculate_incident_score(tenant_id, user_id),
            self.calculate_login_anomaly_score(tenant_id, user_id),
        )

        logger.debug(
            "risk_factors_calculated",
            tenant_id=str(tenant_id),
            user_id=str(user_id),
            phishing=phishing,
            training_completion=completion,
            training_recency=recency,
            quiz_performance=quiz,
            security_incident=incidents,
            login_anomaly=login,
        )

        return RiskScoreComponents(
            phishing=phishing,
            training_completion=completion,
            training_recency=recency,
            quiz_performance=quiz,
            security_incident=incidents,
            login_anomaly=login,
        )
