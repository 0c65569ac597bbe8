"""Initial analytics schema

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # Create departments table
    op.create_table(
        "departments",
        sa.Column("department_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_department_tenant", "departments", ["tenant_id"])

    # Create users table
    op.create_table(
        "users",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column(
            "department_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("departments.department_id"),
            nullable=True,
        ),
        sa.Column("failed_login_attempts", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("idx_user_tenant", "users", ["tenant_id"])
    op.create_index("idx_user_tenant_department", "users", ["tenant_id", "department_id"])

    # Create phishing_events table
    op.create_table(
        "phishing_events",
        sa.Column("event_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id"),
            nullable=False,
        ),
        sa.Column("campaign_id", sa.String(64), nullable=False),
        sa.Column("subject", sa.String(500), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("clicked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("clicked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reported", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("reported_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("metadata_version", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint(
            "tenant_id", "user_id", "campaign_id", name="uq_phishing_event_target"
        ),
    )
    op.create_index(
        "idx_phishing_tenant_campaign", "phishing_events", ["tenant_id", "campaign_id"]
    )
    op.create_index(
        "idx_phishing_tenant_user_sent", "phishing_events", ["tenant_id", "user_id", "sent_at"]
    )
    op.create_index("idx_phishing_tenant_sent", "phishing_events", ["tenant_id", "sent_at"])

    # Create enrollments table
    op.create_table(
        "enrollments",
        sa.Column("enrollment_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="ENROLLED"),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_enrollment_tenant_user", "enrollments", ["tenant_id", "user_id"])
    op.create_index(
        "idx_enrollment_user_status", "enrollments", ["tenant_id", "user_id", "status"]
    )

    # Create quiz_attempts table
    op.create_table(
        "quiz_attempts",
        sa.Column("attempt_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quiz_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("score", sa.Float, nullable=False),
        sa.Column("is_passing", sa.Boolean, nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_quiz_attempt_user_completed",
        "quiz_attempts",
        ["tenant_id", "user_id", "completed_at"],
    )

    # Create audit_logs table
    op.create_table(
        "audit_logs",
        sa.Column("log_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource", sa.String(255), nullable=True),
        sa.Column("details", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_audit_log_tenant_user_created", "audit_logs", ["tenant_id", "user_id", "created_at"]
    )
    op.create_index("idx_audit_log_action", "audit_logs", ["action"])

    # Create login_sessions table
    op.create_table(
        "login_sessions",
        sa.Column("session_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=False),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_login_session_user_created",
        "login_sessions",
        ["tenant_id", "user_id", "created_at"],
    )

    # Create risk_scores table (append-only history)
    op.create_table(
        "risk_scores",
        sa.Column("score_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("phishing_score", sa.Float, nullable=False),
        sa.Column("training_completion_score", sa.Float, nullable=False),
        sa.Column("training_recency_score", sa.Float, nullable=False),
        sa.Column("quiz_performance_score", sa.Float, nullable=False),
        sa.Column("security_incident_score", sa.Float, nullable=False),
        sa.Column("login_anomaly_score", sa.Float, nullable=False),
        sa.Column("overall_score", sa.Float, nullable=False),
        sa.Column("risk_level", sa.String(20), nullable=False),
        sa.Column("recommendations", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_risk_score_tenant_user_calculated",
        "risk_scores",
        ["tenant_id", "user_id", "calculated_at"],
    )
    op.create_index(
        "idx_risk_score_tenant_calculated", "risk_scores", ["tenant_id", "calculated_at"]
    )


def downgrade() -> None:
    op.drop_table("risk_scores")
    op.drop_table("login_sessions")
    op.drop_table("audit_logs")
    op.drop_table("quiz_attempts")
    op.drop_table("enrollments")
    op.drop_table("phishing_events")
    op.drop_table("users")
    op.drop_table("departments")
