"""Declarative base and column types shared by the AwareScore tables.

Production runs on PostgreSQL (native UUID and JSONB); tests and small
deployments run on SQLite, where UUIDs are stored as text and timezone
information is not kept.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator, TypeEngine


def _is_postgres(dialect: Dialect) -> bool:
    return dialect.name == "postgresql"


class PortableJSON(TypeDecorator):
    """JSONB on PostgreSQL, plain JSON on other backends."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        return dialect.type_descriptor(JSONB() if _is_postgres(dialect) else JSON())


class PortableUUID(TypeDecorator):
    """Native UUID on PostgreSQL, 36-character text elsewhere."""

    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if _is_postgres(dialect):
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value: UUID | str | None, dialect: Dialect) -> Any:
        if value is None or _is_postgres(dialect):
            return value
        return str(value)

    def process_result_value(self, value: Any, dialect: Dialect) -> UUID | None:
        if not value:
            return None
        return value if isinstance(value, UUID) else UUID(value)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always comes back as UTC.

    Naive values are assumed to be UTC. SQLite drops tzinfo on storage, so
    values read back are re-tagged to compare cleanly with
    ``datetime.now(UTC)``.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    @staticmethod
    def _as_utc(value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        return self._as_utc(value)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        return self._as_utc(value)


class Base(DeclarativeBase):
    """Base class for all AwareScore tables."""


class TimestampMixin:
    """Row bookkeeping columns maintained by the database."""

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
