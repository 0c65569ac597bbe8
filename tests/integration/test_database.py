"""Integration tests for database configuration and models."""

from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_utils.compat import uuid7

from awarescore.db.config import (
    close_db,
    create_engine,
    create_session_factory,
    get_async_session,
    init_db,
)
from awarescore.db.models import PhishingEvent, User


@pytest.mark.asyncio
async def test_create_engine_from_settings(test_settings, test_engine):
    """Test an engine built from settings can reach the database."""
    engine = create_engine(test_settings)
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            assert result.scalar() == 1
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_init_and_close_db(test_engine):
    """Test connectivity check and shutdown use the process engine."""
    with patch("awarescore.db.config.get_engine", return_value=test_engine):
        await init_db()
        await close_db()


@pytest.mark.asyncio
async def test_get_async_session(test_engine, factory):
    """Test the session context manager yields a working session."""
    user = await factory.user()

    with patch(
        "awarescore.db.config.get_session_factory",
        return_value=create_session_factory(test_engine),
    ):
        async with get_async_session() as session:
            assert isinstance(session, AsyncSession)
            loaded = await session.get(User, user.user_id)

    assert loaded.email == user.email


@pytest.mark.asyncio
async def test_uuid_and_timestamps_round_trip(db_session: AsyncSession, factory, tenant_id):
    """Test UUIDs come back as UUIDs and datetimes as UTC-aware values."""
    user = await factory.user()
    sent_at = datetime(2026, 1, 5, 18, 30, tzinfo=timezone(timedelta(hours=2)))
    event = PhishingEvent(
        tenant_id=tenant_id,
        user_id=user.user_id,
        campaign_id="PHISH-ROUNDTRIP-000001",
        subject="Shared document",
        sent_at=sent_at,
    )
    db_session.add(event)
    await db_session.commit()

    db_session.expunge_all()
    stmt = select(PhishingEvent).where(PhishingEvent.event_id == event.event_id)
    loaded = (await db_session.execute(stmt)).scalar_one()

    assert loaded.user_id == user.user_id
    assert loaded.sent_at == sent_at
    assert loaded.sent_at.tzinfo == UTC
    assert loaded.clicked is False
    assert loaded.event_metadata == {}
    assert loaded.created_at is not None


@pytest.mark.asyncio
async def test_one_event_per_user_and_campaign(db_session: AsyncSession, factory, tenant_id):
    """Test a user cannot be targeted twice by the same campaign."""
    user = await factory.user()
    for _ in range(2):
        db_session.add(
            PhishingEvent(
                event_id=uuid7(),
                tenant_id=tenant_id,
                user_id=user.user_id,
                campaign_id="PHISH-DUP-000001",
                subject="Duplicate",
                sent_at=datetime.now(UTC),
            )
        )

    with pytest.raises(IntegrityError):
        await db_session.commit()
