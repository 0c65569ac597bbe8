"""Directory repository for user and department lookups."""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from awarescore.db.models.directory import User
from awarescore.db.repositories.base import BaseRepository


class DirectoryRepository(BaseRepository[User, UUID]):
    """Repository resolving tenant populations and user display attributes."""

    model = User

    async def list_user_ids(self, tenant_id: UUID) -> list[UUID]:
        """Get every user id in a tenant, ordered by id."""
        stmt = select(User.user_id).where(User.tenant_id == tenant_id).order_by(User.user_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_user_ids_in_departments(
        self,
        tenant_id: UUID,
        department_ids: Sequence[UUID],
    ) -> list[UUID]:
        """Get the ids of users belonging to any of the given departments."""
        if not department_ids:
            return []

        stmt = (
            select(User.user_id)
            .where(User.tenant_id == tenant_id, User.department_id.in_(department_ids))
            .order_by(User.user_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_users(self, tenant_id: UUID, user_ids: Sequence[UUID]) -> dict[UUID, User]:
        """Get users with their department loaded, keyed by user id.

        Ids that do not resolve within the tenant are omitted.
        """
        if not user_ids:
            return {}

        stmt = (
            select(User)
            .options(selectinload(User.department))
            .where(User.tenant_id == tenant_id, User.user_id.in_(list(user_ids)))
        )
        result = await self.db.execute(stmt)
        return {user.user_id: user for user in result.scalars().all()}

    async def get_failed_login_attempts(self, tenant_id: UUID, user_id: UUID) -> int | None:
        """Get the failed login counter of a user, or None if the user is unknown."""
        stmt = select(User.failed_login_attempts).where(
            User.tenant_id == tenant_id, User.user_id == user_id
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
