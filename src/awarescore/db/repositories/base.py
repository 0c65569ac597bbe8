"""Shared repository plumbing.

Repositories wrap one AsyncSession each. Writes commit immediately unless
the caller asks to batch them; reads are always filtered by tenant in the
subclasses.
"""

from collections.abc import Sequence
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from awarescore.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PKType = TypeVar("PKType", bound=UUID | int | str)


class BaseRepository(Generic[ModelType, PKType]):
    """Session holder with primary-key lookup and inserts.

    Subclasses set ``model`` and add tenant-scoped queries.
    """

    model: type[ModelType]

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, pk: PKType) -> ModelType | None:
        """Look up a row by primary key (not tenant-scoped)."""
        return await self.db.get(self.model, pk)

    async def create(self, obj: ModelType, *, commit: bool = True) -> ModelType:
        """Insert one row; committed rows are refreshed to pick up server defaults."""
        self.db.add(obj)
        if not commit:
            await self.db.flush()
            return obj
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def create_many(
        self,
        objs: Sequence[ModelType],
        *,
        commit: bool = True,
    ) -> list[ModelType]:
        """Insert rows in a single flush, e.g. every event of a new campaign."""
        self.db.add_all(objs)
        if commit:
            await self.db.commit()
        else:
            await self.db.flush()
        return list(objs)
