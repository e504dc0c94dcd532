"""
Base service with common lookup operations.

Provides async methods for:
- get_by_id()
- get_by_field()
- add()
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bulkio.models.base import BaseTableModel

# Type variable for generic service
ModelType = TypeVar("ModelType", bound=BaseTableModel)


class BaseService(Generic[ModelType]):
    """
    Generic base service bound to one table model.

    Usage:
        class ImportJobService(JobService[ImportJob]):
            def __init__(self, db: AsyncSession):
                super().__init__(db, ImportJob)
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: str) -> ModelType | None:
        """Get a single record by identifier."""
        stmt = select(self.model).where(self.model.id == id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_field(self, field: str, value: Any) -> ModelType | None:
        """Get a single record by a unique column."""
        stmt = select(self.model).where(getattr(self.model, field) == value)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, db_obj: ModelType) -> ModelType:
        """Persist a new or modified record and reload it."""
        self.db.add(db_obj)
        await self.db.commit()
        await self.db.refresh(db_obj)
        return db_obj
