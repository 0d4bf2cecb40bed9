"""
Generic async CRUD repository.

Repositories flush but never commit; the session owner (the request
dependency, or the service that opened it) decides the transaction boundary.
"""

from typing import Any, Generic, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.db.engine import Base

ModelT = TypeVar("ModelT", bound=Base)
CreateSchemaT = TypeVar("CreateSchemaT", bound=BaseModel)
UpdateSchemaT = TypeVar("UpdateSchemaT", bound=BaseModel)


class BaseRepository(Generic[ModelT, CreateSchemaT, UpdateSchemaT]):
    """Generic async CRUD operations keyed by the model's primary-key column."""

    def __init__(self, model: Type[ModelT], pk: str = "id", default_order: str = "created_at"):
        self.model = model
        self.pk = pk
        self.default_order = default_order

    @property
    def _pk_col(self):
        return getattr(self.model, self.pk)

    async def create(self, db: AsyncSession, data: CreateSchemaT, **extra_fields: Any) -> ModelT:
        """Create a new record."""
        values = data.model_dump(exclude_unset=True)
        values.update(extra_fields)

        obj = self.model(**values)
        db.add(obj)
        await db.flush()
        await db.refresh(obj)
        return obj

    async def get_by_id(self, db: AsyncSession, id: Any) -> Optional[ModelT]:
        result = await db.execute(select(self.model).where(self._pk_col == id))
        return result.scalar_one_or_none()

    async def list(
        self,
        db: AsyncSession,
        offset: int = 0,
        limit: int = 50,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> Sequence[ModelT]:
        """List records with pagination."""
        col = getattr(self.model, order_by or self.default_order)
        stmt = select(self.model).order_by(
            col.desc() if descending else col.asc()
        ).offset(offset).limit(limit)
        result = await db.execute(stmt)
        return result.scalars().all()

    async def update(self, db: AsyncSession, id: Any, data: UpdateSchemaT) -> Optional[ModelT]:
        """Apply the fields set on `data`. Returns None when the record does not exist."""
        obj = await self.get_by_id(db, id)
        if obj is None:
            return None

        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(obj, key, value)

        await db.flush()
        await db.refresh(obj)
        return obj

    async def delete(self, db: AsyncSession, id: Any) -> bool:
        obj = await self.get_by_id(db, id)
        if obj is None:
            return False
        await db.delete(obj)
        await db.flush()
        return True
