"""Business type repository."""

import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.db.models import BusinessType
from rechargepanel.db.repositories.base import BaseRepository
from rechargepanel.schemas.catalogue import BusinessTypeCreate, BusinessTypeUpdate


class BusinessTypeRepository(BaseRepository[BusinessType, BusinessTypeCreate, BusinessTypeUpdate]):
    def __init__(self):
        super().__init__(BusinessType)

    async def set_active(
        self, db: AsyncSession, id: uuid.UUID, is_active: bool
    ) -> Optional[BusinessType]:
        obj = await self.get_by_id(db, id)
        if obj is None:
            return None
        obj.is_active = is_active
        await db.flush()
        await db.refresh(obj)
        return obj


business_type_repo = BusinessTypeRepository()
