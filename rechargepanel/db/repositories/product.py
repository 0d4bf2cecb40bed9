"""Recharge product repository."""

import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.db.models import RechargeProduct
from rechargepanel.db.repositories.base import BaseRepository
from rechargepanel.schemas.catalogue import ProductCreate, ProductUpdate


class ProductRepository(BaseRepository[RechargeProduct, ProductCreate, ProductUpdate]):
    def __init__(self):
        super().__init__(RechargeProduct, pk="product_id")

    async def list_by_value(
        self,
        db: AsyncSession,
        business_type_id: Optional[uuid.UUID] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> Sequence[RechargeProduct]:
        """Products ordered by face value, optionally for one business type."""
        stmt = select(RechargeProduct).order_by(
            RechargeProduct.face_value.asc(), RechargeProduct.product_id.asc()
        )
        if business_type_id is not None:
            stmt = stmt.where(RechargeProduct.business_type_id == business_type_id)
        result = await db.execute(stmt.offset(offset).limit(limit))
        return result.scalars().all()


product_repo = ProductRepository()
