"""Recharge order repository."""

from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.db.models import RechargeOrder
from rechargepanel.db.repositories.base import BaseRepository
from rechargepanel.schemas.order import OrderCreate, OrderUpdate


class OrderRepository(BaseRepository[RechargeOrder, OrderCreate, OrderUpdate]):
    def __init__(self):
        super().__init__(RechargeOrder, pk="order_id", default_order="create_time")

    async def search(
        self,
        db: AsyncSession,
        status: Optional[str] = None,
        query: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Sequence[RechargeOrder]:
        """Newest first, filtered by status and by order id / phone substring."""
        stmt = select(RechargeOrder).order_by(
            RechargeOrder.create_time.desc(), RechargeOrder.order_id.desc()
        )
        if status:
            stmt = stmt.where(RechargeOrder.order_status == status)
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(
                or_(
                    RechargeOrder.order_id.ilike(pattern),
                    RechargeOrder.phone_number.ilike(pattern),
                )
            )
        result = await db.execute(stmt.offset(offset).limit(limit))
        return result.scalars().all()


order_repo = OrderRepository()
