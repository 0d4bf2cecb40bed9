"""Recharge agent repository."""

from typing import Optional, Sequence

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.db.models import Agent, RechargeOrder
from rechargepanel.db.repositories.base import BaseRepository
from rechargepanel.schemas.agent import AgentCreate, AgentUpdate


class AgentRepository(BaseRepository[Agent, AgentCreate, AgentUpdate]):
    def __init__(self):
        super().__init__(Agent, pk="agent_id")

    async def list_by_status(
        self, db: AsyncSession, status: Optional[str] = None, offset: int = 0, limit: int = 50
    ) -> Sequence[Agent]:
        stmt = select(Agent).order_by(Agent.created_at.desc(), Agent.agent_id.asc())
        if status is not None:
            stmt = stmt.where(Agent.status == status)
        result = await db.execute(stmt.offset(offset).limit(limit))
        return result.scalars().all()

    async def set_status(self, db: AsyncSession, agent_id: str, status: str) -> Optional[Agent]:
        obj = await self.get_by_id(db, agent_id)
        if obj is None:
            return None
        obj.status = status
        await db.flush()
        await db.refresh(obj)
        return obj

    async def has_orders(self, db: AsyncSession, agent_id: str) -> bool:
        """Whether any order records this agent as its processor."""
        result = await db.execute(
            select(exists().where(RechargeOrder.processed_by == agent_id))
        )
        return bool(result.scalar())


agent_repo = AgentRepository()
