"""Recharge agent endpoints (admin)."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.api.deps import get_db, require_admin
from rechargepanel.db.repositories.agent import agent_repo
from rechargepanel.schemas.agent import (
    AgentCreate,
    AgentResponse,
    AgentStatus,
    AgentStatusUpdate,
    AgentUpdate,
)

router = APIRouter(prefix="/api/v1/agents", tags=["agents"], dependencies=[Depends(require_admin)])


@router.post("", response_model=AgentResponse, status_code=201)
async def create_agent(body: AgentCreate, db: AsyncSession = Depends(get_db)):
    if await agent_repo.get_by_id(db, body.agent_id):
        raise HTTPException(status_code=409, detail="Agent id already exists")
    return await agent_repo.create(db, body)


@router.get("", response_model=list[AgentResponse])
async def list_agents(
    status: Optional[AgentStatus] = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    return await agent_repo.list_by_status(db, status=status, offset=offset, limit=limit)


@router.get("/{agent_id}", response_model=AgentResponse)
async def get_agent(agent_id: str, db: AsyncSession = Depends(get_db)):
    agent = await agent_repo.get_by_id(db, agent_id)
    if not agent:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent


@router.patch("/{agent_id}", response_model=AgentResponse)
async def update_agent(agent_id: str, body: AgentUpdate, db: AsyncSession = Depends(get_db)):
    agent = await agent_repo.update(db, agent_id, body)
    if not agent:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent


@router.put("/{agent_id}/status", response_model=AgentResponse)
async def set_agent_status(
    agent_id: str, body: AgentStatusUpdate, db: AsyncSession = Depends(get_db)
):
    agent = await agent_repo.set_status(db, agent_id, body.status)
    if not agent:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent


@router.delete("/{agent_id}", status_code=204)
async def delete_agent(agent_id: str, db: AsyncSession = Depends(get_db)):
    """Agents that have processed orders stay on the roster; deactivate them instead (409)."""
    if await agent_repo.get_by_id(db, agent_id) is None:
        raise HTTPException(status_code=404, detail="Agent not found")
    if await agent_repo.has_orders(db, agent_id):
        raise HTTPException(status_code=409, detail="Agent has processed orders")
    await agent_repo.delete(db, agent_id)
