"""User account endpoints (admin)."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.api.deps import get_db, require_admin
from rechargepanel.db.repositories.user import user_repo
from rechargepanel.schemas.user import BalanceAdjustment, UserCreate, UserResponse, UserUpdate
from rechargepanel.services.wallet_service import wallet_service

router = APIRouter(prefix="/api/v1/users", tags=["users"], dependencies=[Depends(require_admin)])


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(body: UserCreate, db: AsyncSession = Depends(get_db)):
    if await user_repo.get_by_username(db, body.username):
        raise HTTPException(status_code=409, detail="Username already taken")
    return await user_repo.create(db, body)


@router.get("", response_model=list[UserResponse])
async def list_users(
    q: Optional[str] = Query(default=None, max_length=100),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    return await user_repo.search(db, query=q, offset=offset, limit=limit)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    user = await user_repo.get_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(user_id: uuid.UUID, body: UserUpdate, db: AsyncSession = Depends(get_db)):
    user = await user_repo.update(db, user_id, body)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/{user_id}/balance", response_model=UserResponse)
async def adjust_balance(
    user_id: uuid.UUID, body: BalanceAdjustment, db: AsyncSession = Depends(get_db)
):
    """Credit or debit the wallet. A debit that would go below zero is rejected (409)."""
    return await wallet_service.adjust_balance(db, user_id, body.amount, remark=body.remark)
