"""Business type CRUD endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.api.deps import get_db, require_admin
from rechargepanel.db.repositories.business_type import business_type_repo
from rechargepanel.schemas.catalogue import (
    BusinessTypeCreate,
    BusinessTypeResponse,
    BusinessTypeStatus,
    BusinessTypeUpdate,
)

router = APIRouter(
    prefix="/api/v1/business-types",
    tags=["business-types"],
    dependencies=[Depends(require_admin)],
)


@router.post("", response_model=BusinessTypeResponse, status_code=201)
async def create_business_type(body: BusinessTypeCreate, db: AsyncSession = Depends(get_db)):
    return await business_type_repo.create(db, body)


@router.get("", response_model=list[BusinessTypeResponse])
async def list_business_types(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """Newest first."""
    return await business_type_repo.list(db, offset=offset, limit=limit)


@router.patch("/{business_type_id}", response_model=BusinessTypeResponse)
async def update_business_type(
    business_type_id: uuid.UUID, body: BusinessTypeUpdate, db: AsyncSession = Depends(get_db)
):
    obj = await business_type_repo.update(db, business_type_id, body)
    if not obj:
        raise HTTPException(status_code=404, detail="Business type not found")
    return obj


@router.put("/{business_type_id}/status", response_model=BusinessTypeResponse)
async def set_business_type_status(
    business_type_id: uuid.UUID, body: BusinessTypeStatus, db: AsyncSession = Depends(get_db)
):
    obj = await business_type_repo.set_active(db, business_type_id, body.is_active)
    if not obj:
        raise HTTPException(status_code=404, detail="Business type not found")
    return obj


@router.delete("/{business_type_id}", status_code=204)
async def delete_business_type(business_type_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    if not await business_type_repo.delete(db, business_type_id):
        raise HTTPException(status_code=404, detail="Business type not found")
