"""Recharge product CRUD endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.api.deps import get_db, require_admin
from rechargepanel.db.repositories.product import product_repo
from rechargepanel.schemas.catalogue import ProductCreate, ProductResponse, ProductUpdate

router = APIRouter(
    prefix="/api/v1/products", tags=["products"], dependencies=[Depends(require_admin)]
)


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(body: ProductCreate, db: AsyncSession = Depends(get_db)):
    if await product_repo.get_by_id(db, body.product_id):
        raise HTTPException(status_code=409, detail="Product id already exists")
    return await product_repo.create(db, body)


@router.get("", response_model=list[ProductResponse])
async def list_products(
    business_type_id: Optional[uuid.UUID] = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Cheapest first."""
    return await product_repo.list_by_value(
        db, business_type_id=business_type_id, offset=offset, limit=limit
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, db: AsyncSession = Depends(get_db)):
    product = await product_repo.get_by_id(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: str, body: ProductUpdate, db: AsyncSession = Depends(get_db)):
    product = await product_repo.update(db, product_id, body)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.delete("/{product_id}", status_code=204)
async def delete_product(product_id: str, db: AsyncSession = Depends(get_db)):
    if not await product_repo.delete(db, product_id):
        raise HTTPException(status_code=404, detail="Product not found")
