"""
Recharge order endpoints.

Orders are never deleted or freely edited: status changes go through
PUT /{order_id}/status, which enforces the forward-only lifecycle.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.api.deps import get_db, require_admin
from rechargepanel.db.models import RechargeOrder
from rechargepanel.db.repositories.order import order_repo
from rechargepanel.engine.carrier import detect_carrier
from rechargepanel.engine.records import OrderStatus
from rechargepanel.schemas.order import OrderCreate, OrderResponse, OrderUpdate
from rechargepanel.services.order_service import order_service

router = APIRouter(
    prefix="/api/v1/orders", tags=["orders"], dependencies=[Depends(require_admin)]
)


def _response(order: RechargeOrder) -> OrderResponse:
    body = OrderResponse.model_validate(order)
    return body.model_copy(update={"carrier": detect_carrier(order.phone_number)})


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(body: OrderCreate, db: AsyncSession = Depends(get_db)):
    return _response(await order_service.create_order(db, body))


@router.get("", response_model=list[OrderResponse])
async def list_orders(
    status: Optional[OrderStatus] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=64, description="Order id or phone fragment"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    orders = await order_repo.search(
        db, status=status.value if status else None, query=q, offset=offset, limit=limit
    )
    return [_response(o) for o in orders]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, db: AsyncSession = Depends(get_db)):
    return _response(await order_service.get(db, order_id))


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str, body: OrderUpdate, db: AsyncSession = Depends(get_db)
):
    return _response(await order_service.update_status(db, order_id, body))
