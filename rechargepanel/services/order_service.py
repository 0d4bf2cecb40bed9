"""
Order Service — creating recharge orders and moving them through their lifecycle.

    pending → processing → completed | failed
    pending → completed | failed

completed and failed are terminal. Completing stamps complete_time (and the
handling agent). Failing an order that belongs to a user refunds what was
charged to that user's wallet.
"""

import secrets
from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.db.models import RechargeOrder
from rechargepanel.db.repositories.order import order_repo
from rechargepanel.db.repositories.user import user_repo
from rechargepanel.engine.records import OrderStatus, PaymentMethod, TransactionType
from rechargepanel.errors import NotFoundError, OrderTransitionError
from rechargepanel.schemas.order import OrderCreate, OrderUpdate
from rechargepanel.services.wallet_service import WalletService, wallet_service

logger = structlog.get_logger(__name__)

TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING.value: frozenset(
        {OrderStatus.PROCESSING.value, OrderStatus.COMPLETED.value, OrderStatus.FAILED.value}
    ),
    OrderStatus.PROCESSING.value: frozenset(
        {OrderStatus.COMPLETED.value, OrderStatus.FAILED.value}
    ),
}


def new_order_id(now: datetime) -> str:
    return f"RO{now:%Y%m%d%H%M%S}{secrets.token_hex(3).upper()}"


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def _charge(order: RechargeOrder) -> Decimal:
    value = order.payment_amount if order.payment_amount is not None else order.amount
    return Decimal(value or 0)


class OrderService:
    def __init__(self, wallet: WalletService = wallet_service):
        self.wallet = wallet

    async def get(self, db: AsyncSession, order_id: str) -> RechargeOrder:
        order = await order_repo.get_by_id(db, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def create_order(self, db: AsyncSession, data: OrderCreate) -> RechargeOrder:
        """Create a pending order and charge the user when one is attached."""
        now = datetime.utcnow()
        order = await order_repo.create(
            db,
            data,
            order_id=new_order_id(now),
            order_status=OrderStatus.PENDING.value,
            create_time=now,
        )

        charge = _charge(order)
        if order.user_id is not None and charge > 0:
            user = await user_repo.get_by_id(db, order.user_id)
            if user is None:
                raise NotFoundError(f"User {order.user_id} not found")
            if order.payment_method == PaymentMethod.WALLET.value:
                await self.wallet.apply(
                    db, user, -charge, TransactionType.CONSUMPTION, related_order=order.order_id
                )
            else:
                await self.wallet.record(
                    db, user, charge, TransactionType.CONSUMPTION, related_order=order.order_id
                )

        logger.info("order_created", order_id=order.order_id, amount=str(order.amount))
        return order

    async def update_status(
        self, db: AsyncSession, order_id: str, update: OrderUpdate
    ) -> RechargeOrder:
        order = await self.get(db, order_id)
        target = update.order_status.value
        if not can_transition(order.order_status, target):
            raise OrderTransitionError(
                f"Order {order_id} cannot move from {order.order_status} to {target}"
            )

        previous = order.order_status
        order.order_status = target
        if update.processed_by:
            order.processed_by = update.processed_by
        if target == OrderStatus.COMPLETED.value:
            order.complete_time = datetime.utcnow()

        if target == OrderStatus.FAILED.value and order.user_id is not None:
            refund = _charge(order)
            user = await user_repo.get_by_id(db, order.user_id)
            if user is not None and refund > 0:
                await self.wallet.apply(
                    db,
                    user,
                    refund,
                    TransactionType.REFUND,
                    related_order=order.order_id,
                    remark=f"Refund for failed order {order.order_id}",
                )

        await db.flush()
        await db.refresh(order)
        logger.info("order_status_changed", order_id=order_id, previous=previous, current=target)
        return order


order_service = OrderService()
