"""
Order lifecycle and wallet tests.
"""

import re
import uuid
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import select

from rechargepanel.db.models import FinancialTransaction
from rechargepanel.db.repositories.user import user_repo
from rechargepanel.engine.records import OrderStatus, PaymentMethod
from rechargepanel.errors import InsufficientBalanceError, NotFoundError, OrderTransitionError
from rechargepanel.schemas.order import OrderCreate, OrderUpdate
from rechargepanel.schemas.user import UserCreate
from rechargepanel.services.order_service import can_transition, new_order_id, order_service
from rechargepanel.services.wallet_service import wallet_service


async def make_user(db, balance: str = "200"):
    return await user_repo.create(
        db, UserCreate(username=f"user-{uuid.uuid4().hex[:8]}", balance=Decimal(balance))
    )


async def transactions_for(db, order_id: str) -> list[FinancialTransaction]:
    result = await db.execute(
        select(FinancialTransaction)
        .where(FinancialTransaction.related_order == order_id)
        .order_by(FinancialTransaction.create_time)
    )
    return list(result.scalars().all())


class TestTransitions:

    @pytest.mark.parametrize("current,target", [
        ("pending", "processing"),
        ("pending", "completed"),
        ("pending", "failed"),
        ("processing", "completed"),
        ("processing", "failed"),
    ])
    def test_forward_moves_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        ("completed", "pending"),
        ("completed", "failed"),
        ("failed", "completed"),
        ("processing", "pending"),
        ("pending", "pending"),
    ])
    def test_backward_and_terminal_moves_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_order_id_format(self):
        order_id = new_order_id(datetime(2026, 10, 14, 7, 30, 5))
        assert re.fullmatch(r"RO20261014073005[0-9A-F]{6}", order_id)


@pytest.mark.asyncio
class TestCreateOrder:

    async def test_wallet_payment_debits_balance(self, db):
        user = await make_user(db, "200")
        order = await order_service.create_order(
            db, OrderCreate(user_id=user.id, phone_number="13800138000", amount=Decimal("50"))
        )

        assert order.order_status == OrderStatus.PENDING.value
        assert order.create_time is not None
        assert user.balance == Decimal("150")

        (txn,) = await transactions_for(db, order.order_id)
        assert txn.transaction_type == "consumption"
        assert txn.amount == Decimal("50")
        assert txn.balance == Decimal("150")

    async def test_insufficient_balance(self, db):
        user = await make_user(db, "10")
        with pytest.raises(InsufficientBalanceError):
            await order_service.create_order(
                db, OrderCreate(user_id=user.id, phone_number="13800138000", amount=Decimal("50"))
            )

    async def test_external_payment_leaves_balance(self, db):
        user = await make_user(db, "200")
        order = await order_service.create_order(
            db,
            OrderCreate(
                user_id=user.id,
                phone_number="13800138000",
                amount=Decimal("50"),
                payment_method=PaymentMethod.ALIPAY,
            ),
        )

        assert user.balance == Decimal("200")
        (txn,) = await transactions_for(db, order.order_id)
        assert txn.transaction_type == "consumption"

    async def test_payment_amount_is_what_gets_charged(self, db):
        user = await make_user(db, "200")
        await order_service.create_order(
            db,
            OrderCreate(
                user_id=user.id,
                phone_number="13800138000",
                amount=Decimal("50"),
                payment_amount=Decimal("49.50"),
            ),
        )
        assert user.balance == Decimal("150.50")

    async def test_anonymous_order(self, db):
        order = await order_service.create_order(
            db, OrderCreate(phone_number="18912345678", amount=Decimal("20"))
        )
        assert order.user_id is None
        assert await transactions_for(db, order.order_id) == []


@pytest.mark.asyncio
class TestUpdateStatus:

    async def test_complete_stamps_time_and_agent(self, db):
        order = await order_service.create_order(
            db, OrderCreate(phone_number="13800138000", amount=Decimal("20"))
        )
        done = await order_service.update_status(
            db,
            order.order_id,
            OrderUpdate(order_status=OrderStatus.COMPLETED, processed_by="ag1"),
        )

        assert done.order_status == "completed"
        assert done.complete_time is not None
        assert done.processed_by == "ag1"

    async def test_processing_does_not_stamp_completion(self, db):
        order = await order_service.create_order(
            db, OrderCreate(phone_number="13800138000", amount=Decimal("20"))
        )
        moved = await order_service.update_status(
            db, order.order_id, OrderUpdate(order_status=OrderStatus.PROCESSING)
        )
        assert moved.order_status == "processing"
        assert moved.complete_time is None

    async def test_failure_refunds_wallet(self, db):
        user = await make_user(db, "200")
        order = await order_service.create_order(
            db, OrderCreate(user_id=user.id, phone_number="13800138000", amount=Decimal("50"))
        )
        await order_service.update_status(
            db, order.order_id, OrderUpdate(order_status=OrderStatus.FAILED)
        )

        assert user.balance == Decimal("200")
        kinds = [t.transaction_type for t in await transactions_for(db, order.order_id)]
        assert sorted(kinds) == ["consumption", "refund"]

    async def test_terminal_status_is_final(self, db):
        order = await order_service.create_order(
            db, OrderCreate(phone_number="13800138000", amount=Decimal("20"))
        )
        await order_service.update_status(
            db, order.order_id, OrderUpdate(order_status=OrderStatus.COMPLETED)
        )
        with pytest.raises(OrderTransitionError):
            await order_service.update_status(
                db, order.order_id, OrderUpdate(order_status=OrderStatus.PENDING)
            )

    async def test_missing_order(self, db):
        with pytest.raises(NotFoundError):
            await order_service.update_status(
                db, "RO-missing", OrderUpdate(order_status=OrderStatus.COMPLETED)
            )


@pytest.mark.asyncio
class TestWallet:

    async def test_credit(self, db):
        user = await make_user(db, "0")
        updated = await wallet_service.adjust_balance(db, user.id, Decimal("80"), remark="top up")
        assert updated.balance == Decimal("80")

    async def test_debit_below_zero_rejected(self, db):
        user = await make_user(db, "30")
        with pytest.raises(InsufficientBalanceError):
            await wallet_service.adjust_balance(db, user.id, Decimal("-31"))

    async def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            await wallet_service.adjust_balance(db, uuid.uuid4(), Decimal("10"))
