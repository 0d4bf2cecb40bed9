"""
Wallet Service — balance changes on user accounts.

Every change writes a FinancialTransaction with the balance after the
change. Balances never go negative.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.db.models import FinancialTransaction, UserAccount
from rechargepanel.db.repositories.user import user_repo
from rechargepanel.engine.records import TransactionType
from rechargepanel.errors import InsufficientBalanceError, NotFoundError

logger = structlog.get_logger(__name__)


class WalletService:
    async def _user(self, db: AsyncSession, user_id: uuid.UUID) -> UserAccount:
        user = await user_repo.get_by_id(db, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def apply(
        self,
        db: AsyncSession,
        user: UserAccount,
        delta: Decimal,
        transaction_type: TransactionType,
        related_order: Optional[str] = None,
        remark: Optional[str] = None,
    ) -> FinancialTransaction:
        """Change `user`'s balance by `delta` and record it. Amount is stored as a magnitude."""
        balance = Decimal(user.balance or 0) + delta
        if balance < 0:
            raise InsufficientBalanceError(
                f"Balance {user.balance} cannot cover {abs(delta)} for user {user.id}"
            )
        user.balance = balance

        entry = FinancialTransaction(
            user_id=user.id,
            amount=abs(delta),
            balance=balance,
            transaction_type=transaction_type.value,
            related_order=related_order,
            remark=remark,
            create_time=datetime.utcnow(),
        )
        db.add(entry)
        await db.flush()
        logger.info(
            "wallet_updated",
            user_id=str(user.id),
            type=transaction_type.value,
            delta=str(delta),
            balance=str(balance),
            related_order=related_order,
        )
        return entry

    async def record(
        self,
        db: AsyncSession,
        user: UserAccount,
        amount: Decimal,
        transaction_type: TransactionType,
        related_order: Optional[str] = None,
    ) -> FinancialTransaction:
        """Record a transaction that does not move the wallet balance."""
        entry = FinancialTransaction(
            user_id=user.id,
            amount=abs(amount),
            balance=user.balance,
            transaction_type=transaction_type.value,
            related_order=related_order,
            create_time=datetime.utcnow(),
        )
        db.add(entry)
        await db.flush()
        return entry

    async def adjust_balance(
        self, db: AsyncSession, user_id: uuid.UUID, amount: Decimal, remark: Optional[str] = None
    ) -> UserAccount:
        """Admin credit (positive) or debit (negative)."""
        user = await self._user(db, user_id)
        kind = TransactionType.RECHARGE if amount >= 0 else TransactionType.WITHDRAWAL
        await self.apply(db, user, amount, kind, remark=remark)
        await db.refresh(user)
        return user


wallet_service = WalletService()
