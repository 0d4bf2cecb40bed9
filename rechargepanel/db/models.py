"""
RechargePanel SQLAlchemy Models.

The order ledger and the tables the back office manages around it.
Timestamps are naive UTC. Row-level policies, where used, live in the
hosted database and are not modelled here.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rechargepanel.db.compat import GUID
from rechargepanel.db.engine import Base


def _genuuid():
    return uuid.uuid4()


# ──────────────────────────────────────────────────────────────────────────────
# Accounts
# ──────────────────────────────────────────────────────────────────────────────


class UserAccount(Base):
    __tablename__ = "user_accounts"
    __table_args__ = (
        Index("ix_user_accounts_created_at", "created_at"),
        Index("ix_user_accounts_last_login", "last_login"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=_genuuid)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime)

    orders: Mapped[list["RechargeOrder"]] = relationship(back_populates="user")


class Agent(Base):
    """Recharge agents who process (complete) orders and earn commission."""

    __tablename__ = "agents"

    agent_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact: Mapped[Optional[str]] = mapped_column(String(100))
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), default=Decimal("0.05"))
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


# ──────────────────────────────────────────────────────────────────────────────
# Catalogue
# ──────────────────────────────────────────────────────────────────────────────


class BusinessType(Base):
    __tablename__ = "business_types"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=_genuuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    products: Mapped[list["RechargeProduct"]] = relationship(back_populates="business_type")


class RechargeProduct(Base):
    __tablename__ = "recharge_products"

    product_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    business_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        GUID(), ForeignKey("business_types.id", ondelete="SET NULL")
    )
    carrier: Mapped[str] = mapped_column(String(20), nullable=False)
    face_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    sell_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    cost_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    product_type: Mapped[str] = mapped_column(String(20), default="call", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    business_type: Mapped[Optional["BusinessType"]] = relationship(back_populates="products")


# ──────────────────────────────────────────────────────────────────────────────
# Ledger
# ──────────────────────────────────────────────────────────────────────────────


class RechargeOrder(Base):
    """
    One recharge transaction.

    Status only moves forward: pending → processing → completed | failed.
    complete_time is set when (and only when) the order completes.
    """

    __tablename__ = "recharge_orders"
    __table_args__ = (
        Index("ix_recharge_orders_create_time", "create_time"),
        Index("ix_recharge_orders_complete_time", "complete_time"),
        Index("ix_recharge_orders_processed_by", "processed_by"),
        Index("ix_recharge_orders_status", "order_status"),
    )

    order_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(GUID(), ForeignKey("user_accounts.id"))
    product_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("recharge_products.product_id")
    )
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    payment_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    payment_method: Mapped[str] = mapped_column(String(20), default="wallet", nullable=False)
    order_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    create_time: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    complete_time: Mapped[Optional[datetime]] = mapped_column(DateTime)
    processed_by: Mapped[Optional[str]] = mapped_column(String(64), ForeignKey("agents.agent_id"))

    user: Mapped[Optional["UserAccount"]] = relationship(back_populates="orders")
    product: Mapped[Optional["RechargeProduct"]] = relationship()


class FinancialTransaction(Base):
    """Wallet ledger entry. Amounts are stored as magnitudes; the type gives the direction."""

    __tablename__ = "financial_transactions"
    __table_args__ = (
        Index("ix_financial_transactions_create_time", "create_time"),
        Index("ix_financial_transactions_related_order", "related_order"),
    )

    transaction_id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=_genuuid)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(GUID(), ForeignKey("user_accounts.id"))
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    balance: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    related_order: Mapped[Optional[str]] = mapped_column(String(64))
    remark: Mapped[Optional[str]] = mapped_column(Text)
    create_time: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
