"""
Ledger read projections.

Adapters return these; the aggregator consumes them. They are plain frozen
values so a finished read can be shared without copying.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

Amount = Union[int, float, Decimal, None]


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    WALLET = "wallet"
    ALIPAY = "alipay"        # third-party balance
    WECHAT = "wechat"        # third-party wallet
    BANK = "bank"
    CRYPTO = "crypto"


class TransactionType(str, Enum):
    RECHARGE = "recharge"
    CONSUMPTION = "consumption"
    REFUND = "refund"
    WITHDRAWAL = "withdrawal"


class OrderTimeField(str, Enum):
    CREATED = "create_time"
    COMPLETED = "complete_time"


@dataclass(frozen=True)
class OrderRow:
    order_id: str
    status: str
    amount: Amount = None
    create_time: Optional[datetime] = None
    complete_time: Optional[datetime] = None
    user_id: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    phone_number: Optional[str] = None
    payment_method: Optional[str] = None
    processed_by: Optional[str] = None


@dataclass(frozen=True)
class TransactionRow:
    transaction_id: str
    transaction_type: str
    amount: Amount = None
    create_time: Optional[datetime] = None
    related_order: Optional[str] = None


@dataclass(frozen=True)
class LedgerReads:
    """Everything one snapshot needs, read from the ledger for one window."""
    total_users: int = 0
    new_users: int = 0
    active_users: int = 0
    total_agents: int = 0
    orders: tuple[OrderRow, ...] = field(default_factory=tuple)
    transactions: tuple[TransactionRow, ...] = field(default_factory=tuple)
