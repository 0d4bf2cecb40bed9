"""Pydantic schemas for recharge orders."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from rechargepanel.engine.records import OrderStatus, PaymentMethod


class OrderCreate(BaseModel):
    user_id: Optional[uuid.UUID] = None
    product_id: Optional[str] = Field(default=None, max_length=64)
    phone_number: str = Field(min_length=5, max_length=32)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    payment_amount: Optional[Decimal] = Field(default=None, ge=0)
    payment_method: PaymentMethod = PaymentMethod.WALLET


class OrderUpdate(BaseModel):
    """Status change. processed_by records the agent that handled the order."""
    order_status: OrderStatus
    processed_by: Optional[str] = Field(default=None, max_length=64)


class OrderResponse(BaseModel):
    order_id: str
    user_id: Optional[uuid.UUID]
    product_id: Optional[str]
    phone_number: str
    carrier: Optional[str] = None
    amount: Optional[Decimal]
    payment_amount: Optional[Decimal]
    payment_method: str
    order_status: str
    create_time: datetime
    complete_time: Optional[datetime]
    processed_by: Optional[str]

    model_config = {"from_attributes": True}
