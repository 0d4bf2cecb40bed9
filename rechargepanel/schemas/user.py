"""Pydantic schemas for user accounts."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

UserStatus = Literal["active", "frozen", "deleted"]


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=32)
    email: Optional[str] = Field(default=None, max_length=255)
    balance: Decimal = Field(default=Decimal("0"), ge=0)
    status: UserStatus = "active"


class UserUpdate(BaseModel):
    phone: Optional[str] = Field(default=None, max_length=32)
    email: Optional[str] = Field(default=None, max_length=255)
    status: Optional[UserStatus] = None


class BalanceAdjustment(BaseModel):
    """Positive amounts credit the wallet, negative amounts debit it."""
    amount: Decimal
    remark: Optional[str] = Field(default=None, max_length=500)


class UserResponse(BaseModel):
    id: uuid.UUID
    username: str
    phone: Optional[str]
    email: Optional[str]
    balance: Decimal
    status: str
    created_at: datetime
    last_login: Optional[datetime]

    model_config = {"from_attributes": True}
