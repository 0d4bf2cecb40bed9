"""Pydantic schemas for business types and recharge products."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

Carrier = Literal["mobile", "unicom", "telecom"]
ProductType = Literal["call", "data", "package", "other"]
ProductStatus = Literal["active", "inactive"]


class BusinessTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True


class BusinessTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class BusinessTypeStatus(BaseModel):
    is_active: bool


class BusinessTypeResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str]
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ProductCreate(BaseModel):
    product_id: str = Field(min_length=1, max_length=64)
    business_type_id: Optional[uuid.UUID] = None
    carrier: Carrier
    face_value: Decimal = Field(gt=0)
    sell_price: Decimal = Field(ge=0)
    cost_price: Optional[Decimal] = Field(default=None, ge=0)
    product_type: ProductType = "call"
    status: ProductStatus = "active"
    description: Optional[str] = None


class ProductUpdate(BaseModel):
    business_type_id: Optional[uuid.UUID] = None
    carrier: Optional[Carrier] = None
    face_value: Optional[Decimal] = Field(default=None, gt=0)
    sell_price: Optional[Decimal] = Field(default=None, ge=0)
    cost_price: Optional[Decimal] = Field(default=None, ge=0)
    product_type: Optional[ProductType] = None
    status: Optional[ProductStatus] = None
    description: Optional[str] = None


class ProductResponse(BaseModel):
    product_id: str
    business_type_id: Optional[uuid.UUID]
    carrier: str
    face_value: Decimal
    sell_price: Decimal
    cost_price: Optional[Decimal]
    product_type: str
    status: str
    description: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}
