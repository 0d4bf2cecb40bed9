"""Pydantic schemas for recharge agents."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

AgentStatus = Literal["active", "inactive"]


class AgentCreate(BaseModel):
    agent_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=100)
    contact: Optional[str] = Field(default=None, max_length=100)
    commission_rate: Decimal = Field(default=Decimal("0.05"), ge=0, le=1)
    status: AgentStatus = "active"


class AgentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    contact: Optional[str] = Field(default=None, max_length=100)
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=1)


class AgentStatusUpdate(BaseModel):
    status: AgentStatus


class AgentResponse(BaseModel):
    agent_id: str
    name: str
    contact: Optional[str]
    commission_rate: Decimal
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}
