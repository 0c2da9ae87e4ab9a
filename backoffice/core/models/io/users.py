"""
Admin user management I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backoffice.core.models.domain.enums import (
    PointsTransactionStatus,
    PointsTransactionType,
    UserLevel,
    UserStatus,
)


class UserRead(BaseModel):
    """Schema for reading a user from API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    nickname: Optional[str] = None
    phone: Optional[str] = None
    level: UserLevel
    status: UserStatus
    parent_id: Optional[str] = None
    team_path: str
    team_level: int
    points_balance: float
    remark: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserListItem(UserRead):
    total_sales: float = 0.0
    direct_count: int = 0


class UserDetail(UserRead):
    parent: Optional[UserRead] = None
    direct_count: int = 0
    team_count: int = 0
    total_sales: float = 0.0
    month_sales: float = 0.0
    total_orders: int = 0


class UserUpdate(BaseModel):
    """Schema for updating a user; only the given fields change."""

    nickname: Optional[str] = Field(default=None, max_length=64)
    phone: Optional[str] = Field(default=None, max_length=32)
    level: Optional[UserLevel] = None
    status: Optional[UserStatus] = None
    points_balance: Optional[float] = Field(default=None, ge=0)
    remark: Optional[str] = Field(default=None, max_length=500)

    @field_validator("level", "status", "points_balance")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class ToggleStatusRequest(BaseModel):
    status: UserStatus
    reason: Optional[str] = Field(default=None, max_length=255)


class PointsTransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transaction_no: str
    from_user_id: Optional[str] = None
    to_user_id: Optional[str] = None
    amount: float
    type: PointsTransactionType
    status: PointsTransactionStatus
    balance_before: Optional[float] = None
    balance_after: Optional[float] = None
    description: Optional[str] = None
    metadata_json: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
