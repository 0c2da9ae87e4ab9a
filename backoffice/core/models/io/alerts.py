"""
Inventory alert I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backoffice.core.models.domain.enums import AlertLevel, AlertStatus, WarehouseType


class AlertRead(BaseModel):
    """Schema for reading an inventory alert from API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: str
    spec_id: str
    warehouse_type: WarehouseType
    user_id: Optional[str] = None
    shop_id: Optional[str] = None
    current_stock: int
    alert_level: AlertLevel
    threshold: int
    status: AlertStatus
    is_read: bool
    resolved_at: Optional[datetime] = None
    resolve_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AlertIdsRequest(BaseModel):
    alert_ids: List[int] = Field(min_length=1)


class AlertReasonRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=255)


class ThresholdUpdate(BaseModel):
    """New alert thresholds for a product spec."""

    low_stock_threshold: int = Field(ge=0)
    out_of_stock_threshold: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "ThresholdUpdate":
        if self.out_of_stock_threshold > self.low_stock_threshold:
            raise ValueError("out_of_stock_threshold must not exceed low_stock_threshold")
        return self


class AlertStatistics(BaseModel):
    total: int = 0
    active: int = 0
    resolved: int = 0
    ignored: int = 0
    critical: int = 0
    low: int = 0
    out_of_stock: int = 0
    unread: int = Field(default=0, description="Unread alerts that are still ACTIVE")


class AlertCheckResult(BaseModel):
    checked: int
