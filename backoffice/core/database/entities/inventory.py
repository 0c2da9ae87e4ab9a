"""
Inventory entity models.

This module contains the three inventory tables:

1. ``inventory_stocks``: one row per stock scope and batch
2. ``inventory_logs``: append-only record of every quantity change
3. ``inventory_alerts``: threshold alerts raised per stock scope

A stock scope is the tuple (product, spec, warehouse type, user, shop). The
PLATFORM tier has neither user nor shop, CLOUD stock belongs to a user and
LOCAL stock belongs to a user's shop.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, Text

from backoffice.core.models.domain.enums import (
    AlertLevel,
    AlertStatus,
    InventoryOperationType,
    OperatorType,
    WarehouseType,
)

from ..base import Base, UTCDateTime, utc_now


class InventoryStock(Base, table=True):
    """Stock held for one scope and batch.

    ``available_quantity`` is always ``quantity - reserved_quantity``.

    Table: inventory_stocks
    """

    __tablename__ = "inventory_stocks"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Scope
    product_id: str = Field(max_length=64, index=True)
    spec_id: str = Field(max_length=64, index=True)
    warehouse_type: WarehouseType = Field(index=True)
    user_id: Optional[str] = Field(default=None, max_length=64, index=True)
    shop_id: Optional[str] = Field(default=None, max_length=64, index=True)
    batch_number: Optional[str] = Field(default=None, max_length=64, index=True)

    # Quantities
    quantity: int = Field(default=0)
    reserved_quantity: int = Field(default=0)
    available_quantity: int = Field(default=0)

    location: Optional[str] = Field(default=None, max_length=128)
    expiry_date: Optional[datetime] = Field(default=None, sa_type=UTCDateTime, index=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, sa_column_kwargs={"onupdate": utc_now})

    def __repr__(self) -> str:
        return (
            f"InventoryStock(id={self.id}, spec_id={self.spec_id}, warehouse_type={self.warehouse_type}, "
            f"batch_number={self.batch_number}, quantity={self.quantity})"
        )


class InventoryLog(Base, table=True):
    """One quantity change on a stock scope.

    ``quantity`` is signed: positive for stock coming in, negative for stock
    going out.

    Table: inventory_logs
    """

    __tablename__ = "inventory_logs"

    id: Optional[int] = Field(default=None, primary_key=True)

    operation_type: InventoryOperationType = Field(index=True)
    operator_type: OperatorType = Field(default=OperatorType.ADMIN)
    operator_id: Optional[str] = Field(default=None, max_length=64)

    quantity: int
    quantity_before: int
    quantity_after: int

    # Scope
    warehouse_type: WarehouseType = Field(index=True)
    product_id: str = Field(max_length=64, index=True)
    spec_id: str = Field(max_length=64, index=True)
    user_id: Optional[str] = Field(default=None, max_length=64, index=True)
    shop_id: Optional[str] = Field(default=None, max_length=64)
    batch_number: Optional[str] = Field(default=None, max_length=64)

    related_order_id: Optional[str] = Field(default=None, max_length=64)
    related_purchase_id: Optional[str] = Field(default=None, max_length=64)
    reason: Optional[str] = Field(default=None, max_length=255)
    remarks: Optional[str] = Field(default=None, sa_type=Text)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)

    def __repr__(self) -> str:
        return f"InventoryLog(id={self.id}, operation_type={self.operation_type}, quantity={self.quantity})"


class InventoryAlert(Base, table=True):
    """Stock threshold alert for one scope.

    At most one ACTIVE alert exists per scope; the checker updates it in
    place instead of raising a second one.

    Table: inventory_alerts
    """

    __tablename__ = "inventory_alerts"

    id: Optional[int] = Field(default=None, primary_key=True)

    product_id: str = Field(max_length=64, index=True)
    spec_id: str = Field(max_length=64, index=True)
    warehouse_type: WarehouseType = Field(index=True)
    user_id: Optional[str] = Field(default=None, max_length=64, index=True)
    shop_id: Optional[str] = Field(default=None, max_length=64)

    current_stock: int
    alert_level: AlertLevel = Field(index=True)
    threshold: int
    status: AlertStatus = Field(default=AlertStatus.ACTIVE, index=True)
    is_read: bool = Field(default=False)

    resolved_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    resolve_reason: Optional[str] = Field(default=None, max_length=255)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, sa_column_kwargs={"onupdate": utc_now})

    def __repr__(self) -> str:
        return f"InventoryAlert(id={self.id}, alert_level={self.alert_level}, status={self.status})"
