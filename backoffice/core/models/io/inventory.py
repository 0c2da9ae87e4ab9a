"""
Inventory I/O models for API requests and responses.

Every stock operation addresses a scope: product, spec, warehouse type and,
depending on the tier, the owning user and shop.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backoffice.core.models.domain.enums import InventoryOperationType, OperatorType, WarehouseType
from backoffice.core.models.domain.inventory import StockScope


class StockScopeIn(BaseModel):
    """Stock scope as sent by clients.

    CLOUD stock must name its user; LOCAL stock must name its user and shop.
    """

    product_id: str = Field(min_length=1, max_length=64)
    spec_id: str = Field(min_length=1, max_length=64)
    warehouse_type: WarehouseType
    user_id: Optional[str] = Field(default=None, max_length=64)
    shop_id: Optional[str] = Field(default=None, max_length=64)

    @model_validator(mode="after")
    def _check_tier_owner(self) -> "StockScopeIn":
        if self.warehouse_type in (WarehouseType.CLOUD, WarehouseType.LOCAL) and not self.user_id:
            raise ValueError(f"user_id is required for {self.warehouse_type.value} stock")
        if self.warehouse_type == WarehouseType.LOCAL and not self.shop_id:
            raise ValueError("shop_id is required for LOCAL stock")
        return self

    def to_scope(self) -> StockScope:
        return StockScope(
            product_id=self.product_id,
            spec_id=self.spec_id,
            warehouse_type=self.warehouse_type,
            user_id=self.user_id,
            shop_id=self.shop_id,
        )


class ManualInRequest(StockScopeIn):
    """Schema for adding stock by hand."""

    quantity: int = Field(gt=0)
    batch_number: Optional[str] = Field(default=None, max_length=64, description="Generated when omitted")
    expiry_date: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=128)
    reason: Optional[str] = Field(default=None, max_length=255)
    remarks: Optional[str] = None


class ManualOutRequest(StockScopeIn):
    """Schema for removing stock by hand, also used for damage write-offs."""

    quantity: int = Field(gt=0)
    batch_number: Optional[str] = Field(default=None, max_length=64, description="FIFO batch when omitted")
    reason: Optional[str] = Field(default=None, max_length=255)
    remarks: Optional[str] = None


class TransferRequest(BaseModel):
    """Schema for moving stock between two scopes."""

    source: StockScopeIn
    target: StockScopeIn
    quantity: int = Field(gt=0)
    batch_number: Optional[str] = Field(default=None, max_length=64)
    reason: Optional[str] = Field(default=None, max_length=255)
    remarks: Optional[str] = None


class PurchaseInRequest(BaseModel):
    """A member buys stock from their parent's cloud stock."""

    product_id: str
    spec_id: str
    from_user_id: str = Field(description="Seller (parent) whose CLOUD stock is debited")
    to_user_id: str = Field(description="Buyer whose CLOUD stock is credited")
    quantity: int = Field(gt=0)
    purchase_id: str
    batch_number: Optional[str] = None


class OrderOutRequest(BaseModel):
    """A member ships stock from their cloud stock to one of their shops."""

    product_id: str
    spec_id: str
    user_id: str
    shop_id: str
    quantity: int = Field(gt=0)
    order_id: str
    batch_number: Optional[str] = None


class ReturnInRequest(StockScopeIn):
    quantity: int = Field(gt=0)
    batch_number: Optional[str] = None
    order_id: Optional[str] = None
    reason: Optional[str] = Field(default=None, max_length=255)


class ReservationRequest(StockScopeIn):
    """Reserve, release or reduce reserved stock of one batch (or the unbatched row)."""

    quantity: int = Field(gt=0)
    batch_number: Optional[str] = None
    order_id: Optional[str] = None


class AdjustmentResult(BaseModel):
    """Outcome of a single stock adjustment."""

    success: bool
    log_id: Optional[int] = None
    before_quantity: int
    after_quantity: int
    message: str


class ReservationResult(BaseModel):
    success: bool
    message: str


class StockRead(BaseModel):
    """Schema for reading a stock row from API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: str
    spec_id: str
    warehouse_type: WarehouseType
    user_id: Optional[str] = None
    shop_id: Optional[str] = None
    batch_number: Optional[str] = None
    quantity: int
    reserved_quantity: int
    available_quantity: int
    location: Optional[str] = None
    expiry_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class StockSummary(BaseModel):
    """Quantities of one scope summed across its batches."""

    product_id: str
    spec_id: str
    warehouse_type: WarehouseType
    user_id: Optional[str] = None
    shop_id: Optional[str] = None
    quantity: int
    reserved_quantity: int
    available_quantity: int


class WarehouseStatistics(BaseModel):
    stock_count: int = 0
    total_quantity: int = 0
    reserved_quantity: int = 0
    available_quantity: int = 0
    low_stock_count: int = 0


class InventoryStatistics(BaseModel):
    """Totals per warehouse tier plus the grand total."""

    warehouses: Dict[WarehouseType, WarehouseStatistics]
    total: WarehouseStatistics


class InventoryLogRead(BaseModel):
    """Schema for reading an inventory log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    operation_type: InventoryOperationType
    operator_type: OperatorType
    operator_id: Optional[str] = None
    quantity: int = Field(description="Signed change: positive in, negative out")
    quantity_before: int
    quantity_after: int
    warehouse_type: WarehouseType
    product_id: str
    spec_id: str
    user_id: Optional[str] = None
    shop_id: Optional[str] = None
    batch_number: Optional[str] = None
    related_order_id: Optional[str] = None
    related_purchase_id: Optional[str] = None
    reason: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime


class LogStatisticsItem(BaseModel):
    operation_type: InventoryOperationType
    count: int
    net_quantity: int


class LogStatistics(BaseModel):
    items: List[LogStatisticsItem]
    total_count: int
    net_quantity: int
