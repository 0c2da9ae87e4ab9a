"""
Inventory domain values shared by the repositories and services.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .enums import AlertLevel, BatchStatus, WarehouseType
from .periods import as_utc, utc_now

DEFAULT_LOCATIONS: Dict[WarehouseType, str] = {
    WarehouseType.PLATFORM: "PLATFORM-DEFAULT",
    WarehouseType.CLOUD: "CLOUD-DEFAULT",
    WarehouseType.LOCAL: "LOCAL-DEFAULT",
}


@dataclass(frozen=True)
class StockScope:
    """Identity of a stock pool, independent of batch.

    PLATFORM scopes carry neither user nor shop. CLOUD scopes carry the owning
    user and LOCAL scopes carry both the user and the shop.
    """

    product_id: str
    spec_id: str
    warehouse_type: WarehouseType
    user_id: Optional[str] = None
    shop_id: Optional[str] = None

    @classmethod
    def of(cls, row: Any) -> "StockScope":
        """Build the scope of any row carrying the five scope columns."""
        return cls(
            product_id=row.product_id,
            spec_id=row.spec_id,
            warehouse_type=WarehouseType(row.warehouse_type),
            user_id=row.user_id,
            shop_id=row.shop_id,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "spec_id": self.spec_id,
            "warehouse_type": self.warehouse_type,
            "user_id": self.user_id,
            "shop_id": self.shop_id,
        }


def batch_status(quantity: int, expiry_date: Optional[datetime], now: Optional[datetime] = None) -> BatchStatus:
    """Derive a batch status: expiry wins over an empty batch."""
    now = as_utc(now) or utc_now()
    if expiry_date is not None and as_utc(expiry_date) < now:
        return BatchStatus.EXPIRED
    if quantity <= 0:
        return BatchStatus.USED_UP
    return BatchStatus.ACTIVE


def alert_level_for(
    quantity: int, low_stock_threshold: int, out_of_stock_threshold: int
) -> Optional[Tuple[AlertLevel, int]]:
    """Pick the alert level for a scope quantity and the threshold it crossed.

    Returns None when the quantity is above the low-stock threshold.
    """
    if quantity <= 0:
        return AlertLevel.OUT_OF_STOCK, out_of_stock_threshold
    if quantity <= out_of_stock_threshold:
        return AlertLevel.CRITICAL, out_of_stock_threshold
    if quantity <= low_stock_threshold:
        return AlertLevel.LOW, low_stock_threshold
    return None
