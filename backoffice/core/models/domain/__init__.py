"""Domain enums, period helpers and team program rules."""

from .enums import (
    AlertLevel,
    AlertStatus,
    BatchStatus,
    CommissionStatus,
    CommissionType,
    InventoryOperationType,
    OperatorType,
    OrderStatus,
    TeamRole,
    UserLevel,
    UserStatus,
    WarehouseType,
)

__all__ = [
    "AlertLevel",
    "AlertStatus",
    "BatchStatus",
    "CommissionStatus",
    "CommissionType",
    "InventoryOperationType",
    "OperatorType",
    "OrderStatus",
    "TeamRole",
    "UserLevel",
    "UserStatus",
    "WarehouseType",
]
