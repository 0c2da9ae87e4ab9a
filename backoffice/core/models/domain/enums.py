"""Domain enums for the back office models."""

from __future__ import annotations

from enum import Enum

# ---------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------


class WarehouseType(str, Enum):
    """
    Stock pool tier.

    Stock moves PLATFORM -> CLOUD (purchase by a seller) -> LOCAL (shipping to a shop).
    """

    PLATFORM = "PLATFORM"  # Central platform warehouse.
    CLOUD = "CLOUD"  # Per-seller virtual stock.
    LOCAL = "LOCAL"  # Per-shop physical stock.


class InventoryOperationType(str, Enum):
    """Kind of stock movement recorded in the inventory log."""

    MANUAL_IN = "MANUAL_IN"
    MANUAL_OUT = "MANUAL_OUT"
    ORDER_OUT = "ORDER_OUT"
    PURCHASE_IN = "PURCHASE_IN"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    RETURN_IN = "RETURN_IN"
    DAMAGE_OUT = "DAMAGE_OUT"
    INITIAL = "INITIAL"
    RESERVE = "RESERVE"
    RELEASE = "RELEASE"


class OperatorType(str, Enum):
    SYSTEM = "SYSTEM"
    ADMIN = "ADMIN"
    USER = "USER"
    AUTO = "AUTO"


class AlertLevel(str, Enum):
    """Severity of a stock alert, from mildest to worst."""

    LOW = "LOW"
    CRITICAL = "CRITICAL"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    IGNORED = "IGNORED"


class BatchStatus(str, Enum):
    """Derived status of a stock batch."""

    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    USED_UP = "USED_UP"


# ---------------------------------------------------------------------
# Users, orders and teams
# ---------------------------------------------------------------------


class UserLevel(str, Enum):
    """Membership level stored on the user row."""

    NORMAL = "NORMAL"
    VIP = "VIP"
    STAR_1 = "STAR_1"
    STAR_2 = "STAR_2"
    STAR_3 = "STAR_3"
    STAR_4 = "STAR_4"
    STAR_5 = "STAR_5"
    DIRECTOR = "DIRECTOR"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    BANNED = "BANNED"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


# Orders in these states count towards sales figures.
QUALIFYING_ORDER_STATUSES = (OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.DELIVERED)


class TeamRole(str, Enum):
    """
    Team tier derived from the user level.

    Declaration order is the promotion ladder.
    """

    MEMBER = "MEMBER"
    CAPTAIN = "CAPTAIN"
    MANAGER = "MANAGER"
    DIRECTOR = "DIRECTOR"
    SENIOR_DIRECTOR = "SENIOR_DIRECTOR"
    PARTNER = "PARTNER"
    AMBASSADOR = "AMBASSADOR"


class CommissionType(str, Enum):
    PERSONAL_SALES = "PERSONAL_SALES"
    DIRECT_REFERRAL = "DIRECT_REFERRAL"
    INDIRECT_REFERRAL = "INDIRECT_REFERRAL"
    TEAM_BONUS = "TEAM_BONUS"
    LEVEL_BONUS = "LEVEL_BONUS"
    PERFORMANCE_BONUS = "PERFORMANCE_BONUS"
    LEADERSHIP_BONUS = "LEADERSHIP_BONUS"
    SPECIAL_BONUS = "SPECIAL_BONUS"


class CommissionStatus(str, Enum):
    PENDING = "PENDING"
    CALCULATED = "CALCULATED"
    APPROVED = "APPROVED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class TeamActionType(str, Enum):
    PROMOTE = "PROMOTE"
    DEMOTE = "DEMOTE"
    TRANSFER = "TRANSFER"
    SUSPEND = "SUSPEND"
    ACTIVATE = "ACTIVATE"
    TERMINATE = "TERMINATE"


class LeaderboardType(str, Enum):
    personal = "personal"
    team = "team"
    referral = "referral"


# ---------------------------------------------------------------------
# Finance
# ---------------------------------------------------------------------


class PointsTransactionType(str, Enum):
    COMMISSION = "COMMISSION"
    WITHDRAW = "WITHDRAW"
    REFUND = "REFUND"
    ADJUSTMENT = "ADJUSTMENT"


class PointsTransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


# ---------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------


class ConfigValueType(str, Enum):
    """How a system config value string is parsed."""

    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    JSON = "JSON"
    ARRAY = "ARRAY"


class AuditLogType(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    VIEW = "VIEW"
    EXPORT = "EXPORT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    SUSPEND = "SUSPEND"
    ACTIVATE = "ACTIVATE"
    SYSTEM_CONFIG = "SYSTEM_CONFIG"
    DATA_IMPORT = "DATA_IMPORT"
    BULK_OPERATION = "BULK_OPERATION"


class AuditLogLevel(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
