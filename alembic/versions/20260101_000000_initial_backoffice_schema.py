"""Initial schema and seed data for the back office

Revision ID: 20260101_000000
Revises: None
Create Date: 2026-01-01 00:00:00.000000

This is the initial migration that creates all necessary tables and seeds
default data for the back office. This includes:
- Users, orders and product specs
- Inventory stocks, logs and alerts
- Commission statements, points transactions and team action logs
- System configs with their history, and the admin audit trail
- Default system configs (level system, commission settlement, inventory, audit)

Revision format: YYYYMMDD_HHMMSS_description

"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Sequence, Type, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM

from alembic import op
from backoffice.core.models.domain.enums import (
    AlertLevel,
    AlertStatus,
    AuditLogLevel,
    AuditLogType,
    CommissionStatus,
    ConfigValueType,
    InventoryOperationType,
    OperatorType,
    OrderStatus,
    PointsTransactionStatus,
    PointsTransactionType,
    TeamActionType,
    UserLevel,
    UserStatus,
    WarehouseType,
)

# revision identifiers, used by Alembic.
revision: str = "20260101_000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUM_CLASSES = (
    AlertLevel,
    AlertStatus,
    AuditLogLevel,
    AuditLogType,
    CommissionStatus,
    ConfigValueType,
    InventoryOperationType,
    OperatorType,
    OrderStatus,
    PointsTransactionStatus,
    PointsTransactionType,
    TeamActionType,
    UserLevel,
    UserStatus,
    WarehouseType,
)

# Same type names the ORM derives from the enum classes
ENUM_TYPES: Dict[Type[Enum], ENUM] = {
    enum_cls: ENUM(*[member.name for member in enum_cls], name=enum_cls.__name__.lower(), create_type=False)
    for enum_cls in ENUM_CLASSES
}

LEVEL_SYSTEM = {
    "NORMAL": {"order": 1, "name": "Member", "discount": 1.0, "monthly_reward": 0, "upgrade_requires": {}},
    "VIP": {"order": 2, "name": "VIP", "discount": 0.8, "monthly_reward": 100, "upgrade_requires": {"team_sales": 1000}},
    "STAR_1": {
        "order": 3,
        "name": "1-Star Captain",
        "discount": 0.75,
        "monthly_reward": 200,
        "upgrade_requires": {"direct_count": 3, "team_sales": 5000},
    },
    "STAR_2": {
        "order": 4,
        "name": "2-Star Manager",
        "discount": 0.7,
        "monthly_reward": 300,
        "upgrade_requires": {"direct_count": 5, "team_sales": 15000},
    },
    "STAR_3": {
        "order": 5,
        "name": "3-Star Director",
        "discount": 0.65,
        "monthly_reward": 500,
        "upgrade_requires": {"direct_count": 10, "team_sales": 30000},
    },
    "STAR_4": {
        "order": 6,
        "name": "4-Star Senior Director",
        "discount": 0.6,
        "monthly_reward": 800,
        "upgrade_requires": {"direct_count": 15, "team_sales": 50000},
    },
    "STAR_5": {
        "order": 7,
        "name": "5-Star Partner",
        "discount": 0.55,
        "monthly_reward": 1200,
        "upgrade_requires": {"direct_count": 20, "team_sales": 80000},
    },
    "DIRECTOR": {
        "order": 8,
        "name": "Ambassador",
        "discount": 0.5,
        "monthly_reward": 2000,
        "upgrade_requires": {"direct_count": 30, "team_sales": 150000},
    },
}

DEFAULT_CONFIGS = [
    ("USER_LEVEL_SYSTEM", json.dumps(LEVEL_SYSTEM), "JSON", "levels", "Membership level system"),
    ("commission.settlement_personal_rate", "0.15", "NUMBER", "commission", "Personal sales share of a statement"),
    ("commission.settlement_team_rate", "0.03", "NUMBER", "commission", "Team sales share of a statement"),
    ("commission.direct_referral_reward", "500", "NUMBER", "commission", "Reward per new direct referral"),
    ("commission.indirect_referral_share", "0.3", "NUMBER", "commission", "Share of team commission paid upward"),
    ("inventory.default_low_stock_threshold", "10", "NUMBER", "inventory", "LOW alert threshold without a spec value"),
    ("inventory.default_out_of_stock_threshold", "3", "NUMBER", "inventory", "CRITICAL alert threshold without a spec value"),
    ("inventory.expiry_warning_days", "30", "NUMBER", "inventory", "Days ahead a batch counts as expiring"),
    ("audit.retention_days", "90", "NUMBER", "audit", "Days an audit log row is kept"),
]


def _enum(enum_cls: Type[Enum]) -> ENUM:
    return ENUM_TYPES[enum_cls]


def upgrade() -> None:
    """Create enum types, all tables and seed default configs."""

    for enum_cls, enum_type in ENUM_TYPES.items():
        labels = ", ".join(f"'{member.name}'" for member in enum_cls)
        op.execute(f"CREATE TYPE {enum_type.name} AS ENUM ({labels})")

    # Create users table
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("nickname", sa.String(64), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("level", _enum(UserLevel), nullable=False),
        sa.Column("status", _enum(UserStatus), nullable=False),
        sa.Column("parent_id", sa.String(64), nullable=True),
        sa.Column("team_path", sa.String(1024), nullable=False, server_default="/"),
        sa.Column("team_level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("points_balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("remark", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_users_phone", "phone"),
        sa.Index("ix_users_level", "level"),
        sa.Index("ix_users_status", "status"),
        sa.Index("ix_users_parent_id", "parent_id"),
        sa.Index("ix_users_team_path", "team_path"),
        sa.Index("ix_users_created_at", "created_at"),
    )

    # Create orders table
    op.create_table(
        "orders",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("order_no", sa.String(64), nullable=True),
        sa.Column("buyer_id", sa.String(64), nullable=False),
        sa.Column("seller_id", sa.String(64), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", _enum(OrderStatus), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_orders_order_no", "order_no"),
        sa.Index("ix_orders_buyer_id", "buyer_id"),
        sa.Index("ix_orders_seller_id", "seller_id"),
        sa.Index("ix_orders_status", "status"),
        sa.Index("ix_orders_created_at", "created_at"),
    )

    # Create product_specs table
    op.create_table(
        "product_specs",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("product_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("sku", sa.String(64), nullable=True),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=True),
        sa.Column("out_of_stock_threshold", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_product_specs_product_id", "product_id"),
        sa.Index("ix_product_specs_sku", "sku"),
    )

    # Create inventory_stocks table
    op.create_table(
        "inventory_stocks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("product_id", sa.String(64), nullable=False),
        sa.Column("spec_id", sa.String(64), nullable=False),
        sa.Column("warehouse_type", _enum(WarehouseType), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("shop_id", sa.String(64), nullable=True),
        sa.Column("batch_number", sa.String(64), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reserved_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("available_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("location", sa.String(128), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_inventory_stocks_product_id", "product_id"),
        sa.Index("ix_inventory_stocks_spec_id", "spec_id"),
        sa.Index("ix_inventory_stocks_warehouse_type", "warehouse_type"),
        sa.Index("ix_inventory_stocks_user_id", "user_id"),
        sa.Index("ix_inventory_stocks_shop_id", "shop_id"),
        sa.Index("ix_inventory_stocks_batch_number", "batch_number"),
        sa.Index("ix_inventory_stocks_expiry_date", "expiry_date"),
        sa.Index("ix_inventory_stocks_created_at", "created_at"),
    )

    # Create inventory_logs table
    op.create_table(
        "inventory_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("operation_type", _enum(InventoryOperationType), nullable=False),
        sa.Column("operator_type", _enum(OperatorType), nullable=False),
        sa.Column("operator_id", sa.String(64), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("quantity_before", sa.Integer(), nullable=False),
        sa.Column("quantity_after", sa.Integer(), nullable=False),
        sa.Column("warehouse_type", _enum(WarehouseType), nullable=False),
        sa.Column("product_id", sa.String(64), nullable=False),
        sa.Column("spec_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("shop_id", sa.String(64), nullable=True),
        sa.Column("batch_number", sa.String(64), nullable=True),
        sa.Column("related_order_id", sa.String(64), nullable=True),
        sa.Column("related_purchase_id", sa.String(64), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_inventory_logs_operation_type", "operation_type"),
        sa.Index("ix_inventory_logs_warehouse_type", "warehouse_type"),
        sa.Index("ix_inventory_logs_product_id", "product_id"),
        sa.Index("ix_inventory_logs_spec_id", "spec_id"),
        sa.Index("ix_inventory_logs_user_id", "user_id"),
        sa.Index("ix_inventory_logs_created_at", "created_at"),
    )

    # Create inventory_alerts table
    op.create_table(
        "inventory_alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("product_id", sa.String(64), nullable=False),
        sa.Column("spec_id", sa.String(64), nullable=False),
        sa.Column("warehouse_type", _enum(WarehouseType), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("shop_id", sa.String(64), nullable=True),
        sa.Column("current_stock", sa.Integer(), nullable=False),
        sa.Column("alert_level", _enum(AlertLevel), nullable=False),
        sa.Column("threshold", sa.Integer(), nullable=False),
        sa.Column("status", _enum(AlertStatus), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolve_reason", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_inventory_alerts_product_id", "product_id"),
        sa.Index("ix_inventory_alerts_spec_id", "spec_id"),
        sa.Index("ix_inventory_alerts_warehouse_type", "warehouse_type"),
        sa.Index("ix_inventory_alerts_user_id", "user_id"),
        sa.Index("ix_inventory_alerts_alert_level", "alert_level"),
        sa.Index("ix_inventory_alerts_status", "status"),
        sa.Index("ix_inventory_alerts_created_at", "created_at"),
    )

    # Create commission_calculations table
    op.create_table(
        "commission_calculations",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("period", sa.String(16), nullable=False),
        sa.Column("personal_commission", sa.Float(), nullable=False, server_default="0"),
        sa.Column("team_commission", sa.Float(), nullable=False, server_default="0"),
        sa.Column("referral_commission", sa.Float(), nullable=False, server_default="0"),
        sa.Column("bonus_commission", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_commission", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", _enum(CommissionStatus), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_date", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "period", name="uq_commission_user_period"),
        sa.Index("ix_commission_calculations_user_id", "user_id"),
        sa.Index("ix_commission_calculations_period", "period"),
        sa.Index("ix_commission_calculations_status", "status"),
        sa.Index("ix_commission_calculations_calculated_at", "calculated_at"),
    )

    # Create points_transactions table
    op.create_table(
        "points_transactions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("transaction_no", sa.String(64), nullable=False),
        sa.Column("from_user_id", sa.String(64), nullable=True),
        sa.Column("to_user_id", sa.String(64), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("type", _enum(PointsTransactionType), nullable=False),
        sa.Column("status", _enum(PointsTransactionStatus), nullable=False),
        sa.Column("balance_before", sa.Float(), nullable=True),
        sa.Column("balance_after", sa.Float(), nullable=True),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_points_transactions_transaction_no", "transaction_no"),
        sa.Index("ix_points_transactions_from_user_id", "from_user_id"),
        sa.Index("ix_points_transactions_to_user_id", "to_user_id"),
        sa.Index("ix_points_transactions_type", "type"),
        sa.Index("ix_points_transactions_status", "status"),
        sa.Index("ix_points_transactions_created_at", "created_at"),
    )

    # Create team_action_logs table
    op.create_table(
        "team_action_logs",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("operator_id", sa.String(64), nullable=False),
        sa.Column("action_type", _enum(TeamActionType), nullable=False),
        sa.Column("old_data", sa.Text(), nullable=True),
        sa.Column("new_data", sa.Text(), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_team_action_logs_user_id", "user_id"),
        sa.Index("ix_team_action_logs_action_type", "action_type"),
        sa.Index("ix_team_action_logs_created_at", "created_at"),
    )

    # Create system_configs table
    op.create_table(
        "system_configs",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("key", sa.String(128), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("value_type", _enum(ConfigValueType), nullable=False),
        sa.Column("category", sa.String(64), nullable=False, server_default="general"),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("last_modified_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_system_configs_key", "key", unique=True),
        sa.Index("ix_system_configs_category", "category"),
    )

    # Create system_config_history table
    op.create_table(
        "system_config_history",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("config_key", sa.String(128), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("modified_by", sa.String(64), nullable=True),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_system_config_history_config_key", "config_key"),
        sa.Index("ix_system_config_history_modified_at", "modified_at"),
    )

    # Create audit_logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("admin_id", sa.String(64), nullable=False),
        sa.Column("admin_name", sa.String(64), nullable=False),
        sa.Column("type", _enum(AuditLogType), nullable=False),
        sa.Column("level", _enum(AuditLogLevel), nullable=False),
        sa.Column("module", sa.String(64), nullable=False),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("target_id", sa.String(128), nullable=True),
        sa.Column("target_type", sa.String(64), nullable=True),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("result", sa.String(16), nullable=False, server_default="SUCCESS"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_audit_logs_admin_id", "admin_id"),
        sa.Index("ix_audit_logs_type", "type"),
        sa.Index("ix_audit_logs_level", "level"),
        sa.Index("ix_audit_logs_module", "module"),
        sa.Index("ix_audit_logs_target_id", "target_id"),
        sa.Index("ix_audit_logs_created_at", "created_at"),
    )

    # Seed default system configs
    now = datetime.now(timezone.utc)
    system_configs = sa.table(
        "system_configs",
        sa.column("id", sa.String),
        sa.column("key", sa.String),
        sa.column("value", sa.Text),
        sa.column("value_type", _enum(ConfigValueType)),
        sa.column("category", sa.String),
        sa.column("description", sa.String),
        sa.column("last_modified_by", sa.String),
        sa.column("created_at", sa.DateTime(timezone=True)),
        sa.column("updated_at", sa.DateTime(timezone=True)),
    )
    op.bulk_insert(
        system_configs,
        [
            {
                "id": f"cfg_{key.replace('.', '_').lower()}",
                "key": key,
                "value": value,
                "value_type": value_type,
                "category": category,
                "description": description,
                "last_modified_by": "system",
                "created_at": now,
                "updated_at": now,
            }
            for key, value, value_type, category, description in DEFAULT_CONFIGS
        ],
    )


def downgrade() -> None:
    """Drop all tables and enum types created in upgrade."""
    op.drop_table("audit_logs")
    op.drop_table("system_config_history")
    op.drop_table("system_configs")
    op.drop_table("team_action_logs")
    op.drop_table("points_transactions")
    op.drop_table("commission_calculations")
    op.drop_table("inventory_alerts")
    op.drop_table("inventory_logs")
    op.drop_table("inventory_stocks")
    op.drop_table("product_specs")
    op.drop_table("orders")
    op.drop_table("users")

    for enum_type in ENUM_TYPES.values():
        op.execute(f"DROP TYPE IF EXISTS {enum_type.name}")
