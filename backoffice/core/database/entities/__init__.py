"""
Database entity models.

This package contains all database entity models organized by business domain.
Each module represents either a single table or a small group of tables that
belong together.

Modules:
- users: Platform users and the referral network
- orders: Customer orders, read by the performance engine
- products: Product specs and their stock alert thresholds
- inventory: Stock rows, inventory logs and inventory alerts
- commissions: Commission statements per user and period
- points: Points ledger transactions (commissions, withdrawals, adjustments)
- team_actions: Promotion and status change records
- system_configs: Runtime configuration entries and their history
- audit_logs: Admin audit trail
"""

from . import (
    audit_logs,
    commissions,
    inventory,
    orders,
    points,
    products,
    system_configs,
    team_actions,
    users,
)

__all__ = [
    "audit_logs",
    "commissions",
    "inventory",
    "orders",
    "points",
    "products",
    "system_configs",
    "team_actions",
    "users",
]
