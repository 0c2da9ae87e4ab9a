"""
Repository bundle for dependency injection.

This module provides a convenience bundle of all repository instances sharing
one session, so that services can run several repositories in one
transaction.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from .audit_logs import AuditLogRepository
from .commissions import CommissionRepository
from .inventory import InventoryAlertRepository, InventoryLogRepository, InventoryStockRepository
from .orders import OrderRepository
from .points import PointsTransactionRepository
from .products import ProductSpecRepository
from .system_configs import SystemConfigHistoryRepository, SystemConfigRepository
from .team_actions import TeamActionLogRepository
from .users import UserRepository


@dataclass(frozen=True)
class SqlRepoBundle:
    """Convenience bundle of all SQL repositories for dependency injection."""

    users: UserRepository
    orders: OrderRepository
    product_specs: ProductSpecRepository
    stocks: InventoryStockRepository
    inventory_logs: InventoryLogRepository
    alerts: InventoryAlertRepository
    commissions: CommissionRepository
    points: PointsTransactionRepository
    team_actions: TeamActionLogRepository
    configs: SystemConfigRepository
    config_history: SystemConfigHistoryRepository
    audit_logs: AuditLogRepository


def build_sql_repos_from_session(*, session: AsyncSession) -> SqlRepoBundle:
    """Build a SqlRepoBundle from an existing session.

    Args:
        session: Existing async session

    Returns:
        Bundle containing all repository instances
    """
    return SqlRepoBundle(
        users=UserRepository(session),
        orders=OrderRepository(session),
        product_specs=ProductSpecRepository(session),
        stocks=InventoryStockRepository(session),
        inventory_logs=InventoryLogRepository(session),
        alerts=InventoryAlertRepository(session),
        commissions=CommissionRepository(session),
        points=PointsTransactionRepository(session),
        team_actions=TeamActionLogRepository(session),
        configs=SystemConfigRepository(session),
        config_history=SystemConfigHistoryRepository(session),
        audit_logs=AuditLogRepository(session),
    )
