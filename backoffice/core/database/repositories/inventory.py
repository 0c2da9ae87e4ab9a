"""
Inventory repositories.

This module provides data access for stock rows, inventory logs and inventory
alerts. Scope matching treats a missing user or shop as ``IS NULL`` so that a
PLATFORM scope never matches a CLOUD row of the same spec.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, case, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from backoffice.core.models.domain.enums import (
    AlertLevel,
    AlertStatus,
    InventoryOperationType,
    WarehouseType,
)
from backoffice.core.models.domain.inventory import StockScope

from ..entities.inventory import InventoryAlert, InventoryLog, InventoryStock
from .base import QueryBuilder, SQLModelRepository


def _nullable_eq(column, value):
    return column.is_(None) if value is None else column == value


def scope_clause(model, scope: StockScope):
    """WHERE clause selecting the rows of ``model`` that belong to ``scope``."""
    return and_(
        model.product_id == scope.product_id,
        model.spec_id == scope.spec_id,
        model.warehouse_type == scope.warehouse_type,
        _nullable_eq(model.user_id, scope.user_id),
        _nullable_eq(model.shop_id, scope.shop_id),
    )


class InventoryStockRepository(SQLModelRepository[InventoryStock]):
    """Repository for stock rows (one per scope and batch)."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, InventoryStock)

    async def find(self, scope: StockScope, batch_number: Optional[str]) -> Optional[InventoryStock]:
        stmt = select(InventoryStock).where(
            scope_clause(InventoryStock, scope), _nullable_eq(InventoryStock.batch_number, batch_number)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def scope_rows(self, scope: StockScope) -> List[InventoryStock]:
        stmt = select(InventoryStock).where(scope_clause(InventoryStock, scope)).order_by(InventoryStock.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def scope_totals(self, scope: StockScope) -> Tuple[int, int, int]:
        """Sum of ``(quantity, reserved, available)`` over every batch of ``scope``."""
        stmt = select(
            func.coalesce(func.sum(InventoryStock.quantity), 0),
            func.coalesce(func.sum(InventoryStock.reserved_quantity), 0),
            func.coalesce(func.sum(InventoryStock.available_quantity), 0),
        ).where(scope_clause(InventoryStock, scope))
        quantity, reserved, available = (await self.session.execute(stmt)).one()
        return int(quantity), int(reserved), int(available)

    def list_stmt(
        self,
        *,
        product_id: Optional[str] = None,
        spec_id: Optional[str] = None,
        warehouse_type: Optional[WarehouseType] = None,
        user_id: Optional[str] = None,
        shop_id: Optional[str] = None,
        low_stock_threshold: Optional[int] = None,
    ):
        stmt = select(InventoryStock)
        stmt = QueryBuilder.apply_filters(
            stmt,
            InventoryStock,
            {
                "product_id": product_id,
                "spec_id": spec_id,
                "warehouse_type": warehouse_type,
                "user_id": user_id,
                "shop_id": shop_id,
            },
        )
        if low_stock_threshold is not None:
            stmt = stmt.where(InventoryStock.quantity <= low_stock_threshold)
        return stmt.order_by(InventoryStock.updated_at.desc())  # type: ignore

    async def distinct_scopes(self, spec_id: Optional[str] = None) -> List[StockScope]:
        stmt = select(
            InventoryStock.product_id,
            InventoryStock.spec_id,
            InventoryStock.warehouse_type,
            InventoryStock.user_id,
            InventoryStock.shop_id,
        ).distinct()
        if spec_id is not None:
            stmt = stmt.where(InventoryStock.spec_id == spec_id)
        result = await self.session.execute(stmt)
        return [StockScope.of(row) for row in result.all()]

    async def fifo_candidates(self, scope: StockScope, quantity: int) -> List[InventoryStock]:
        """Batches of ``scope`` able to cover ``quantity``, earliest expiry first.

        Batches without an expiry date come last; ties fall back to creation order.
        """
        stmt = (
            select(InventoryStock)
            .where(
                scope_clause(InventoryStock, scope),
                InventoryStock.batch_number.is_not(None),  # type: ignore
                InventoryStock.available_quantity >= quantity,
            )
            .order_by(
                InventoryStock.expiry_date.is_(None),  # type: ignore
                InventoryStock.expiry_date.asc(),  # type: ignore
                InventoryStock.created_at.asc(),  # type: ignore
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def batches(
        self,
        *,
        product_id: Optional[str] = None,
        spec_id: Optional[str] = None,
        warehouse_type: Optional[WarehouseType] = None,
        user_id: Optional[str] = None,
    ) -> List[InventoryStock]:
        """Stock rows carrying a batch number, optionally narrowed."""
        stmt = select(InventoryStock).where(InventoryStock.batch_number.is_not(None))  # type: ignore
        stmt = QueryBuilder.apply_filters(
            stmt,
            InventoryStock,
            {"product_id": product_id, "spec_id": spec_id, "warehouse_type": warehouse_type, "user_id": user_id},
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def expiring(self, now: datetime, until: datetime) -> List[InventoryStock]:
        stmt = (
            select(InventoryStock)
            .where(
                InventoryStock.expiry_date.is_not(None),  # type: ignore
                InventoryStock.expiry_date >= now,
                InventoryStock.expiry_date <= until,
                InventoryStock.quantity > 0,
            )
            .order_by(InventoryStock.expiry_date.asc())  # type: ignore
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def warehouse_statistics(self, low_stock_threshold: int) -> Dict[WarehouseType, Dict[str, int]]:
        """Row count and quantity totals per warehouse type."""
        stmt = select(
            InventoryStock.warehouse_type,
            func.count(InventoryStock.id),
            func.coalesce(func.sum(InventoryStock.quantity), 0),
            func.coalesce(func.sum(InventoryStock.reserved_quantity), 0),
            func.coalesce(func.sum(InventoryStock.available_quantity), 0),
            func.coalesce(func.sum(case((InventoryStock.quantity <= low_stock_threshold, 1), else_=0)), 0),
        ).group_by(InventoryStock.warehouse_type)
        result = await self.session.execute(stmt)
        return {
            WarehouseType(warehouse): {
                "stock_count": int(rows),
                "total_quantity": int(quantity),
                "reserved_quantity": int(reserved),
                "available_quantity": int(available),
                "low_stock_count": int(low),
            }
            for warehouse, rows, quantity, reserved, available, low in result.all()
        }


class InventoryLogRepository(SQLModelRepository[InventoryLog]):
    """Repository for the append-only inventory log."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, InventoryLog)

    def list_stmt(
        self,
        *,
        product_id: Optional[str] = None,
        spec_id: Optional[str] = None,
        warehouse_type: Optional[WarehouseType] = None,
        operation_type: Optional[InventoryOperationType] = None,
        user_id: Optional[str] = None,
        batch_number: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ):
        stmt = QueryBuilder.apply_filters(
            select(InventoryLog),
            InventoryLog,
            {
                "product_id": product_id,
                "spec_id": spec_id,
                "warehouse_type": warehouse_type,
                "operation_type": operation_type,
                "user_id": user_id,
                "batch_number": batch_number,
            },
        )
        stmt = QueryBuilder.apply_date_range(stmt, InventoryLog.created_at, start, end)
        return stmt.order_by(InventoryLog.created_at.desc(), InventoryLog.id.desc())  # type: ignore

    async def statistics(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> Dict[InventoryOperationType, Tuple[int, int]]:
        """``(count, net quantity)`` per operation type within the window."""
        stmt = select(
            InventoryLog.operation_type, func.count(InventoryLog.id), func.coalesce(func.sum(InventoryLog.quantity), 0)
        ).group_by(InventoryLog.operation_type)
        stmt = QueryBuilder.apply_date_range(stmt, InventoryLog.created_at, start, end)
        result = await self.session.execute(stmt)
        return {InventoryOperationType(op): (int(count), int(net)) for op, count, net in result.all()}


class InventoryAlertRepository(SQLModelRepository[InventoryAlert]):
    """Repository for stock threshold alerts."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, InventoryAlert)

    async def active_for_scope(self, scope: StockScope) -> Optional[InventoryAlert]:
        stmt = select(InventoryAlert).where(
            scope_clause(InventoryAlert, scope), InventoryAlert.status == AlertStatus.ACTIVE
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_many(self, alert_ids: Sequence[int]) -> List[InventoryAlert]:
        if not alert_ids:
            return []
        result = await self.session.execute(
            select(InventoryAlert).where(InventoryAlert.id.in_(list(alert_ids)))  # type: ignore
        )
        return list(result.scalars().all())

    def list_stmt(
        self,
        *,
        status: Optional[AlertStatus] = None,
        alert_level: Optional[AlertLevel] = None,
        warehouse_type: Optional[WarehouseType] = None,
        product_id: Optional[str] = None,
        user_id: Optional[str] = None,
        unread_only: bool = False,
    ):
        stmt = QueryBuilder.apply_filters(
            select(InventoryAlert),
            InventoryAlert,
            {
                "status": status,
                "alert_level": alert_level,
                "warehouse_type": warehouse_type,
                "product_id": product_id,
                "user_id": user_id,
            },
        )
        if unread_only:
            stmt = stmt.where(InventoryAlert.is_read.is_(False))  # type: ignore
        return stmt.order_by(InventoryAlert.created_at.desc(), InventoryAlert.id.desc())  # type: ignore

    async def count_by(self, column) -> Dict[str, int]:
        """Row count grouped by ``column``."""
        result = await self.session.execute(select(column, func.count()).group_by(column))
        return {getattr(key, "value", key): int(count) for key, count in result.all()}

    async def unread_active_count(self) -> int:
        stmt = (
            select(func.count())
            .select_from(InventoryAlert)
            .where(InventoryAlert.status == AlertStatus.ACTIVE, InventoryAlert.is_read.is_(False))  # type: ignore
        )
        return int((await self.session.execute(stmt)).scalar_one())

    async def delete_resolved_before(self, cutoff: datetime) -> int:
        stmt = delete(InventoryAlert).where(
            InventoryAlert.status == AlertStatus.RESOLVED,
            InventoryAlert.resolved_at.is_not(None),  # type: ignore
            InventoryAlert.resolved_at < cutoff,
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)
