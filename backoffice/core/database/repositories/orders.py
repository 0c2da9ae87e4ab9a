"""
Orders repository.

Read-only aggregates over qualifying orders (PAID, SHIPPED or DELIVERED) used
by the performance engine.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import distinct, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from backoffice.core.models.domain.enums import QUALIFYING_ORDER_STATUSES

from ..entities.orders import Order
from .base import QueryBuilder, SQLModelRepository


def _qualifying(stmt, start: Optional[datetime] = None, end: Optional[datetime] = None):
    stmt = stmt.where(Order.status.in_(QUALIFYING_ORDER_STATUSES))  # type: ignore
    return QueryBuilder.apply_date_range(stmt, Order.created_at, start, end)


class OrderRepository(SQLModelRepository[Order]):
    """Repository for order aggregates."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Order)

    async def sales_summary(
        self, seller_ids: Sequence[str], start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> Tuple[float, int]:
        """Total amount and order count of qualifying orders sold by ``seller_ids``."""
        if not seller_ids:
            return 0.0, 0
        stmt = select(func.coalesce(func.sum(Order.total_amount), 0.0), func.count(Order.id)).where(
            Order.seller_id.in_(list(seller_ids))  # type: ignore
        )
        total, count = (await self.session.execute(_qualifying(stmt, start, end))).one()
        return float(total or 0.0), int(count or 0)

    async def sales_by_seller(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        seller_ids: Optional[Sequence[str]] = None,
    ) -> Dict[str, float]:
        """Qualifying sales per seller. Sellers without sales are absent."""
        stmt = select(Order.seller_id, func.sum(Order.total_amount)).group_by(Order.seller_id)
        if seller_ids is not None:
            if not seller_ids:
                return {}
            stmt = stmt.where(Order.seller_id.in_(list(seller_ids)))  # type: ignore
        result = await self.session.execute(_qualifying(stmt, start, end))
        return {seller_id: float(total or 0.0) for seller_id, total in result.all()}

    async def active_seller_count(
        self, seller_ids: Sequence[str], start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> int:
        """How many of ``seller_ids`` sold at least one qualifying order."""
        if not seller_ids:
            return 0
        stmt = select(func.count(distinct(Order.seller_id))).where(
            Order.seller_id.in_(list(seller_ids))  # type: ignore
        )
        return int((await self.session.execute(_qualifying(stmt, start, end))).scalar_one())

    async def buyer_order_counts(self, seller_id: str, start: datetime, end: datetime) -> Dict[str, int]:
        """Qualifying order count per buyer of ``seller_id`` within the window."""
        stmt = (
            select(Order.buyer_id, func.count(Order.id))
            .where(Order.seller_id == seller_id)
            .group_by(Order.buyer_id)
        )
        result = await self.session.execute(_qualifying(stmt, start, end))
        return {buyer_id: int(count) for buyer_id, count in result.all()}

    async def first_purchase_dates(self, seller_id: str, buyer_ids: Sequence[str]) -> Dict[str, datetime]:
        """Date of each buyer's first qualifying order with ``seller_id``, all time."""
        if not buyer_ids:
            return {}
        stmt = (
            select(Order.buyer_id, func.min(Order.created_at))
            .where(Order.seller_id == seller_id, Order.buyer_id.in_(list(buyer_ids)))  # type: ignore
            .group_by(Order.buyer_id)
        )
        result = await self.session.execute(_qualifying(stmt))
        return {buyer_id: first for buyer_id, first in result.all()}

    async def sales_rows(self, seller_id: str) -> List[Tuple[datetime, float]]:
        """``(created_at, total_amount)`` of every qualifying order sold by ``seller_id``."""
        stmt = select(Order.created_at, Order.total_amount).where(Order.seller_id == seller_id)
        result = await self.session.execute(_qualifying(stmt))
        return [(created_at, float(amount or 0.0)) for created_at, amount in result.all()]
