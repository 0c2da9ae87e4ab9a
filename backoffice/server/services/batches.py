"""
Batch service.

A batch is a stock row carrying a batch number. Its status is derived on
read: EXPIRED once past its expiry date, USED_UP when empty, else ACTIVE.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database.entities.inventory import InventoryStock
from backoffice.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from backoffice.core.errors import InvalidStateError, NotFoundError
from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import BatchStatus, WarehouseType
from backoffice.core.models.domain.inventory import StockScope, batch_status
from backoffice.core.models.domain.periods import as_utc
from backoffice.core.models.io.batches import BatchExpiry, BatchRead, BatchStatistics
from backoffice.server.core.config import settings

logger = get_logger(__name__)

_STATUS_ORDER = {BatchStatus.ACTIVE: 0, BatchStatus.EXPIRED: 1, BatchStatus.USED_UP: 2}


def to_batch_read(stock: InventoryStock, now: Optional[datetime] = None) -> BatchRead:
    data = stock.model_dump()
    data["status"] = batch_status(stock.quantity, stock.expiry_date, now)
    return BatchRead.model_validate(data)


class BatchService:
    """Service for batch queries, expiry checks and FIFO selection."""

    def __init__(self, session: AsyncSession, repos: Optional[SqlRepoBundle] = None):
        self.session = session
        self.repos = repos or build_sql_repos_from_session(session=session)

    async def _get_batch(self, stock_id: int) -> InventoryStock:
        stock = await self.repos.stocks.get_by_id(stock_id)
        if stock is None:
            raise NotFoundError(f"Stock batch {stock_id} not found")
        return stock

    async def get_product_batches(
        self,
        product_id: str,
        spec_id: Optional[str] = None,
        warehouse_type: Optional[WarehouseType] = None,
        user_id: Optional[str] = None,
    ) -> List[BatchRead]:
        """List batches, ACTIVE first, then EXPIRED, then USED_UP; earliest expiry first within a status."""
        now = datetime.now(timezone.utc)
        rows = await self.repos.stocks.batches(
            product_id=product_id, spec_id=spec_id, warehouse_type=warehouse_type, user_id=user_id
        )
        batches = [to_batch_read(row, now) for row in rows]
        batches.sort(
            key=lambda batch: (
                _STATUS_ORDER[batch.status],
                batch.expiry_date is None,
                batch.expiry_date or datetime.max.replace(tzinfo=timezone.utc),
            )
        )
        return batches

    async def check_batch_expiry(self, stock_id: int) -> BatchExpiry:
        stock = await self._get_batch(stock_id)
        if stock.expiry_date is None:
            return BatchExpiry(is_expired=False, days_until_expiry=None, expiry_date=None)
        remaining = (stock.expiry_date - datetime.now(timezone.utc)).total_seconds() / 86400
        return BatchExpiry(
            is_expired=remaining < 0,
            days_until_expiry=math.ceil(remaining),
            expiry_date=stock.expiry_date,
        )

    async def get_expiring_batches(self, days: int = 30) -> List[BatchRead]:
        now = datetime.now(timezone.utc)
        rows = await self.repos.stocks.expiring(now, now + timedelta(days=days))
        return [to_batch_read(row, now) for row in rows]

    async def update_batch_info(
        self, stock_id: int, location: Optional[str] = None, expiry_date: Optional[datetime] = None
    ) -> BatchRead:
        stock = await self._get_batch(stock_id)
        if stock.batch_number is None:
            raise InvalidStateError(f"Stock {stock_id} is not a batch")
        if location is not None:
            stock.location = location
        if expiry_date is not None:
            stock.expiry_date = as_utc(expiry_date)
        stock.updated_at = datetime.now(timezone.utc)
        stock = await self.repos.stocks.update(stock)
        logger.info(f"Updated batch {stock.batch_number}", extra={"stock_id": stock_id})
        return to_batch_read(stock)

    async def select_batch_for_operation(self, scope: StockScope, quantity: int) -> Optional[InventoryStock]:
        """FIFO pick: the batch expiring first among those able to cover ``quantity``."""
        candidates = await self.repos.stocks.fifo_candidates(scope, quantity)
        if not candidates:
            return None
        return candidates[0]

    async def batch_statistics(self, product_id: Optional[str] = None) -> BatchStatistics:
        now = datetime.now(timezone.utc)
        soon = now + timedelta(days=settings.inventory.expiry_warning_days)
        stats = BatchStatistics()
        for row in await self.repos.stocks.batches(product_id=product_id):
            stats.total += 1
            status = batch_status(row.quantity, row.expiry_date, now)
            if status == BatchStatus.ACTIVE:
                stats.active += 1
                if row.expiry_date is not None and row.expiry_date <= soon:
                    stats.expiring_soon += 1
            elif status == BatchStatus.EXPIRED:
                stats.expired += 1
            else:
                stats.used_up += 1
        return stats
