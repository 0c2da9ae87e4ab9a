"""
Inventory service.

Stock moves between three tiers: PLATFORM -> CLOUD (a member buys from the
platform or from their parent) -> LOCAL (a member ships to one of their
shops). Every operation runs in one transaction, writes one inventory log
row per touched stock row, and re-checks the alerts of every touched scope
before committing. A failure rolls the whole operation back.
"""

from __future__ import annotations

import secrets
import string
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database.entities.inventory import InventoryLog, InventoryStock
from backoffice.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from backoffice.core.errors import InsufficientStockError, NotFoundError, ValidationFailedError
from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import InventoryOperationType, OperatorType, WarehouseType
from backoffice.core.models.domain.inventory import DEFAULT_LOCATIONS, StockScope
from backoffice.core.models.domain.periods import as_utc
from backoffice.core.models.io.common import Page, Pagination
from backoffice.core.models.io.inventory import (
    AdjustmentResult,
    InventoryLogRead,
    InventoryStatistics,
    LogStatistics,
    LogStatisticsItem,
    ReservationResult,
    StockRead,
    StockSummary,
    WarehouseStatistics,
)
from backoffice.core.monitoring import log_inventory_operation
from backoffice.server.core.config import settings

from .alerts import AlertService
from .batches import BatchService

logger = get_logger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _require_positive(quantity: int) -> None:
    if quantity <= 0:
        raise ValidationFailedError(f"quantity must be positive, got {quantity}")


def generate_batch_number() -> str:
    """Return ``B`` + millisecond timestamp + six random base36 characters, uppercased."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"B{int(time.time() * 1000)}{suffix}".upper()


class InventoryService:
    """Service for stock movements and inventory queries."""

    def __init__(self, session: AsyncSession, repos: Optional[SqlRepoBundle] = None):
        self.session = session
        self.repos = repos or build_sql_repos_from_session(session=session)
        self.alerts = AlertService(session, self.repos)
        self.batches = BatchService(session, self.repos)

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(self, *scopes_to_check: StockScope) -> AsyncIterator[None]:
        """Commit the enclosed writes together with an alert check of ``scopes_to_check``."""
        try:
            yield
            for scope in scopes_to_check:
                await self.alerts.evaluate_scope(scope)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def get_or_create_stock(
        self,
        scope: StockScope,
        batch_number: Optional[str] = None,
        expiry_date: Optional[datetime] = None,
        location: Optional[str] = None,
    ) -> InventoryStock:
        """Return the stock row of ``scope`` and batch, staging an empty one when missing."""
        stock = await self.repos.stocks.find(scope, batch_number)
        if stock is not None:
            return stock
        stock = InventoryStock(
            **scope.as_dict(),
            batch_number=batch_number,
            quantity=0,
            reserved_quantity=0,
            available_quantity=0,
            location=location or DEFAULT_LOCATIONS[scope.warehouse_type],
            expiry_date=as_utc(expiry_date),
        )
        return await self.repos.stocks.stage(stock)

    async def _change_quantity(self, stock: InventoryStock, delta: int) -> tuple[int, int]:
        """Apply ``delta`` to the stock row and return ``(before, after)`` quantities."""
        before = stock.quantity
        after = before + delta
        if after < 0:
            raise ValidationFailedError(f"stock quantity cannot go below zero: current {before}, change {delta}")
        stock.quantity = after
        stock.available_quantity = after - stock.reserved_quantity
        stock.updated_at = datetime.now(timezone.utc)
        await self.repos.stocks.stage(stock)
        return before, after

    async def _write_log(
        self,
        stock: InventoryStock,
        operation_type: InventoryOperationType,
        quantity: int,
        before: int,
        after: int,
        *,
        operator_type: OperatorType = OperatorType.ADMIN,
        operator_id: Optional[str] = None,
        related_order_id: Optional[str] = None,
        related_purchase_id: Optional[str] = None,
        reason: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> InventoryLog:
        entry = InventoryLog(
            operation_type=operation_type,
            operator_type=operator_type,
            operator_id=operator_id,
            quantity=quantity,
            quantity_before=before,
            quantity_after=after,
            warehouse_type=stock.warehouse_type,
            product_id=stock.product_id,
            spec_id=stock.spec_id,
            user_id=stock.user_id,
            shop_id=stock.shop_id,
            batch_number=stock.batch_number,
            related_order_id=related_order_id,
            related_purchase_id=related_purchase_id,
            reason=reason,
            remarks=remarks,
        )
        return await self.repos.inventory_logs.stage(entry)

    async def _resolve_outgoing_batch(
        self, scope: StockScope, quantity: int, batch_number: Optional[str]
    ) -> InventoryStock:
        """Pick the stock row to take ``quantity`` from: the named batch, else the FIFO batch."""
        if batch_number is not None:
            stock = await self.repos.stocks.find(scope, batch_number)
            if stock is None:
                raise NotFoundError(f"Batch {batch_number} not found in {scope.warehouse_type.value} stock")
            if stock.available_quantity < quantity:
                raise InsufficientStockError(
                    f"insufficient available stock: current {stock.available_quantity}, need {quantity}"
                )
            return stock

        stock = await self.batches.select_batch_for_operation(scope, quantity)
        if stock is None:
            _, _, available = await self.repos.stocks.scope_totals(scope)
            raise InsufficientStockError(f"insufficient available stock: current {available}, need {quantity}")
        return stock

    def _result(self, log: InventoryLog, message: str) -> AdjustmentResult:
        log_inventory_operation(
            log.operation_type.value, log.product_id, log.spec_id, log.warehouse_type.value, log.quantity
        )
        return AdjustmentResult(
            success=True,
            log_id=log.id,
            before_quantity=log.quantity_before,
            after_quantity=log.quantity_after,
            message=message,
        )

    async def _move(
        self,
        source: StockScope,
        target: StockScope,
        quantity: int,
        batch_number: Optional[str],
        out_operation: InventoryOperationType,
        in_operation: InventoryOperationType,
        **log_fields,
    ) -> InventoryLog:
        """Take ``quantity`` out of ``source`` and put it into the same batch of ``target``."""
        _require_positive(quantity)
        if source == target:
            raise ValidationFailedError("source and target stock must differ")
        source_stock = await self._resolve_outgoing_batch(source, quantity, batch_number)
        before, after = await self._change_quantity(source_stock, -quantity)
        out_log = await self._write_log(source_stock, out_operation, -quantity, before, after, **log_fields)

        target_stock = await self.get_or_create_stock(
            target, source_stock.batch_number, expiry_date=source_stock.expiry_date
        )
        before, after = await self._change_quantity(target_stock, quantity)
        await self._write_log(target_stock, in_operation, quantity, before, after, **log_fields)
        return out_log

    # ------------------------------------------------------------------
    # Stock operations
    # ------------------------------------------------------------------

    async def manual_in(
        self,
        scope: StockScope,
        quantity: int,
        *,
        batch_number: Optional[str] = None,
        expiry_date: Optional[datetime] = None,
        location: Optional[str] = None,
        reason: Optional[str] = None,
        remarks: Optional[str] = None,
        operator_id: Optional[str] = None,
    ) -> AdjustmentResult:
        """Add stock by hand. A batch number is generated when none is given."""
        _require_positive(quantity)
        batch_number = batch_number or generate_batch_number()
        async with self._transaction(scope):
            stock = await self.get_or_create_stock(scope, batch_number, expiry_date=expiry_date, location=location)
            before, after = await self._change_quantity(stock, quantity)
            log = await self._write_log(
                stock,
                InventoryOperationType.MANUAL_IN,
                quantity,
                before,
                after,
                operator_id=operator_id,
                reason=reason or "manual stock in",
                remarks=remarks,
            )
        logger.info(
            f"Manual stock in: {quantity} of spec {scope.spec_id} into batch {batch_number}",
            extra={"log_id": log.id, "warehouse_type": scope.warehouse_type.value},
        )
        return self._result(log, "stock in completed")

    async def _take_out(
        self,
        scope: StockScope,
        quantity: int,
        operation_type: InventoryOperationType,
        *,
        batch_number: Optional[str],
        reason: Optional[str],
        remarks: Optional[str],
        operator_id: Optional[str],
    ) -> InventoryLog:
        _require_positive(quantity)
        async with self._transaction(scope):
            stock = await self._resolve_outgoing_batch(scope, quantity, batch_number)
            before, after = await self._change_quantity(stock, -quantity)
            log = await self._write_log(
                stock,
                operation_type,
                -quantity,
                before,
                after,
                operator_id=operator_id,
                reason=reason,
                remarks=remarks,
            )
        return log

    async def manual_out(
        self,
        scope: StockScope,
        quantity: int,
        *,
        batch_number: Optional[str] = None,
        reason: Optional[str] = None,
        remarks: Optional[str] = None,
        operator_id: Optional[str] = None,
    ) -> AdjustmentResult:
        """Remove stock by hand from the named batch, or from the FIFO batch."""
        log = await self._take_out(
            scope,
            quantity,
            InventoryOperationType.MANUAL_OUT,
            batch_number=batch_number,
            reason=reason or "manual stock out",
            remarks=remarks,
            operator_id=operator_id,
        )
        logger.info(f"Manual stock out: {quantity} of spec {scope.spec_id}", extra={"log_id": log.id})
        return self._result(log, "stock out completed")

    async def damage(
        self,
        scope: StockScope,
        quantity: int,
        *,
        batch_number: Optional[str] = None,
        reason: Optional[str] = None,
        remarks: Optional[str] = None,
        operator_id: Optional[str] = None,
    ) -> AdjustmentResult:
        """Write off damaged stock."""
        log = await self._take_out(
            scope,
            quantity,
            InventoryOperationType.DAMAGE_OUT,
            batch_number=batch_number,
            reason=reason or "damaged stock",
            remarks=remarks,
            operator_id=operator_id,
        )
        logger.warning(f"Damaged stock written off: {quantity} of spec {scope.spec_id}", extra={"log_id": log.id})
        return self._result(log, "damage recorded")

    async def transfer(
        self,
        source: StockScope,
        target: StockScope,
        quantity: int,
        *,
        batch_number: Optional[str] = None,
        reason: Optional[str] = None,
        remarks: Optional[str] = None,
        operator_id: Optional[str] = None,
    ) -> AdjustmentResult:
        """Move stock between two scopes, keeping the batch number."""
        _require_positive(quantity)
        async with self._transaction(source, target):
            log = await self._move(
                source,
                target,
                quantity,
                batch_number,
                InventoryOperationType.TRANSFER_OUT,
                InventoryOperationType.TRANSFER_IN,
                operator_id=operator_id,
                reason=reason or "stock transfer",
                remarks=remarks,
            )
        logger.info(
            f"Transferred {quantity} of spec {source.spec_id} "
            f"from {source.warehouse_type.value} to {target.warehouse_type.value}",
            extra={"log_id": log.id, "batch_number": log.batch_number},
        )
        return self._result(log, "transfer completed")

    async def purchase_in(
        self,
        product_id: str,
        spec_id: str,
        from_user_id: str,
        to_user_id: str,
        quantity: int,
        purchase_id: str,
        batch_number: Optional[str] = None,
    ) -> AdjustmentResult:
        """A member buys stock out of their parent's cloud stock."""
        if from_user_id == to_user_id:
            raise ValidationFailedError("buyer and seller must differ")
        source = StockScope(product_id, spec_id, WarehouseType.CLOUD, user_id=from_user_id)
        target = StockScope(product_id, spec_id, WarehouseType.CLOUD, user_id=to_user_id)
        async with self._transaction(source, target):
            log = await self._move(
                source,
                target,
                quantity,
                batch_number,
                InventoryOperationType.TRANSFER_OUT,
                InventoryOperationType.PURCHASE_IN,
                operator_type=OperatorType.USER,
                operator_id=to_user_id,
                related_purchase_id=purchase_id,
                reason="purchase from upline",
            )
        logger.info(
            f"Purchase {purchase_id}: {quantity} of spec {spec_id} from {from_user_id} to {to_user_id}",
            extra={"log_id": log.id},
        )
        return self._result(log, "purchase stock in completed")

    async def order_out(
        self,
        product_id: str,
        spec_id: str,
        user_id: str,
        shop_id: str,
        quantity: int,
        order_id: str,
        batch_number: Optional[str] = None,
    ) -> AdjustmentResult:
        """Ship stock of an order from a member's cloud stock to their shop."""
        source = StockScope(product_id, spec_id, WarehouseType.CLOUD, user_id=user_id)
        target = StockScope(product_id, spec_id, WarehouseType.LOCAL, user_id=user_id, shop_id=shop_id)
        async with self._transaction(source, target):
            log = await self._move(
                source,
                target,
                quantity,
                batch_number,
                InventoryOperationType.ORDER_OUT,
                InventoryOperationType.TRANSFER_IN,
                operator_type=OperatorType.USER,
                operator_id=user_id,
                related_order_id=order_id,
                reason="order shipment",
            )
        logger.info(f"Order {order_id}: shipped {quantity} of spec {spec_id} to shop {shop_id}", extra={"log_id": log.id})
        return self._result(log, "order stock out completed")

    async def return_in(
        self,
        scope: StockScope,
        quantity: int,
        *,
        batch_number: Optional[str] = None,
        order_id: Optional[str] = None,
        reason: Optional[str] = None,
        operator_id: Optional[str] = None,
    ) -> AdjustmentResult:
        """Put returned goods back into stock."""
        _require_positive(quantity)
        batch_number = batch_number or generate_batch_number()
        async with self._transaction(scope):
            stock = await self.get_or_create_stock(scope, batch_number)
            before, after = await self._change_quantity(stock, quantity)
            log = await self._write_log(
                stock,
                InventoryOperationType.RETURN_IN,
                quantity,
                before,
                after,
                operator_id=operator_id,
                related_order_id=order_id,
                reason=reason or "customer return",
            )
        return self._result(log, "return stock in completed")

    # ------------------------------------------------------------------
    # Reservations
    #
    # Reservation logs record the reserved amount in ``quantity`` and the
    # available quantity in ``quantity_before`` / ``quantity_after``.
    # ------------------------------------------------------------------

    async def _reserved_row(
        self, scope: StockScope, quantity: int, batch_number: Optional[str]
    ) -> Optional[InventoryStock]:
        if batch_number is not None:
            stock = await self.repos.stocks.find(scope, batch_number)
            return stock if stock is not None and stock.reserved_quantity >= quantity else None
        for stock in await self.repos.stocks.scope_rows(scope):
            if stock.reserved_quantity >= quantity:
                return stock
        return None

    async def reserve(
        self, scope: StockScope, quantity: int, batch_number: Optional[str] = None, order_id: Optional[str] = None
    ) -> bool:
        """Move ``quantity`` from available to reserved. Returns False when stock cannot cover it."""
        _require_positive(quantity)
        async with self._transaction(scope):
            if batch_number is not None:
                stock = await self.repos.stocks.find(scope, batch_number)
                if stock is None or stock.available_quantity < quantity:
                    stock = None
            else:
                stock = await self.batches.select_batch_for_operation(scope, quantity)
            if stock is None:
                logger.info(f"Cannot reserve {quantity} of spec {scope.spec_id}: not enough available stock")
                return False
            before = stock.available_quantity
            stock.reserved_quantity += quantity
            stock.available_quantity = stock.quantity - stock.reserved_quantity
            stock.updated_at = datetime.now(timezone.utc)
            await self.repos.stocks.stage(stock)
            await self._write_log(
                stock,
                InventoryOperationType.RESERVE,
                quantity,
                before,
                stock.available_quantity,
                operator_type=OperatorType.SYSTEM,
                related_order_id=order_id,
                reason="stock reserved",
            )
        return True

    async def release(
        self, scope: StockScope, quantity: int, batch_number: Optional[str] = None, order_id: Optional[str] = None
    ) -> bool:
        """Give reserved stock back to available. Returns False when not enough is reserved."""
        _require_positive(quantity)
        async with self._transaction(scope):
            stock = await self._reserved_row(scope, quantity, batch_number)
            if stock is None:
                return False
            before = stock.available_quantity
            stock.reserved_quantity -= quantity
            stock.available_quantity = stock.quantity - stock.reserved_quantity
            stock.updated_at = datetime.now(timezone.utc)
            await self.repos.stocks.stage(stock)
            await self._write_log(
                stock,
                InventoryOperationType.RELEASE,
                -quantity,
                before,
                stock.available_quantity,
                operator_type=OperatorType.SYSTEM,
                related_order_id=order_id,
                reason="reservation released",
            )
        return True

    async def reduce(
        self, scope: StockScope, quantity: int, batch_number: Optional[str] = None, order_id: Optional[str] = None
    ) -> bool:
        """Consume reserved stock when an order is confirmed. Returns False when not enough is reserved."""
        _require_positive(quantity)
        async with self._transaction(scope):
            stock = await self._reserved_row(scope, quantity, batch_number)
            if stock is None:
                return False
            stock.reserved_quantity -= quantity
            before, after = await self._change_quantity(stock, -quantity)
            await self._write_log(
                stock,
                InventoryOperationType.ORDER_OUT,
                -quantity,
                before,
                after,
                operator_type=OperatorType.SYSTEM,
                related_order_id=order_id,
                reason="reserved stock shipped",
            )
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_stock(self, scope: StockScope) -> StockSummary:
        quantity, reserved, available = await self.repos.stocks.scope_totals(scope)
        return StockSummary(
            **scope.as_dict(), quantity=quantity, reserved_quantity=reserved, available_quantity=available
        )

    async def get_stock_list(
        self,
        *,
        product_id: Optional[str] = None,
        spec_id: Optional[str] = None,
        warehouse_type: Optional[WarehouseType] = None,
        user_id: Optional[str] = None,
        shop_id: Optional[str] = None,
        low_stock: bool = False,
        page: int = 1,
        per_page: int = 20,
    ) -> Page[StockRead]:
        stmt = self.repos.stocks.list_stmt(
            product_id=product_id,
            spec_id=spec_id,
            warehouse_type=warehouse_type,
            user_id=user_id,
            shop_id=shop_id,
            low_stock_threshold=settings.inventory.low_stock_list_threshold if low_stock else None,
        )
        rows, total = await self.repos.stocks.paginate(stmt, page, per_page)
        return Page[StockRead](
            items=[StockRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, per_page, total),
        )

    async def get_inventory_logs(
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
        page: int = 1,
        per_page: int = 20,
    ) -> Page[InventoryLogRead]:
        stmt = self.repos.inventory_logs.list_stmt(
            product_id=product_id,
            spec_id=spec_id,
            warehouse_type=warehouse_type,
            operation_type=operation_type,
            user_id=user_id,
            batch_number=batch_number,
            start=start,
            end=end,
        )
        rows, total = await self.repos.inventory_logs.paginate(stmt, page, per_page)
        return Page[InventoryLogRead](
            items=[InventoryLogRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, per_page, total),
        )

    async def get_log(self, log_id: int) -> InventoryLog:
        log = await self.repos.inventory_logs.get_by_id(log_id)
        if log is None:
            raise NotFoundError(f"Inventory log {log_id} not found")
        return log

    async def log_statistics(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> LogStatistics:
        stats = await self.repos.inventory_logs.statistics(start, end)
        items = [
            LogStatisticsItem(operation_type=op, count=count, net_quantity=net)
            for op, (count, net) in sorted(stats.items(), key=lambda item: item[0].value)
        ]
        return LogStatistics(
            items=items,
            total_count=sum(item.count for item in items),
            net_quantity=sum(item.net_quantity for item in items),
        )

    async def inventory_statistics(self) -> InventoryStatistics:
        raw = await self.repos.stocks.warehouse_statistics(settings.inventory.low_stock_list_threshold)
        warehouses: Dict[WarehouseType, WarehouseStatistics] = {
            warehouse: WarehouseStatistics(**raw.get(warehouse, {})) for warehouse in WarehouseType
        }
        total = WarehouseStatistics()
        for stats in warehouses.values():
            for field in WarehouseStatistics.model_fields:
                setattr(total, field, getattr(total, field) + getattr(stats, field))
        return InventoryStatistics(warehouses=warehouses, total=total)