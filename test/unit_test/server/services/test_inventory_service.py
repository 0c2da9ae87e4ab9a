"""Unit tests for the inventory service.

Covers the stock operations of the three warehouse tiers, FIFO batch
selection, reservations and the inventory queries against in-memory SQLite.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from backoffice.core.database.entities.inventory import InventoryAlert, InventoryLog, InventoryStock
from backoffice.core.errors import InsufficientStockError, NotFoundError, ValidationFailedError
from backoffice.core.models.domain.enums import (
    AlertLevel,
    AlertStatus,
    InventoryOperationType,
    OperatorType,
    WarehouseType,
)
from backoffice.core.models.domain.inventory import StockScope
from backoffice.server.services.inventory import InventoryService, generate_batch_number

pytestmark = pytest.mark.asyncio

PLATFORM = StockScope("p1", "s1", WarehouseType.PLATFORM)


def cloud(user_id: str) -> StockScope:
    return StockScope("p1", "s1", WarehouseType.CLOUD, user_id=user_id)


async def logs(session):
    return list((await session.execute(select(InventoryLog).order_by(InventoryLog.id))).scalars().all())


class TestGenerateBatchNumber:
    async def test_format(self):
        number = generate_batch_number()
        assert number.startswith("B")
        assert number == number.upper()
        assert len(number) == 1 + 13 + 6

    async def test_unique(self):
        assert len({generate_batch_number() for _ in range(50)}) == 50


class TestManualIn:
    """Test adding stock by hand."""

    async def test_creates_batch_row_and_log(self, session):
        service = InventoryService(session)
        result = await service.manual_in(PLATFORM, 50, batch_number="B1", operator_id="admin-1")

        assert result.success is True
        assert result.before_quantity == 0
        assert result.after_quantity == 50
        assert result.log_id is not None

        stock = (await session.execute(select(InventoryStock))).scalars().one()
        assert stock.batch_number == "B1"
        assert stock.quantity == 50
        assert stock.available_quantity == 50
        assert stock.location == "PLATFORM-DEFAULT"

        (log,) = await logs(session)
        assert log.operation_type == InventoryOperationType.MANUAL_IN
        assert log.quantity == 50
        assert log.operator_id == "admin-1"
        assert log.operator_type == OperatorType.ADMIN

    async def test_generates_batch_number_when_missing(self, session):
        await InventoryService(session).manual_in(PLATFORM, 5)
        stock = (await session.execute(select(InventoryStock))).scalars().one()
        assert stock.batch_number.startswith("B")

    async def test_same_batch_accumulates(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 20, batch_number="B1")
        result = await service.manual_in(PLATFORM, 30, batch_number="B1")

        assert result.before_quantity == 20
        assert result.after_quantity == 50
        assert (await service.get_stock(PLATFORM)).quantity == 50

    async def test_rejects_non_positive_quantity(self, session):
        with pytest.raises(ValidationFailedError):
            await InventoryService(session).manual_in(PLATFORM, 0)

    async def test_raises_alert_when_low(self, session, seed):
        await seed.spec("s1", low=10, out=3)
        await InventoryService(session).manual_in(PLATFORM, 8, batch_number="B1")

        alert = (await session.execute(select(InventoryAlert))).scalars().one()
        assert alert.alert_level == AlertLevel.LOW
        assert alert.current_stock == 8
        assert alert.threshold == 10
        assert alert.status == AlertStatus.ACTIVE


class TestManualOut:
    """Test removing stock by hand."""

    async def test_fifo_takes_earliest_expiry(self, session):
        service = InventoryService(session)
        now = datetime.now(timezone.utc)
        await service.manual_in(PLATFORM, 100, batch_number="LATE", expiry_date=now + timedelta(days=60))
        await service.manual_in(PLATFORM, 100, batch_number="EARLY", expiry_date=now + timedelta(days=10))
        await service.manual_in(PLATFORM, 100, batch_number="NONE")

        await service.manual_out(PLATFORM, 40)

        out_log = (await logs(session))[-1]
        assert out_log.operation_type == InventoryOperationType.MANUAL_OUT
        assert out_log.batch_number == "EARLY"
        assert out_log.quantity == -40

    async def test_fifo_skips_batches_that_cannot_cover(self, session):
        service = InventoryService(session)
        now = datetime.now(timezone.utc)
        await service.manual_in(PLATFORM, 10, batch_number="SMALL", expiry_date=now + timedelta(days=1))
        await service.manual_in(PLATFORM, 100, batch_number="BIG", expiry_date=now + timedelta(days=30))

        await service.manual_out(PLATFORM, 50)

        assert (await logs(session))[-1].batch_number == "BIG"

    async def test_named_batch(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 100, batch_number="B1")
        await service.manual_in(PLATFORM, 100, batch_number="B2")

        result = await service.manual_out(PLATFORM, 30, batch_number="B2")

        assert result.before_quantity == 100
        assert result.after_quantity == 70
        assert (await logs(session))[-1].batch_number == "B2"

    async def test_unknown_batch(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")
        with pytest.raises(NotFoundError):
            await service.manual_out(PLATFORM, 1, batch_number="NOPE")

    async def test_insufficient_stock_changes_nothing(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")

        with pytest.raises(InsufficientStockError):
            await service.manual_out(PLATFORM, 11)

        assert (await service.get_stock(PLATFORM)).quantity == 10
        assert len(await logs(session)) == 1

    async def test_damage_writes_damage_log(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")
        result = await service.damage(PLATFORM, 4, reason="broken")

        assert result.after_quantity == 6
        log = (await logs(session))[-1]
        assert log.operation_type == InventoryOperationType.DAMAGE_OUT
        assert log.reason == "broken"


class TestTransfers:
    """Test moving stock between scopes."""

    async def test_transfer_keeps_batch_and_expiry(self, session):
        service = InventoryService(session)
        expiry = datetime.now(timezone.utc) + timedelta(days=90)
        await service.manual_in(PLATFORM, 100, batch_number="B1", expiry_date=expiry)

        await service.transfer(PLATFORM, cloud("u1"), 30)

        assert (await service.get_stock(PLATFORM)).quantity == 70
        assert (await service.get_stock(cloud("u1"))).quantity == 30
        target = await service.repos.stocks.find(cloud("u1"), "B1")
        assert target.expiry_date == expiry
        assert target.location == "CLOUD-DEFAULT"

        out_log, in_log = (await logs(session))[-2:]
        assert out_log.operation_type == InventoryOperationType.TRANSFER_OUT
        assert out_log.quantity == -30
        assert in_log.operation_type == InventoryOperationType.TRANSFER_IN
        assert in_log.quantity == 30
        assert in_log.user_id == "u1"

    async def test_transfer_to_same_scope_rejected(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")
        with pytest.raises(ValidationFailedError):
            await service.transfer(PLATFORM, PLATFORM, 5)

    async def test_purchase_in_moves_between_members(self, session):
        service = InventoryService(session)
        await service.manual_in(cloud("parent"), 50, batch_number="B1")

        result = await service.purchase_in("p1", "s1", "parent", "child", 20, "PO-1")

        assert result.success is True
        assert (await service.get_stock(cloud("parent"))).quantity == 30
        assert (await service.get_stock(cloud("child"))).quantity == 20
        in_log = (await logs(session))[-1]
        assert in_log.operation_type == InventoryOperationType.PURCHASE_IN
        assert in_log.related_purchase_id == "PO-1"
        assert in_log.operator_type == OperatorType.USER

    async def test_purchase_in_rejects_self_purchase(self, session):
        with pytest.raises(ValidationFailedError):
            await InventoryService(session).purchase_in("p1", "s1", "u1", "u1", 1, "PO-1")

    async def test_order_out_ships_to_shop(self, session):
        service = InventoryService(session)
        await service.manual_in(cloud("u1"), 10, batch_number="B1")

        await service.order_out("p1", "s1", "u1", "shop-1", 3, "ORD-1")

        local = StockScope("p1", "s1", WarehouseType.LOCAL, user_id="u1", shop_id="shop-1")
        assert (await service.get_stock(local)).quantity == 3
        out_log = (await logs(session))[-2]
        assert out_log.operation_type == InventoryOperationType.ORDER_OUT
        assert out_log.related_order_id == "ORD-1"

    async def test_return_in(self, session):
        service = InventoryService(session)
        result = await service.return_in(cloud("u1"), 2, order_id="ORD-1")
        assert result.after_quantity == 2
        assert (await logs(session))[-1].operation_type == InventoryOperationType.RETURN_IN


class TestReservations:
    """Test reserve, release and reduce of reserved stock."""

    async def test_reserve_moves_available_to_reserved(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")

        assert await service.reserve(PLATFORM, 4, order_id="ORD-1") is True

        summary = await service.get_stock(PLATFORM)
        assert summary.quantity == 10
        assert summary.reserved_quantity == 4
        assert summary.available_quantity == 6
        log = (await logs(session))[-1]
        assert log.operation_type == InventoryOperationType.RESERVE
        assert log.quantity_before == 10
        assert log.quantity_after == 6

    async def test_reserve_beyond_available(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")
        assert await service.reserve(PLATFORM, 11) is False
        assert (await service.get_stock(PLATFORM)).reserved_quantity == 0

    async def test_release(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")
        await service.reserve(PLATFORM, 4)

        assert await service.release(PLATFORM, 3) is True
        assert (await service.get_stock(PLATFORM)).reserved_quantity == 1
        assert await service.release(PLATFORM, 5) is False

    async def test_reduce_consumes_reserved(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")
        await service.reserve(PLATFORM, 4)

        assert await service.reduce(PLATFORM, 4, order_id="ORD-1") is True

        summary = await service.get_stock(PLATFORM)
        assert summary.quantity == 6
        assert summary.reserved_quantity == 0
        assert summary.available_quantity == 6

    async def test_reserved_stock_is_not_taken_out(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")
        await service.reserve(PLATFORM, 8)

        with pytest.raises(InsufficientStockError):
            await service.manual_out(PLATFORM, 5)


class TestQuantityGuard:
    @pytest.mark.parametrize("quantity", [0, -3])
    @pytest.mark.parametrize(
        "operation",
        [
            lambda service, qty: service.purchase_in("p1", "s1", "parent", "child", qty, "PO-1"),
            lambda service, qty: service.order_out("p1", "s1", "child", "shop-1", qty, "O-1"),
            lambda service, qty: service.reserve(PLATFORM, qty),
            lambda service, qty: service.release(PLATFORM, qty),
            lambda service, qty: service.reduce(PLATFORM, qty),
        ],
        ids=["purchase_in", "order_out", "reserve", "release", "reduce"],
    )
    async def test_non_positive_quantity_is_rejected(self, session, operation, quantity):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")
        await service.manual_in(cloud("parent"), 10, batch_number="B2")
        await service.reserve(PLATFORM, 4)

        with pytest.raises(ValidationFailedError):
            await operation(service, quantity)

        stock = await service.get_stock(PLATFORM)
        assert (stock.quantity, stock.reserved_quantity) == (10, 4)
        assert (await service.get_stock(cloud("parent"))).quantity == 10


class TestQueries:
    """Test listings and statistics."""

    async def test_stock_list_filters(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 100, batch_number="B1")
        await service.manual_in(cloud("u1"), 5, batch_number="B2")

        page = await service.get_stock_list(warehouse_type=WarehouseType.CLOUD)
        assert page.pagination.total == 1
        assert page.items[0].user_id == "u1"

        low = await service.get_stock_list(low_stock=True)
        assert [item.batch_number for item in low.items] == ["B2"]

    async def test_inventory_logs_and_get_log(self, session):
        service = InventoryService(session)
        result = await service.manual_in(PLATFORM, 10, batch_number="B1")
        await service.manual_out(PLATFORM, 3)

        page = await service.get_inventory_logs(operation_type=InventoryOperationType.MANUAL_OUT)
        assert page.pagination.total == 1
        assert (await service.get_log(result.log_id)).quantity == 10
        with pytest.raises(NotFoundError):
            await service.get_log(9999)

    async def test_log_statistics(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 10, batch_number="B1")
        await service.manual_in(PLATFORM, 5, batch_number="B1")
        await service.manual_out(PLATFORM, 3)

        stats = await service.log_statistics()
        by_op = {item.operation_type: item for item in stats.items}
        assert by_op[InventoryOperationType.MANUAL_IN].count == 2
        assert by_op[InventoryOperationType.MANUAL_IN].net_quantity == 15
        assert by_op[InventoryOperationType.MANUAL_OUT].net_quantity == -3
        assert stats.total_count == 3
        assert stats.net_quantity == 12

    async def test_inventory_statistics(self, session):
        service = InventoryService(session)
        await service.manual_in(PLATFORM, 100, batch_number="B1")
        await service.manual_in(cloud("u1"), 5, batch_number="B2")

        stats = await service.inventory_statistics()
        assert stats.warehouses[WarehouseType.PLATFORM].total_quantity == 100
        assert stats.warehouses[WarehouseType.CLOUD].low_stock_count == 1
        assert stats.warehouses[WarehouseType.LOCAL].stock_count == 0
        assert stats.total.total_quantity == 105
        assert stats.total.stock_count == 2
