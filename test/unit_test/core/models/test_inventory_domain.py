from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from backoffice.core.models.domain.enums import AlertLevel, BatchStatus, WarehouseType
from backoffice.core.models.domain.inventory import StockScope, alert_level_for, batch_status

NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestStockScope:
    def test_of_row(self):
        row = SimpleNamespace(product_id="p1", spec_id="s1", warehouse_type="CLOUD", user_id="u1", shop_id=None)
        scope = StockScope.of(row)
        assert scope == StockScope("p1", "s1", WarehouseType.CLOUD, "u1")
        assert scope.as_dict()["warehouse_type"] is WarehouseType.CLOUD

    def test_scopes_are_hashable(self):
        platform = StockScope("p1", "s1", WarehouseType.PLATFORM)
        assert len({platform, StockScope("p1", "s1", WarehouseType.PLATFORM)}) == 1


class TestBatchStatus:
    @pytest.mark.parametrize(
        "quantity,expiry,expected",
        [
            (5, None, BatchStatus.ACTIVE),
            (0, None, BatchStatus.USED_UP),
            (5, NOW + timedelta(days=1), BatchStatus.ACTIVE),
            (5, NOW - timedelta(seconds=1), BatchStatus.EXPIRED),
            (0, NOW - timedelta(days=1), BatchStatus.EXPIRED),
        ],
    )
    def test_status(self, quantity, expiry, expected):
        assert batch_status(quantity, expiry, NOW) is expected


class TestAlertLevel:
    @pytest.mark.parametrize(
        "quantity,expected",
        [
            (0, (AlertLevel.OUT_OF_STOCK, 3)),
            (-2, (AlertLevel.OUT_OF_STOCK, 3)),
            (3, (AlertLevel.CRITICAL, 3)),
            (4, (AlertLevel.LOW, 10)),
            (10, (AlertLevel.LOW, 10)),
            (11, None),
        ],
    )
    def test_levels(self, quantity, expected):
        assert alert_level_for(quantity, low_stock_threshold=10, out_of_stock_threshold=3) == expected
