"""Unit tests for the inventory alert service."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from backoffice.core.database.entities.inventory import InventoryAlert
from backoffice.core.errors import InvalidStateError, NotFoundError
from backoffice.core.models.domain.enums import AlertLevel, AlertStatus, WarehouseType
from backoffice.core.models.domain.inventory import StockScope
from backoffice.server.services.alerts import RESTORED_REASON, AlertService
from backoffice.server.services.inventory import InventoryService

pytestmark = pytest.mark.asyncio

PLATFORM = StockScope("p1", "s1", WarehouseType.PLATFORM)


async def all_alerts(session):
    return list((await session.execute(select(InventoryAlert).order_by(InventoryAlert.id))).scalars().all())


class TestEvaluateScope:
    """Test raising, escalating and resolving alerts as stock changes."""

    async def test_no_alert_above_threshold(self, session, seed):
        await seed.spec("s1", low=10, out=3)
        await InventoryService(session).manual_in(PLATFORM, 50, batch_number="B1")
        assert await all_alerts(session) == []

    async def test_escalates_in_place(self, session, seed):
        await seed.spec("s1", low=10, out=3)
        inventory = InventoryService(session)
        await inventory.manual_in(PLATFORM, 20, batch_number="B1")

        await inventory.manual_out(PLATFORM, 12)
        (alert,) = await all_alerts(session)
        assert alert.alert_level == AlertLevel.LOW

        await inventory.manual_out(PLATFORM, 6)
        (alert,) = await all_alerts(session)
        assert alert.alert_level == AlertLevel.CRITICAL
        assert alert.current_stock == 2
        assert alert.threshold == 3

        await inventory.manual_out(PLATFORM, 2)
        (alert,) = await all_alerts(session)
        assert alert.alert_level == AlertLevel.OUT_OF_STOCK
        assert alert.current_stock == 0

    async def test_resolves_when_restocked(self, session, seed):
        await seed.spec("s1", low=10, out=3)
        inventory = InventoryService(session)
        await inventory.manual_in(PLATFORM, 5, batch_number="B1")
        await inventory.manual_in(PLATFORM, 50, batch_number="B1")

        (alert,) = await all_alerts(session)
        assert alert.status == AlertStatus.RESOLVED
        assert alert.resolve_reason == RESTORED_REASON
        assert alert.resolved_at is not None

    async def test_defaults_when_spec_missing(self, session):
        await InventoryService(session).manual_in(PLATFORM, 3, batch_number="B1")
        (alert,) = await all_alerts(session)
        assert alert.alert_level == AlertLevel.CRITICAL
        assert alert.threshold == 3

    async def test_scopes_are_independent(self, session, seed):
        await seed.spec("s1", low=10, out=3)
        inventory = InventoryService(session)
        await inventory.manual_in(PLATFORM, 100, batch_number="B1")
        await inventory.transfer(PLATFORM, StockScope("p1", "s1", WarehouseType.CLOUD, user_id="u1"), 5)

        (alert,) = await all_alerts(session)
        assert alert.warehouse_type == WarehouseType.CLOUD
        assert alert.user_id == "u1"


class TestAlertLifecycle:
    """Test reading, resolving and ignoring alerts."""

    async def _raise_alert(self, session, spec_id="s1") -> InventoryAlert:
        await InventoryService(session).manual_in(StockScope("p1", spec_id, WarehouseType.PLATFORM), 1)
        return [alert for alert in await all_alerts(session) if alert.spec_id == spec_id][0]

    async def test_mark_as_read_resolves(self, session):
        alert = await self._raise_alert(session)
        read = await AlertService(session).mark_alert_as_read(alert.id)
        assert read.is_read is True
        assert read.status == AlertStatus.RESOLVED

    async def test_mark_multiple_only_touches_active(self, session):
        first = await self._raise_alert(session, "s1")
        second = await self._raise_alert(session, "s2")
        service = AlertService(session)
        await service.ignore_alert(second.id, "not relevant")

        assert await service.mark_multiple_alerts_as_read([first.id, second.id, 999]) == 1
        assert (await service.get_alert(second.id)).status == AlertStatus.IGNORED

    async def test_resolve_and_ignore_require_active(self, session):
        alert = await self._raise_alert(session)
        service = AlertService(session)
        resolved = await service.resolve_alert(alert.id, "handled")
        assert resolved.resolve_reason == "handled"

        with pytest.raises(InvalidStateError):
            await service.ignore_alert(alert.id)
        with pytest.raises(InvalidStateError):
            await service.resolve_alert(alert.id)

    async def test_unknown_alert(self, session):
        with pytest.raises(NotFoundError):
            await AlertService(session).get_alert(42)

    async def test_list_and_statistics(self, session):
        first = await self._raise_alert(session, "s1")
        await self._raise_alert(session, "s2")
        service = AlertService(session)
        await service.resolve_alert(first.id)

        page = await service.list_alerts(status=AlertStatus.ACTIVE)
        assert page.pagination.total == 1
        assert page.items[0].spec_id == "s2"

        stats = await service.alert_statistics()
        assert stats.total == 2
        assert stats.active == 1
        assert stats.resolved == 1
        assert stats.critical == 2
        assert stats.unread == 1

    async def test_clean_resolved_alerts(self, session):
        alert = await self._raise_alert(session)
        service = AlertService(session)
        await service.resolve_alert(alert.id)
        alert.resolved_at = datetime.now(timezone.utc) - timedelta(days=45)
        session.add(alert)
        await session.commit()

        assert await service.clean_resolved_alerts(30) == 1
        assert await all_alerts(session) == []


class TestThresholds:
    async def test_set_threshold_rechecks_scopes(self, session, seed):
        await seed.spec("s1", low=10, out=3)
        await InventoryService(session).manual_in(PLATFORM, 15, batch_number="B1")
        assert await all_alerts(session) == []

        active = await AlertService(session).set_alert_threshold("s1", 20, 5)

        assert len(active) == 1
        assert active[0].alert_level == AlertLevel.LOW
        assert active[0].threshold == 20

    async def test_set_threshold_unknown_spec(self, session):
        with pytest.raises(NotFoundError):
            await AlertService(session).set_alert_threshold("missing", 10, 3)

    async def test_check_all_inventory_alerts(self, session, seed):
        inventory = InventoryService(session)
        await inventory.manual_in(PLATFORM, 100, batch_number="B1")
        await inventory.manual_in(StockScope("p1", "s2", WarehouseType.PLATFORM), 100, batch_number="B2")
        await seed.spec("s1", low=200, out=3)

        assert await AlertService(session).check_all_inventory_alerts() == 2
        (alert,) = await all_alerts(session)
        assert alert.spec_id == "s1"
