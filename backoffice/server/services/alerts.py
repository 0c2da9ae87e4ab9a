"""
Inventory alert service.

Raises, refreshes and resolves threshold alerts per stock scope. The
per-scope check only stages its writes, so inventory operations can run it
inside their own transaction; the public entry points commit.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database.entities.inventory import InventoryAlert
from backoffice.core.database.entities.products import ProductSpec
from backoffice.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from backoffice.core.errors import InvalidStateError, NotFoundError
from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import AlertLevel, AlertStatus, WarehouseType
from backoffice.core.models.domain.inventory import StockScope, alert_level_for
from backoffice.core.models.io.alerts import AlertRead, AlertStatistics
from backoffice.core.models.io.common import Page, Pagination
from backoffice.server.core.config import settings

logger = get_logger(__name__)

RESTORED_REASON = "stock restored to normal level"


class AlertService:
    """Service for inventory threshold alerts."""

    def __init__(self, session: AsyncSession, repos: Optional[SqlRepoBundle] = None):
        self.session = session
        self.repos = repos or build_sql_repos_from_session(session=session)

    async def _thresholds(self, spec_id: str) -> tuple[int, int]:
        """Return ``(low_stock, out_of_stock)`` thresholds, falling back to configured defaults."""
        defaults = settings.inventory
        spec = await self.repos.product_specs.get_by_id(spec_id)
        low = defaults.default_low_stock_threshold
        out = defaults.default_out_of_stock_threshold
        if spec is not None:
            if spec.low_stock_threshold is not None:
                low = spec.low_stock_threshold
            if spec.out_of_stock_threshold is not None:
                out = spec.out_of_stock_threshold
        return low, out

    async def evaluate_scope(self, scope: StockScope) -> Optional[InventoryAlert]:
        """Bring the alert of ``scope`` in line with its current quantity, without committing.

        Returns the ACTIVE alert after the check, or None when the scope is healthy.
        """
        quantity, _, _ = await self.repos.stocks.scope_totals(scope)
        low, out = await self._thresholds(scope.spec_id)
        verdict = alert_level_for(quantity, low, out)
        existing = await self.repos.alerts.active_for_scope(scope)

        if verdict is None:
            if existing is not None:
                existing.status = AlertStatus.RESOLVED
                existing.resolved_at = datetime.now(timezone.utc)
                existing.resolve_reason = RESTORED_REASON
                existing.current_stock = quantity
                await self.repos.alerts.stage(existing)
                logger.info(
                    f"Alert {existing.id} resolved, stock back to {quantity}",
                    extra={"alert_id": existing.id, "spec_id": scope.spec_id},
                )
            return None

        level, threshold = verdict
        if existing is not None:
            existing.current_stock = quantity
            existing.alert_level = level
            existing.threshold = threshold
            return await self.repos.alerts.stage(existing)

        alert = InventoryAlert(
            **scope.as_dict(),
            current_stock=quantity,
            alert_level=level,
            threshold=threshold,
            status=AlertStatus.ACTIVE,
            is_read=False,
        )
        await self.repos.alerts.stage(alert)
        logger.warning(
            f"Inventory alert raised: {level.value} for spec {scope.spec_id} ({scope.warehouse_type.value})",
            extra={"alert_id": alert.id, "current_stock": quantity, "threshold": threshold},
        )
        return alert

    async def check_inventory_alert(self, scope: StockScope) -> Optional[InventoryAlert]:
        try:
            alert = await self.evaluate_scope(scope)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return alert

    async def check_all_inventory_alerts(self) -> int:
        """Run the check over every stock scope and return how many scopes were checked."""
        scopes = await self.repos.stocks.distinct_scopes()
        try:
            for scope in scopes:
                await self.evaluate_scope(scope)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            logger.error("Full inventory alert check failed", exc_info=True)
            raise
        logger.info(f"Checked inventory alerts for {len(scopes)} stock scopes")
        return len(scopes)

    async def list_alerts(
        self,
        *,
        status: Optional[AlertStatus] = None,
        alert_level: Optional[AlertLevel] = None,
        warehouse_type: Optional[WarehouseType] = None,
        product_id: Optional[str] = None,
        user_id: Optional[str] = None,
        unread_only: bool = False,
        page: int = 1,
        per_page: int = 20,
    ) -> Page[AlertRead]:
        stmt = self.repos.alerts.list_stmt(
            status=status,
            alert_level=alert_level,
            warehouse_type=warehouse_type,
            product_id=product_id,
            user_id=user_id,
            unread_only=unread_only,
        )
        rows, total = await self.repos.alerts.paginate(stmt, page, per_page)
        return Page[AlertRead](
            items=[AlertRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, per_page, total),
        )

    async def get_alert(self, alert_id: int) -> InventoryAlert:
        alert = await self.repos.alerts.get_by_id(alert_id)
        if alert is None:
            raise NotFoundError(f"Inventory alert {alert_id} not found")
        return alert

    async def mark_alert_as_read(self, alert_id: int) -> InventoryAlert:
        alert = await self.get_alert(alert_id)
        alert.is_read = True
        if alert.status != AlertStatus.RESOLVED:
            alert.status = AlertStatus.RESOLVED
            alert.resolved_at = datetime.now(timezone.utc)
        return await self.repos.alerts.update(alert)

    async def mark_multiple_alerts_as_read(self, alert_ids: Sequence[int]) -> int:
        """Mark ACTIVE alerts among ``alert_ids`` as read and resolved; others are left alone."""
        now = datetime.now(timezone.utc)
        changed = 0
        for alert in await self.repos.alerts.get_many(alert_ids):
            if alert.status != AlertStatus.ACTIVE:
                continue
            alert.is_read = True
            alert.status = AlertStatus.RESOLVED
            alert.resolved_at = now
            self.session.add(alert)
            changed += 1
        await self.session.commit()
        return changed

    async def _close(self, alert_id: int, status: AlertStatus, reason: Optional[str]) -> InventoryAlert:
        alert = await self.get_alert(alert_id)
        if alert.status != AlertStatus.ACTIVE:
            raise InvalidStateError(f"Inventory alert {alert_id} is already {alert.status.value}")
        alert.status = status
        alert.resolved_at = datetime.now(timezone.utc)
        alert.resolve_reason = reason
        return await self.repos.alerts.update(alert)

    async def resolve_alert(self, alert_id: int, reason: Optional[str] = None) -> InventoryAlert:
        return await self._close(alert_id, AlertStatus.RESOLVED, reason)

    async def ignore_alert(self, alert_id: int, reason: Optional[str] = None) -> InventoryAlert:
        return await self._close(alert_id, AlertStatus.IGNORED, reason)

    async def alert_statistics(self) -> AlertStatistics:
        by_status = await self.repos.alerts.count_by(InventoryAlert.status)
        by_level = await self.repos.alerts.count_by(InventoryAlert.alert_level)
        return AlertStatistics(
            total=sum(by_status.values()),
            active=by_status.get(AlertStatus.ACTIVE.value, 0),
            resolved=by_status.get(AlertStatus.RESOLVED.value, 0),
            ignored=by_status.get(AlertStatus.IGNORED.value, 0),
            critical=by_level.get(AlertLevel.CRITICAL.value, 0),
            low=by_level.get(AlertLevel.LOW.value, 0),
            out_of_stock=by_level.get(AlertLevel.OUT_OF_STOCK.value, 0),
            unread=await self.repos.alerts.unread_active_count(),
        )

    async def set_alert_threshold(
        self, spec_id: str, low_stock_threshold: int, out_of_stock_threshold: int
    ) -> List[InventoryAlert]:
        """Store new thresholds on the spec and re-check every scope of that spec.

        Returns the alerts that are ACTIVE after the re-check.
        """
        spec: Optional[ProductSpec] = await self.repos.product_specs.get_by_id(spec_id)
        if spec is None:
            raise NotFoundError(f"Product spec {spec_id} not found")
        try:
            spec.low_stock_threshold = low_stock_threshold
            spec.out_of_stock_threshold = out_of_stock_threshold
            await self.repos.product_specs.stage(spec)
            active: List[InventoryAlert] = []
            for scope in await self.repos.stocks.distinct_scopes(spec_id=spec_id):
                alert = await self.evaluate_scope(scope)
                if alert is not None:
                    active.append(alert)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info(
            f"Alert thresholds of spec {spec_id} set to low={low_stock_threshold}, out={out_of_stock_threshold}",
            extra={"spec_id": spec_id, "active_alerts": len(active)},
        )
        return active

    async def clean_resolved_alerts(self, days: int = 30) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        deleted = await self.repos.alerts.delete_resolved_before(cutoff)
        await self.session.commit()
        logger.info(f"Deleted {deleted} resolved alerts older than {days} days")
        return deleted
