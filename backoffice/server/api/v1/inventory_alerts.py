"""
Inventory Alert Endpoints.

Threshold alerts raised per stock scope when quantity drops to the LOW,
CRITICAL or OUT_OF_STOCK level.
"""

from typing import List, Optional

from fastapi import APIRouter, Query

from backoffice.core.models.domain.enums import AlertLevel, AlertStatus, WarehouseType
from backoffice.core.models.io.alerts import (
    AlertCheckResult,
    AlertIdsRequest,
    AlertRead,
    AlertReasonRequest,
    AlertStatistics,
    ThresholdUpdate,
)
from backoffice.core.models.io.common import CountResponse, Page
from backoffice.server.services.deps import AlertServiceDep

router = APIRouter(tags=["inventory-alerts"])

NOT_FOUND = {404: {"description": "Alert not found"}}


@router.get(
    "",
    response_model=Page[AlertRead],
    summary="List Inventory Alerts",
    description="List stock alerts, newest first, with optional filters.",
    response_description="A page of alerts.",
)
async def list_alerts(
    service: AlertServiceDep,
    status: Optional[AlertStatus] = None,
    alert_level: Optional[AlertLevel] = None,
    warehouse_type: Optional[WarehouseType] = None,
    product_id: Optional[str] = None,
    user_id: Optional[str] = None,
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[AlertRead]:
    """List inventory alerts."""
    return await service.list_alerts(
        status=status,
        alert_level=alert_level,
        warehouse_type=warehouse_type,
        product_id=product_id,
        user_id=user_id,
        unread_only=unread_only,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/statistics/summary",
    response_model=AlertStatistics,
    summary="Alert Statistics",
    description="Alert counts per status and level, plus unread ACTIVE alerts.",
    response_description="Alert counters.",
)
async def alert_statistics(service: AlertServiceDep) -> AlertStatistics:
    """Get alert counters."""
    return await service.alert_statistics()


@router.post(
    "/check",
    response_model=AlertCheckResult,
    summary="Check All Stock Scopes",
    description="Re-evaluate the alert of every stock scope against its thresholds.",
    response_description="How many scopes were checked.",
)
async def check_all(service: AlertServiceDep) -> AlertCheckResult:
    """
    Run a full alert check.

    Raises, updates or resolves alerts so that each scope's alert matches its current quantity.
    """
    return AlertCheckResult(checked=await service.check_all_inventory_alerts())


@router.post(
    "/read",
    response_model=CountResponse,
    summary="Mark Alerts Read",
    description="Mark several ACTIVE alerts as read and resolved. Alerts in other states are skipped.",
    response_description="Number of alerts changed.",
)
async def mark_many_read(request: AlertIdsRequest, service: AlertServiceDep) -> CountResponse:
    """Mark alerts as read in bulk."""
    count = await service.mark_multiple_alerts_as_read(request.alert_ids)
    return CountResponse(count=count, message=f"{count} alerts marked as read")


@router.put(
    "/thresholds/{spec_id}",
    response_model=List[AlertRead],
    summary="Set Alert Thresholds",
    description="Store new thresholds on a product spec and re-check every scope of that spec.",
    response_description="Alerts still ACTIVE after the re-check.",
    responses={404: {"description": "Product spec not found"}},
)
async def set_thresholds(spec_id: str, request: ThresholdUpdate, service: AlertServiceDep) -> List[AlertRead]:
    """Change the LOW and CRITICAL thresholds of a product spec."""
    alerts = await service.set_alert_threshold(spec_id, request.low_stock_threshold, request.out_of_stock_threshold)
    return [AlertRead.model_validate(alert) for alert in alerts]


@router.delete(
    "/resolved",
    response_model=CountResponse,
    summary="Clean Resolved Alerts",
    description="Delete RESOLVED alerts resolved more than the given number of days ago.",
    response_description="Number of alerts deleted.",
)
async def clean_resolved(service: AlertServiceDep, days: int = Query(30, ge=0)) -> CountResponse:
    """Delete old resolved alerts."""
    count = await service.clean_resolved_alerts(days)
    return CountResponse(count=count, message=f"{count} resolved alerts deleted")


@router.get(
    "/{alert_id}",
    response_model=AlertRead,
    summary="Get Inventory Alert",
    description="Retrieve one alert by id.",
    response_description="The alert.",
    responses=NOT_FOUND,
)
async def get_alert(alert_id: int, service: AlertServiceDep) -> AlertRead:
    """Get a single alert."""
    return AlertRead.model_validate(await service.get_alert(alert_id))


@router.post(
    "/{alert_id}/read",
    response_model=AlertRead,
    summary="Mark Alert Read",
    description="Mark one alert as read. An unresolved alert is resolved at the same time.",
    response_description="The updated alert.",
    responses=NOT_FOUND,
)
async def mark_read(alert_id: int, service: AlertServiceDep) -> AlertRead:
    """Mark an alert as read."""
    return AlertRead.model_validate(await service.mark_alert_as_read(alert_id))


@router.post(
    "/{alert_id}/resolve",
    response_model=AlertRead,
    summary="Resolve Alert",
    description="Resolve an ACTIVE alert with an optional reason.",
    response_description="The resolved alert.",
    responses={**NOT_FOUND, 409: {"description": "Alert is not ACTIVE"}},
)
async def resolve(alert_id: int, service: AlertServiceDep, request: Optional[AlertReasonRequest] = None) -> AlertRead:
    """Resolve an alert."""
    reason = request.reason if request else None
    return AlertRead.model_validate(await service.resolve_alert(alert_id, reason))


@router.post(
    "/{alert_id}/ignore",
    response_model=AlertRead,
    summary="Ignore Alert",
    description="Ignore an ACTIVE alert with an optional reason.",
    response_description="The ignored alert.",
    responses={**NOT_FOUND, 409: {"description": "Alert is not ACTIVE"}},
)
async def ignore(alert_id: int, service: AlertServiceDep, request: Optional[AlertReasonRequest] = None) -> AlertRead:
    """Ignore an alert."""
    reason = request.reason if request else None
    return AlertRead.model_validate(await service.ignore_alert(alert_id, reason))
