"""
Inventory Log Endpoints.

Read-only access to the stock movement journal.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from backoffice.core.models.domain.enums import InventoryOperationType, WarehouseType
from backoffice.core.models.io.common import Page
from backoffice.core.models.io.inventory import InventoryLogRead, LogStatistics
from backoffice.server.services.deps import InventoryServiceDep

router = APIRouter(tags=["inventory-logs"])


@router.get(
    "",
    response_model=Page[InventoryLogRead],
    summary="List Inventory Logs",
    description="List stock movements, newest first, with optional filters.",
    response_description="A page of inventory log rows.",
)
async def list_logs(
    service: InventoryServiceDep,
    product_id: Optional[str] = None,
    spec_id: Optional[str] = None,
    warehouse_type: Optional[WarehouseType] = None,
    operation_type: Optional[InventoryOperationType] = None,
    user_id: Optional[str] = None,
    batch_number: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[InventoryLogRead]:
    """List inventory logs."""
    return await service.get_inventory_logs(
        product_id=product_id,
        spec_id=spec_id,
        warehouse_type=warehouse_type,
        operation_type=operation_type,
        user_id=user_id,
        batch_number=batch_number,
        start=start,
        end=end,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/statistics/summary",
    response_model=LogStatistics,
    summary="Inventory Log Statistics",
    description="Count and net quantity of movements per operation type.",
    response_description="Per-operation statistics and totals.",
)
async def log_statistics(
    service: InventoryServiceDep, start: Optional[datetime] = None, end: Optional[datetime] = None
) -> LogStatistics:
    """Summarize movements within an optional date range."""
    return await service.log_statistics(start, end)


@router.get(
    "/{log_id}",
    response_model=InventoryLogRead,
    summary="Get Inventory Log",
    description="Retrieve one stock movement by id.",
    response_description="The inventory log row.",
    responses={404: {"description": "Log not found"}},
)
async def get_log(log_id: int, service: InventoryServiceDep) -> InventoryLogRead:
    """Get a single inventory log row."""
    return InventoryLogRead.model_validate(await service.get_log(log_id))
