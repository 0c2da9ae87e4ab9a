"""
Batch Endpoints.

Batch listings, expiry checks and FIFO selection over stock rows that carry a
batch number.
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Query

from backoffice.core.models.domain.enums import WarehouseType
from backoffice.core.models.io.batches import BatchExpiry, BatchRead, BatchSelectQuery, BatchStatistics, BatchUpdate
from backoffice.server.services.batches import to_batch_read
from backoffice.server.services.deps import BatchServiceDep

router = APIRouter(tags=["batches"])


@router.get(
    "",
    response_model=List[BatchRead],
    summary="List Product Batches",
    description="List the batches of a product, ACTIVE first, then by expiry date.",
    response_description="Batches with their derived status.",
)
async def list_batches(
    service: BatchServiceDep,
    product_id: str,
    spec_id: Optional[str] = None,
    warehouse_type: Optional[WarehouseType] = None,
    user_id: Optional[str] = None,
) -> List[BatchRead]:
    """List batches of a product."""
    return await service.get_product_batches(product_id, spec_id, warehouse_type, user_id)


@router.get(
    "/expiring",
    response_model=List[BatchRead],
    summary="List Expiring Batches",
    description="Batches with stock left that expire within the given number of days.",
    response_description="Expiring batches, soonest first.",
)
async def expiring_batches(service: BatchServiceDep, days: int = Query(30, ge=0)) -> List[BatchRead]:
    """List batches about to expire."""
    return await service.get_expiring_batches(days)


@router.get(
    "/statistics",
    response_model=BatchStatistics,
    summary="Batch Statistics",
    description="Batch counts per derived status, plus batches expiring soon.",
    response_description="Batch counters.",
)
async def batch_statistics(service: BatchServiceDep, product_id: Optional[str] = None) -> BatchStatistics:
    """Get batch counters."""
    return await service.batch_statistics(product_id)


@router.get(
    "/select",
    response_model=Optional[BatchRead],
    summary="Select Batch For Operation",
    description="Pick the batch a stock-out would use: the one expiring first that can cover the quantity.",
    response_description="The selected batch, or null when none can cover the quantity.",
)
async def select_batch(
    query: Annotated[BatchSelectQuery, Query()], service: BatchServiceDep
) -> Optional[BatchRead]:
    """Preview FIFO batch selection."""
    stock = await service.select_batch_for_operation(query.to_scope(), query.quantity)
    return to_batch_read(stock) if stock is not None else None


@router.get(
    "/{stock_id}/expiry",
    response_model=BatchExpiry,
    summary="Check Batch Expiry",
    description="Whether a batch is expired and how many whole days it has left.",
    response_description="Expiry information.",
    responses={404: {"description": "Batch not found"}},
)
async def batch_expiry(stock_id: int, service: BatchServiceDep) -> BatchExpiry:
    """Check the expiry of one batch."""
    return await service.check_batch_expiry(stock_id)


@router.patch(
    "/{stock_id}",
    response_model=BatchRead,
    summary="Update Batch",
    description="Change the location or expiry date of a batch.",
    response_description="The updated batch.",
    responses={404: {"description": "Batch not found"}, 409: {"description": "Row has no batch number"}},
)
async def update_batch(stock_id: int, request: BatchUpdate, service: BatchServiceDep) -> BatchRead:
    """Update batch metadata."""
    return await service.update_batch_info(stock_id, request.location, request.expiry_date)
