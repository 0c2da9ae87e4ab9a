"""
Inventory Stock Endpoints.

Stock movements across the PLATFORM, CLOUD and LOCAL tiers: manual
adjustments, transfers, purchases, shipping, returns and reservations. Every
movement writes an inventory log row and refreshes the scope's stock alert.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Query

from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import WarehouseType
from backoffice.core.models.io.common import Page
from backoffice.core.models.io.inventory import (
    AdjustmentResult,
    InventoryStatistics,
    ManualInRequest,
    ManualOutRequest,
    OrderOutRequest,
    PurchaseInRequest,
    ReservationRequest,
    ReservationResult,
    ReturnInRequest,
    StockRead,
    StockScopeIn,
    StockSummary,
    TransferRequest,
)
from backoffice.server.services.deps import AdminDep, InventoryServiceDep

logger = get_logger(__name__)

router = APIRouter(tags=["inventory"])

STOCK_ERRORS = {
    400: {"description": "Insufficient stock or invalid quantity"},
    404: {"description": "Named batch not found"},
    422: {"description": "Invalid scope or payload"},
}


@router.get(
    "/stocks",
    response_model=Page[StockRead],
    summary="List Stock Rows",
    description="List stock rows, one per scope and batch, with optional filters.",
    response_description="A page of stock rows.",
)
async def list_stocks(
    service: InventoryServiceDep,
    product_id: Optional[str] = None,
    spec_id: Optional[str] = None,
    warehouse_type: Optional[WarehouseType] = None,
    user_id: Optional[str] = None,
    shop_id: Optional[str] = None,
    low_stock: bool = Query(False, description="Only rows at or below the low stock listing threshold"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[StockRead]:
    """
    List stock rows.

    - **low_stock**: keep only rows whose quantity is at or below the configured listing threshold.
    """
    return await service.get_stock_list(
        product_id=product_id,
        spec_id=spec_id,
        warehouse_type=warehouse_type,
        user_id=user_id,
        shop_id=shop_id,
        low_stock=low_stock,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/stocks/summary",
    response_model=StockSummary,
    summary="Get Scope Stock",
    description="Sum the quantities of every batch of one stock scope.",
    response_description="Total, reserved and available quantity of the scope.",
)
async def get_stock_summary(scope: Annotated[StockScopeIn, Query()], service: InventoryServiceDep) -> StockSummary:
    """
    Get the stock of a scope.

    CLOUD scopes need **user_id**; LOCAL scopes need **user_id** and **shop_id**.
    """
    return await service.get_stock(scope.to_scope())


@router.post(
    "/manual-in",
    response_model=AdjustmentResult,
    summary="Manual Stock In",
    description="Add stock to a scope by hand. A batch number is generated when none is given.",
    response_description="The adjustment result with before and after quantities.",
    responses=STOCK_ERRORS,
)
async def manual_in(request: ManualInRequest, service: InventoryServiceDep, admin: AdminDep) -> AdjustmentResult:
    """
    Add stock by hand.

    Creates the batch row when it does not exist yet.
    """
    return await service.manual_in(
        request.to_scope(),
        request.quantity,
        batch_number=request.batch_number,
        expiry_date=request.expiry_date,
        location=request.location,
        reason=request.reason,
        remarks=request.remarks,
        operator_id=admin.admin_id,
    )


@router.post(
    "/manual-out",
    response_model=AdjustmentResult,
    summary="Manual Stock Out",
    description="Remove stock from the named batch, or from the batch expiring first when none is named.",
    response_description="The adjustment result with before and after quantities.",
    responses=STOCK_ERRORS,
)
async def manual_out(request: ManualOutRequest, service: InventoryServiceDep, admin: AdminDep) -> AdjustmentResult:
    """Remove stock by hand."""
    return await service.manual_out(
        request.to_scope(),
        request.quantity,
        batch_number=request.batch_number,
        reason=request.reason,
        remarks=request.remarks,
        operator_id=admin.admin_id,
    )


@router.post(
    "/damage",
    response_model=AdjustmentResult,
    summary="Damage Write-off",
    description="Write off damaged stock. Logged as DAMAGE_OUT.",
    response_description="The adjustment result with before and after quantities.",
    responses=STOCK_ERRORS,
)
async def damage(request: ManualOutRequest, service: InventoryServiceDep, admin: AdminDep) -> AdjustmentResult:
    """Write off damaged stock."""
    return await service.damage(
        request.to_scope(),
        request.quantity,
        batch_number=request.batch_number,
        reason=request.reason,
        remarks=request.remarks,
        operator_id=admin.admin_id,
    )


@router.post(
    "/transfer",
    response_model=AdjustmentResult,
    summary="Transfer Stock",
    description="Move stock from one scope to another, keeping the batch number and expiry date.",
    response_description="The adjustment result of the source scope.",
    responses=STOCK_ERRORS,
)
async def transfer(request: TransferRequest, service: InventoryServiceDep, admin: AdminDep) -> AdjustmentResult:
    """
    Transfer stock between scopes.

    Writes a TRANSFER_OUT log on the source and a TRANSFER_IN log on the target.
    """
    return await service.transfer(
        request.source.to_scope(),
        request.target.to_scope(),
        request.quantity,
        batch_number=request.batch_number,
        reason=request.reason,
        remarks=request.remarks,
        operator_id=admin.admin_id,
    )


@router.post(
    "/purchase-in",
    response_model=AdjustmentResult,
    summary="Purchase Into Cloud Stock",
    description="Move stock from the seller's CLOUD stock into the buyer's CLOUD stock.",
    response_description="The adjustment result of the seller's stock.",
    responses=STOCK_ERRORS,
)
async def purchase_in(request: PurchaseInRequest, service: InventoryServiceDep) -> AdjustmentResult:
    """Record a member purchase from their parent's cloud stock."""
    return await service.purchase_in(
        request.product_id,
        request.spec_id,
        request.from_user_id,
        request.to_user_id,
        request.quantity,
        request.purchase_id,
        batch_number=request.batch_number,
    )


@router.post(
    "/order-out",
    response_model=AdjustmentResult,
    summary="Ship Order To Shop",
    description="Move stock from a member's CLOUD stock to the LOCAL stock of one of their shops.",
    response_description="The adjustment result of the cloud stock.",
    responses=STOCK_ERRORS,
)
async def order_out(request: OrderOutRequest, service: InventoryServiceDep) -> AdjustmentResult:
    """Ship stock for an order."""
    return await service.order_out(
        request.product_id,
        request.spec_id,
        request.user_id,
        request.shop_id,
        request.quantity,
        request.order_id,
        batch_number=request.batch_number,
    )


@router.post(
    "/return-in",
    response_model=AdjustmentResult,
    summary="Return Stock",
    description="Put returned goods back into a scope.",
    response_description="The adjustment result.",
    responses=STOCK_ERRORS,
)
async def return_in(request: ReturnInRequest, service: InventoryServiceDep, admin: AdminDep) -> AdjustmentResult:
    """Record a customer return."""
    return await service.return_in(
        request.to_scope(),
        request.quantity,
        batch_number=request.batch_number,
        order_id=request.order_id,
        reason=request.reason,
        operator_id=admin.admin_id,
    )


def _reservation(success: bool, done: str, failed: str) -> ReservationResult:
    return ReservationResult(success=success, message=done if success else failed)


@router.post(
    "/reserve",
    response_model=ReservationResult,
    summary="Reserve Stock",
    description="Move quantity from available to reserved. Reports failure instead of raising when stock is short.",
    response_description="Whether the reservation went through.",
)
async def reserve(request: ReservationRequest, service: InventoryServiceDep) -> ReservationResult:
    """Reserve stock for a pending order."""
    success = await service.reserve(request.to_scope(), request.quantity, request.batch_number, request.order_id)
    return _reservation(success, "stock reserved", "insufficient available stock")


@router.post(
    "/release",
    response_model=ReservationResult,
    summary="Release Reservation",
    description="Give reserved quantity back to available stock.",
    response_description="Whether the release went through.",
)
async def release(request: ReservationRequest, service: InventoryServiceDep) -> ReservationResult:
    """Release a reservation."""
    success = await service.release(request.to_scope(), request.quantity, request.batch_number, request.order_id)
    return _reservation(success, "reservation released", "insufficient reserved stock")


@router.post(
    "/reduce",
    response_model=ReservationResult,
    summary="Consume Reservation",
    description="Ship reserved quantity, lowering both reserved and total stock.",
    response_description="Whether the reduction went through.",
)
async def reduce(request: ReservationRequest, service: InventoryServiceDep) -> ReservationResult:
    """Consume reserved stock once an order is confirmed."""
    success = await service.reduce(request.to_scope(), request.quantity, request.batch_number, request.order_id)
    return _reservation(success, "reserved stock reduced", "insufficient reserved stock")


@router.get(
    "/statistics",
    response_model=InventoryStatistics,
    summary="Inventory Statistics",
    description="Stock row counts and quantities per warehouse tier, plus the overall total.",
    response_description="Per-tier and total statistics.",
)
async def inventory_statistics(service: InventoryServiceDep) -> InventoryStatistics:
    """Get inventory statistics per warehouse tier."""
    return await service.inventory_statistics()
