"""
Admin User Endpoints.

User listing, details, edits, status changes and exports for back office
operators. Every write is recorded in the audit trail.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Query, Response

from backoffice.core.models.domain.enums import (
    PointsTransactionStatus,
    PointsTransactionType,
    UserLevel,
    UserStatus,
)
from backoffice.core.models.io.common import Page
from backoffice.core.models.io.team import NetworkNode
from backoffice.core.models.io.users import (
    PointsTransactionRead,
    ToggleStatusRequest,
    UserDetail,
    UserListItem,
    UserRead,
    UserUpdate,
)
from backoffice.server.services.deps import AdminDep, UserAdminServiceDep

router = APIRouter(tags=["admin-users"])

USER_NOT_FOUND = {404: {"description": "User not found"}}


@router.get(
    "",
    response_model=Page[UserListItem],
    summary="List Users",
    description="Search users by level, status, keyword and registration date.",
    response_description="A page of users with total sales and direct referral count.",
)
async def list_users(
    service: UserAdminServiceDep,
    level: Optional[UserLevel] = None,
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    keyword: Optional[str] = Query(None, description="Matches nickname, phone or id"),
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    sort_by: Literal["created_at", "total_sales", "direct_count"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[UserListItem]:
    """List users."""
    return await service.list_users(
        level=level,
        status=user_status,
        keyword=keyword,
        created_from=created_from,
        created_to=created_to,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/export",
    summary="Export Users",
    description="Download the users matching the filters as CSV or JSON.",
    response_description="File content.",
    responses={200: {"content": {"text/csv": {}, "application/json": {}}}},
)
async def export_users(
    service: UserAdminServiceDep,
    admin: AdminDep,
    format: Literal["csv", "json"] = "csv",
    level: Optional[UserLevel] = None,
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    keyword: Optional[str] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
) -> Response:
    """Export users as a file download."""
    content, media_type = await service.export_users(
        admin,
        format=format,
        level=level,
        status=user_status,
        keyword=keyword,
        created_from=created_from,
        created_to=created_to,
    )
    filename = f"users_{datetime.now(timezone.utc):%Y%m%d%H%M%S}.{format}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/{user_id}",
    response_model=UserDetail,
    summary="Get User",
    description="A user with referrer, team counts and sales figures.",
    response_description="User details.",
    responses=USER_NOT_FOUND,
)
async def get_user(user_id: str, service: UserAdminServiceDep) -> UserDetail:
    """Get a user's details."""
    return await service.get_user_detail(user_id)


@router.put(
    "/{user_id}",
    response_model=UserRead,
    summary="Update User",
    description="Change profile fields, level, status or balance. Only provided fields change.",
    response_description="The updated user.",
    responses=USER_NOT_FOUND,
)
async def update_user(
    user_id: str, data: UserUpdate, service: UserAdminServiceDep, admin: AdminDep
) -> UserRead:
    """Update a user."""
    return await service.update_user(user_id, data, admin)


@router.post(
    "/{user_id}/toggle-status",
    response_model=UserRead,
    summary="Change User Status",
    description="Activate, deactivate, suspend or ban a user.",
    response_description="The updated user.",
    responses=USER_NOT_FOUND,
)
async def toggle_status(
    user_id: str, request: ToggleStatusRequest, service: UserAdminServiceDep, admin: AdminDep
) -> UserRead:
    """Change a user's status."""
    return await service.toggle_user_status(user_id, request.status, request.reason, admin)


@router.get(
    "/{user_id}/team",
    response_model=NetworkNode,
    summary="Get User Team",
    description="The user's referral tree, three levels deep by default.",
    response_description="Root node with nested children.",
    responses=USER_NOT_FOUND,
)
async def user_team(
    user_id: str, service: UserAdminServiceDep, max_depth: int = Query(3, ge=1, le=20)
) -> NetworkNode:
    """Get a user's team tree."""
    return await service.get_user_team(user_id, max_depth)


@router.get(
    "/{user_id}/points-transactions",
    response_model=Page[PointsTransactionRead],
    summary="List Points Transactions",
    description="Points ledger rows where the user is sender or receiver.",
    response_description="A page of points transactions.",
    responses=USER_NOT_FOUND,
)
async def points_transactions(
    user_id: str,
    service: UserAdminServiceDep,
    type: Optional[PointsTransactionType] = None,
    transaction_status: Optional[PointsTransactionStatus] = Query(None, alias="status"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[PointsTransactionRead]:
    """List a user's points transactions."""
    return await service.list_points_transactions(
        user_id, type=type, status=transaction_status, start=start, end=end, page=page, per_page=per_page
    )
