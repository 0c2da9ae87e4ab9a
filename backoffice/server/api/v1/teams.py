"""
Team Management Endpoints.

Referral network maintenance and team views: members, structure, network
tree, statistics, commission statements, promotions and status changes.
"""

from typing import List, Optional

from fastapi import APIRouter, Query, status

from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import TeamRole, UserStatus
from backoffice.core.models.domain.periods import format_month
from backoffice.core.models.io.common import Page
from backoffice.core.models.io.team import (
    CombinedPerformance,
    CommissionCalculateRequest,
    CommissionRead,
    MemberStatusUpdate,
    NetworkNode,
    PromoteRequest,
    PromoteResult,
    ReferralCreate,
    ReferralResult,
    RolePermissions,
    TeamActionRead,
    TeamMemberDetail,
    TeamMemberRead,
    TeamRankingEntry,
    TeamStatistics,
    TeamStructure,
)
from backoffice.server.services.deps import AdminDep, TeamServiceDep

logger = get_logger(__name__)

router = APIRouter(tags=["teams"])

USER_NOT_FOUND = {404: {"description": "User not found"}}


@router.post(
    "/referral",
    response_model=ReferralResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create Referral Relationship",
    description="Place a user without a referrer under another user in the referral network.",
    response_description="The referee's new network depth and ancestor chain.",
    responses={**USER_NOT_FOUND, 409: {"description": "Referee already has a referrer"}},
)
async def create_referral(request: ReferralCreate, service: TeamServiceDep) -> ReferralResult:
    """
    Create a referral relationship.

    The referee's own subtree moves along with them.
    """
    logger.info(f"Creating referral {request.referrer_id} -> {request.referee_id}")
    return await service.create_referral_relationship(request.referrer_id, request.referee_id)


@router.get(
    "/permissions/{role}",
    response_model=RolePermissions,
    summary="Get Role Permissions",
    description="The fixed permission list of a team role.",
    response_description="Role and its permissions.",
)
async def role_permissions(role: TeamRole, service: TeamServiceDep) -> RolePermissions:
    """Get the permissions of a team role."""
    return service.get_role_permissions(role)


@router.get(
    "/{user_id}/members",
    response_model=Page[TeamMemberRead],
    summary="List Team Members",
    description="Every member below the user in the referral network, paginated.",
    response_description="A page of team members.",
    responses=USER_NOT_FOUND,
)
async def team_members(
    user_id: str,
    service: TeamServiceDep,
    role: Optional[TeamRole] = None,
    member_status: Optional[UserStatus] = Query(None, alias="status"),
    keyword: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[TeamMemberRead]:
    """List the members of a user's team."""
    return await service.get_team_members(
        user_id, role=role, status=member_status, keyword=keyword, page=page, per_page=per_page
    )


@router.get(
    "/{user_id}/member",
    response_model=TeamMemberDetail,
    summary="Get Team Member",
    description="A member with role, current month sales, direct count and team count.",
    response_description="Member details.",
    responses=USER_NOT_FOUND,
)
async def team_member(user_id: str, service: TeamServiceDep) -> TeamMemberDetail:
    """Get one team member."""
    return await service.get_team_member(user_id)


@router.get(
    "/{user_id}/structure",
    response_model=TeamStructure,
    summary="Get Team Structure",
    description="Team totals, maximum depth and a breakdown by role.",
    response_description="Team structure summary.",
    responses=USER_NOT_FOUND,
)
async def team_structure(user_id: str, service: TeamServiceDep) -> TeamStructure:
    """Get the structure of a user's team."""
    return await service.get_team_structure(user_id)


@router.get(
    "/{user_id}/network",
    response_model=NetworkNode,
    summary="Get Network Tree",
    description="The referral tree below the user, cut at max_depth levels.",
    response_description="Root node with nested children.",
    responses=USER_NOT_FOUND,
)
async def network_tree(
    user_id: str, service: TeamServiceDep, max_depth: int = Query(9, ge=1, le=20)
) -> NetworkNode:
    """Get the network tree of a user."""
    return await service.get_network_tree(user_id, max_depth)


@router.get(
    "/{user_id}/performance",
    response_model=CombinedPerformance,
    summary="Get Member Performance",
    description="Personal, team and referral performance of a member for a period.",
    response_description="Combined performance metrics with the member's role.",
    responses=USER_NOT_FOUND,
)
async def member_performance(
    user_id: str, service: TeamServiceDep, period: Optional[str] = None
) -> CombinedPerformance:
    """Get the performance metrics of a member."""
    return await service.get_performance_metrics(user_id, period or format_month())


@router.get(
    "/{user_id}/statistics",
    response_model=TeamStatistics,
    summary="Get Team Statistics",
    description="Overview, level and role distribution, top performers and a three month trend.",
    response_description="Team statistics for the period.",
    responses=USER_NOT_FOUND,
)
async def team_statistics(user_id: str, service: TeamServiceDep, period: Optional[str] = None) -> TeamStatistics:
    """Get statistics of a user's team."""
    return await service.calculate_team_statistics(user_id, period)


@router.get(
    "/{user_id}/ranking",
    response_model=List[TeamRankingEntry],
    summary="Rank Team Members",
    description="Team members ranked by their own sales in the period.",
    response_description="Ranked members.",
    responses=USER_NOT_FOUND,
)
async def team_ranking(
    user_id: str, service: TeamServiceDep, period: Optional[str] = None
) -> List[TeamRankingEntry]:
    """Rank a team by personal sales."""
    return await service.calculate_team_ranking(user_id, period or format_month())


@router.post(
    "/{user_id}/commission/calculate",
    response_model=CommissionRead,
    summary="Calculate Commission",
    description="Compute and store the commission statement of a member for a period.",
    response_description="The stored commission statement.",
    responses={**USER_NOT_FOUND, 409: {"description": "Statement already paid"}},
)
async def calculate_commission(
    user_id: str, service: TeamServiceDep, request: Optional[CommissionCalculateRequest] = None
) -> CommissionRead:
    """
    Calculate a commission statement.

    Recalculating a period replaces the stored figures unless the statement is PAID.
    """
    return await service.calculate_commission(user_id, request.period if request else None)


@router.get(
    "/{user_id}/commission",
    response_model=CommissionRead,
    summary="Get Commission",
    description="The stored commission statement of a member for a period.",
    response_description="The commission statement.",
    responses={404: {"description": "No statement for the period"}},
)
async def get_commission(user_id: str, service: TeamServiceDep, period: Optional[str] = None) -> CommissionRead:
    """Get a commission statement."""
    return await service.get_commission(user_id, period or format_month())


@router.post(
    "/{user_id}/promote",
    response_model=PromoteResult,
    summary="Promote Member",
    description="Raise a member to a higher role once every requirement of that role is met.",
    response_description="Old and new role.",
    responses={**USER_NOT_FOUND, 409: {"description": "Requirements not met"}},
)
async def promote(user_id: str, request: PromoteRequest, service: TeamServiceDep, admin: AdminDep) -> PromoteResult:
    """Promote a team member."""
    return await service.promote_member(user_id, request.new_role, request.reason, admin.admin_id, request.notes)


@router.put(
    "/{user_id}/status",
    response_model=TeamActionRead,
    summary="Update Member Status",
    description="Activate, suspend or terminate a member. The change is recorded as a team action.",
    response_description="The recorded team action.",
    responses={**USER_NOT_FOUND, 409: {"description": "Status unchanged"}},
)
async def update_status(
    user_id: str, request: MemberStatusUpdate, service: TeamServiceDep, admin: AdminDep
) -> TeamActionRead:
    """Change the status of a team member."""
    return await service.update_member_status(user_id, request.status, request.reason, admin.admin_id)


@router.get(
    "/{user_id}/actions",
    response_model=Page[TeamActionRead],
    summary="List Team Actions",
    description="Promotions and status changes applied to a member, newest first.",
    response_description="A page of team actions.",
)
async def team_actions(
    user_id: str,
    service: TeamServiceDep,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page[TeamActionRead]:
    """List team actions of a member."""
    return await service.list_team_actions(user_id, page, per_page)
