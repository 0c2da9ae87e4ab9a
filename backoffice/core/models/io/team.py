"""
Team management I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backoffice.core.models.domain.enums import (
    CommissionStatus,
    TeamActionType,
    TeamRole,
    UserLevel,
    UserStatus,
)

from .performance import PerformanceMetrics


class ReferralCreate(BaseModel):
    """Attach ``referee_id`` under ``referrer_id`` in the network."""

    referrer_id: str = Field(min_length=1, max_length=64)
    referee_id: str = Field(min_length=1, max_length=64)


class ReferralResult(BaseModel):
    referrer_id: str
    referee_id: str
    relationship_level: int = Field(description="Network depth of the referee, the root being 1")
    referral_path: str = Field(description="Ancestor chain joined with '>'")


class TeamMemberRead(BaseModel):
    """A member as listed inside a team."""

    user_id: str
    nickname: Optional[str] = None
    phone: Optional[str] = None
    level: UserLevel
    role: TeamRole
    status: UserStatus
    parent_id: Optional[str] = None
    team_level: int
    depth: int = Field(description="Depth below the team leader")
    joined_at: datetime


class TeamMemberDetail(BaseModel):
    user_id: str
    nickname: Optional[str] = None
    phone: Optional[str] = None
    level: UserLevel
    role: TeamRole
    status: UserStatus
    parent_id: Optional[str] = None
    parent_nickname: Optional[str] = None
    team_level: int
    personal_sales: float = Field(description="Current month")
    team_sales: float = Field(description="Current month")
    direct_count: int
    team_count: int
    joined_at: datetime


class NetworkNode(BaseModel):
    user_id: str
    nickname: Optional[str] = None
    role: TeamRole
    level: int = Field(description="Depth in the returned tree, the root being 1")
    personal_sales: float
    team_sales: float
    direct_count: int
    team_count: int
    status: UserStatus
    children: List["NetworkNode"] = Field(default_factory=list)


class RoleCount(BaseModel):
    role: TeamRole
    count: int


class TeamStructure(BaseModel):
    leader_id: str
    leader_nickname: Optional[str] = None
    leader_role: TeamRole
    total_members: int
    active_members: int
    direct_members: int
    max_depth: int
    role_breakdown: List[RoleCount]


class TeamOverview(BaseModel):
    total_members: int
    active_members: int
    total_sales: float
    average_performance: float
    growth_rate: float


class LevelStatistics(BaseModel):
    level: int
    member_count: int
    sales_contribution: float
    percentage: float


class RoleStatistics(BaseModel):
    role: TeamRole
    count: int
    sales: float
    avg_performance: float


class TopPerformer(BaseModel):
    user_id: str
    nickname: Optional[str] = None
    role: TeamRole
    sales: float
    team_size: int


class GrowthTrendPoint(BaseModel):
    period: str
    sales: float
    new_members: int
    active_rate: float


class TeamStatistics(BaseModel):
    period: str
    overview: TeamOverview
    level_distribution: List[LevelStatistics]
    role_distribution: List[RoleStatistics]
    top_performers: List[TopPerformer]
    growth_trends: List[GrowthTrendPoint]


class CommissionDetailItem(BaseModel):
    type: str
    amount: float
    rate: float
    base_amount: float
    description: str


class CommissionRead(BaseModel):
    """Schema for reading a commission statement."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    period: str
    personal_commission: float
    team_commission: float
    referral_commission: float
    bonus_commission: float
    total_commission: float
    status: CommissionStatus
    details: Optional[str] = Field(default=None, description="JSON list of commission detail items")
    calculated_at: datetime
    paid_date: Optional[datetime] = None


class CommissionCalculateRequest(BaseModel):
    period: Optional[str] = Field(default=None, description="YYYY-MM, defaults to the current month")


class PromoteRequest(BaseModel):
    new_role: TeamRole
    reason: str = Field(min_length=1, max_length=255)
    notes: Optional[str] = None


class PromoteResult(BaseModel):
    user_id: str
    old_role: TeamRole
    new_role: TeamRole
    level: UserLevel


class MemberStatusUpdate(BaseModel):
    status: UserStatus
    reason: str = Field(min_length=1, max_length=255)


class TeamActionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    operator_id: str
    action_type: TeamActionType
    old_data: Optional[str] = None
    new_data: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class RolePermissions(BaseModel):
    role: TeamRole
    permissions: List[str]


class TeamRankingEntry(BaseModel):
    user_id: str
    nickname: Optional[str] = None
    role: TeamRole
    sales: float
    rank: int


class CombinedPerformance(PerformanceMetrics):
    """Team-facing view of the engine's metrics for one member."""

    role: TeamRole
