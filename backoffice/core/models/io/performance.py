"""
Performance engine I/O models.

These models are both the API contract and the values kept in the
performance cache.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from backoffice.core.models.domain.enums import CommissionType, TeamRole, UserLevel


class PersonalPerformance(BaseModel):
    """Sales made by the user themself within a period."""

    sales_amount: float = 0.0
    order_count: int = 0
    new_customers: int = 0
    repeat_rate: float = Field(default=0.0, description="Share of buyers with two or more orders")
    average_order_value: float = 0.0
    month_to_date: float = 0.0
    year_to_date: float = 0.0


class LevelDistributionItem(BaseModel):
    level: int = Field(description="Depth below the team leader, direct members being 1")
    member_count: int
    sales: float = Field(description="Current month sales of the members at this depth")


class TeamPerformance(BaseModel):
    team_sales: float = 0.0
    team_orders: int = 0
    new_members: int = 0
    active_rate: float = 0.0
    productivity: float = 0.0
    level_distribution: List[LevelDistributionItem] = Field(default_factory=list)


class ReferralPerformance(BaseModel):
    direct_referrals: int = 0
    indirect_referrals: int = 0
    referral_revenue: float = 0.0
    network_growth: float = 0.0
    active_referrals: int = 0
    conversion_rate: float = 0.0


class PerformanceMetrics(BaseModel):
    """The three metric blocks of one user and period."""

    user_id: str
    period: str
    personal: PersonalPerformance
    team: TeamPerformance
    referral: ReferralPerformance


class LeaderboardEntry(BaseModel):
    user_id: str
    nickname: Optional[str] = None
    role: TeamRole
    level: UserLevel
    value: float
    rank: int
    change: int = Field(default=0, description="Previous rank minus current rank")


class LeaderboardRanking(BaseModel):
    rank: int
    total: int
    percentile: float
    item: Optional[LeaderboardEntry] = None


class RequirementProgress(BaseModel):
    requirement: str
    current: float
    required: float
    percentage: float
    met: bool


class UpgradeProgress(BaseModel):
    current_role: TeamRole
    target_role: TeamRole
    progress_percentage: float
    requirements: List[RequirementProgress]
    estimated_days: Optional[int] = None
    monthly_growth_rate: float = 0.0


class CurrentPeriodForecast(BaseModel):
    estimated_commission: float
    actual_to_date: float
    projection: float


class NextPeriodForecast(BaseModel):
    estimated_commission: float
    confidence: float = Field(description="0-100")


class ForecastBreakdownItem(BaseModel):
    type: CommissionType
    current: float
    projected: float
    percentage: float


class CommissionCapacity(BaseModel):
    max_capacity: float = 0.0
    utilization_rate: float = 0.0
    growth_potential: float = 0.0


class CommissionForecast(BaseModel):
    current_period: CurrentPeriodForecast
    next_period: NextPeriodForecast
    breakdown: List[ForecastBreakdownItem]
    capacity_analysis: CommissionCapacity


class ValidationReport(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class RankProgress(BaseModel):
    current_role: TeamRole
    next_role: Optional[TeamRole] = None
    progress_percentage: float = 0.0
    requirements_met: List[str] = Field(default_factory=list)
    requirements_pending: List[str] = Field(default_factory=list)


class RebuiltMetrics(PerformanceMetrics):
    rank_progress: RankProgress


class RebuildResult(BaseModel):
    success: bool
    message: str
    metrics: Optional[RebuiltMetrics] = None


class WarmupRequest(BaseModel):
    user_ids: List[str] = Field(min_length=1)


class CacheStats(BaseModel):
    size: int
    keys: List[str]
    by_prefix: Dict[str, int] = Field(default_factory=dict)


class WarmupResult(BaseModel):
    warmed: int
    failed: List[str] = Field(default_factory=list)
