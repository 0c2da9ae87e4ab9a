"""
Performance Engine Endpoints.

Cached performance metrics, leaderboards, promotion progress, commission
forecasts and cache maintenance.
"""

from typing import List, Optional

from fastapi import APIRouter, Query

from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import LeaderboardType, TeamRole
from backoffice.core.models.domain.periods import format_month
from backoffice.core.models.io.common import CountResponse
from backoffice.core.models.io.performance import (
    CacheStats,
    CommissionForecast,
    LeaderboardEntry,
    LeaderboardRanking,
    PersonalPerformance,
    RebuildResult,
    ReferralPerformance,
    TeamPerformance,
    UpgradeProgress,
    ValidationReport,
    WarmupRequest,
    WarmupResult,
)
from backoffice.server.services.deps import PerformanceServiceDep

logger = get_logger(__name__)

router = APIRouter(tags=["performance"])

PERIOD_DESCRIPTION = "YYYY-MM, YYYY or YYYY-Www; defaults to the current month"


@router.get(
    "/leaderboard/{board_type}",
    response_model=List[LeaderboardEntry],
    summary="Get Leaderboard",
    description="Personal sales, team sales or referral count leaderboard with rank changes against the previous month.",
    response_description="Ranked entries.",
)
async def leaderboard(
    board_type: LeaderboardType,
    service: PerformanceServiceDep,
    period: Optional[str] = Query(None, description=PERIOD_DESCRIPTION),
    limit: int = Query(50, ge=1, le=1000),
) -> List[LeaderboardEntry]:
    """
    Get a leaderboard.

    - **personal**: ACTIVE users by their own sales.
    - **team**: ACTIVE STAR_1 and above leaders by the sales of their team.
    - **referral**: ACTIVE users by number of direct referrals.
    """
    return await service.get_performance_leaderboard(board_type, period or format_month(), limit)


@router.get(
    "/leaderboard/{board_type}/{user_id}",
    response_model=LeaderboardRanking,
    summary="Get Leaderboard Ranking",
    description="A user's rank and percentile on a leaderboard; rank is -1 when the user is not on it.",
    response_description="Rank, total and percentile.",
)
async def leaderboard_ranking(
    board_type: LeaderboardType,
    user_id: str,
    service: PerformanceServiceDep,
    period: Optional[str] = Query(None, description=PERIOD_DESCRIPTION),
) -> LeaderboardRanking:
    """Get where a user stands on a leaderboard."""
    return await service.get_leaderboard_ranking(user_id, board_type, period or format_month())


@router.get(
    "/cache/stats",
    response_model=CacheStats,
    summary="Performance Cache Statistics",
    description="Live entries of the in-process performance cache, grouped by key prefix.",
    response_description="Cache size and keys.",
)
async def cache_stats(service: PerformanceServiceDep) -> CacheStats:
    """Inspect the performance cache."""
    return service.cache_stats()


@router.post(
    "/cache/warmup",
    response_model=WarmupResult,
    summary="Warm Up Cache",
    description="Compute current month metrics for the given users and every leaderboard.",
    response_description="How many users were warmed and which failed.",
)
async def warmup_cache(request: WarmupRequest, service: PerformanceServiceDep) -> WarmupResult:
    """Pre-compute cached performance figures."""
    logger.info(f"Warming performance cache for {len(request.user_ids)} users")
    return await service.warmup_cache(request.user_ids)


@router.delete(
    "/cache/{user_id}",
    response_model=CountResponse,
    summary="Clear User Cache",
    description="Drop a user's cached figures and every cached leaderboard.",
    response_description="Number of cache entries removed.",
)
async def clear_user_cache(user_id: str, service: PerformanceServiceDep) -> CountResponse:
    """Invalidate cached figures of a user."""
    removed = service.clear_user_cache(user_id)
    return CountResponse(count=removed, message=f"cleared cache of user {user_id}")


@router.get(
    "/{user_id}/personal",
    response_model=PersonalPerformance,
    summary="Personal Performance",
    description="Sales, orders, customers and repeat rate of the user's own sales.",
    response_description="Personal performance metrics.",
)
async def personal_performance(
    user_id: str,
    service: PerformanceServiceDep,
    period: Optional[str] = Query(None, description=PERIOD_DESCRIPTION),
) -> PersonalPerformance:
    """Get personal performance."""
    return await service.calculate_personal_performance(user_id, period or format_month())


@router.get(
    "/{user_id}/team",
    response_model=TeamPerformance,
    summary="Team Performance",
    description="Sales and activity of every member below the user.",
    response_description="Team performance metrics.",
)
async def team_performance(
    user_id: str,
    service: PerformanceServiceDep,
    period: Optional[str] = Query(None, description=PERIOD_DESCRIPTION),
) -> TeamPerformance:
    """Get team performance."""
    return await service.calculate_team_performance(user_id, period or format_month())


@router.get(
    "/{user_id}/referral",
    response_model=ReferralPerformance,
    summary="Referral Performance",
    description="Direct and indirect referrals, referral revenue and network growth.",
    response_description="Referral performance metrics.",
)
async def referral_performance(
    user_id: str,
    service: PerformanceServiceDep,
    period: Optional[str] = Query(None, description=PERIOD_DESCRIPTION),
) -> ReferralPerformance:
    """Get referral performance."""
    return await service.calculate_referral_performance(user_id, period or format_month())


@router.get(
    "/{user_id}/upgrade-progress",
    response_model=UpgradeProgress,
    summary="Upgrade Progress",
    description="Progress towards the next role (or the given target role) with an estimate in days.",
    response_description="Requirement items and overall progress.",
    responses={404: {"description": "User not found"}, 409: {"description": "User already at the top role"}},
)
async def upgrade_progress(
    user_id: str, service: PerformanceServiceDep, target_role: Optional[TeamRole] = None
) -> UpgradeProgress:
    """Get promotion progress."""
    return await service.get_upgrade_progress(user_id, target_role)


@router.get(
    "/{user_id}/commission-forecast",
    response_model=CommissionForecast,
    summary="Commission Forecast",
    description="Estimated commission of the period, a next-period projection and capacity analysis.",
    response_description="Commission forecast.",
    responses={404: {"description": "User not found"}},
)
async def commission_forecast(
    user_id: str,
    service: PerformanceServiceDep,
    period: Optional[str] = Query(None, description=PERIOD_DESCRIPTION),
) -> CommissionForecast:
    """Forecast commission."""
    return await service.predict_commission(user_id, period or format_month())


@router.get(
    "/{user_id}/validate",
    response_model=ValidationReport,
    summary="Validate Performance Data",
    description="Sanity-check computed figures of a user and period.",
    response_description="Errors and warnings found.",
)
async def validate(
    user_id: str,
    service: PerformanceServiceDep,
    period: Optional[str] = Query(None, description="YYYY-MM or YYYY"),
) -> ValidationReport:
    """Validate performance data."""
    return await service.validate_performance_data(user_id, period or format_month())


@router.post(
    "/{user_id}/rebuild",
    response_model=RebuildResult,
    summary="Rebuild Performance Metrics",
    description="Validate, then recompute a user's metrics and rank progress from scratch.",
    response_description="Rebuild outcome with the fresh metrics.",
)
async def rebuild(
    user_id: str,
    service: PerformanceServiceDep,
    period: Optional[str] = Query(None, description="YYYY-MM or YYYY"),
) -> RebuildResult:
    """Rebuild performance metrics."""
    return await service.rebuild_performance_metrics(user_id, period or format_month())
