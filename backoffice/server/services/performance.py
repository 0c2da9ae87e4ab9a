"""
Performance engine.

Computes sales, team and referral metrics per user and period, leaderboards,
promotion progress and commission forecasts. Results are memoized in the
process-wide ``performance_cache`` with the TTLs from
``settings.performance_cache``; call ``clear_user_cache`` after changing a
user's orders or network position.
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.cache import TTLCache
from backoffice.core.database.entities.users import User
from backoffice.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from backoffice.core.errors import InvalidStateError, NotFoundError, ValidationFailedError
from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import CommissionType, LeaderboardType, TeamRole, UserLevel
from backoffice.core.models.domain.network import depth_below
from backoffice.core.models.domain.periods import (
    format_month,
    is_month_or_year,
    last_period,
    month_start,
    parse_period,
    year_start,
)
from backoffice.core.models.domain.team_rules import (
    DIRECT_REFERRAL_REWARD,
    INDIRECT_REFERRAL_SHARE,
    LEVEL_REQUIREMENTS,
    TEAM_LEADER_LEVELS,
    commission_rate,
    level_for_role,
    next_role,
    role_for_level,
    role_rank,
)
from backoffice.core.models.io.performance import (
    CacheStats,
    CommissionCapacity,
    CommissionForecast,
    CurrentPeriodForecast,
    ForecastBreakdownItem,
    LeaderboardEntry,
    LeaderboardRanking,
    LevelDistributionItem,
    NextPeriodForecast,
    PerformanceMetrics,
    PersonalPerformance,
    RankProgress,
    RebuildResult,
    RebuiltMetrics,
    ReferralPerformance,
    RequirementProgress,
    TeamPerformance,
    UpgradeProgress,
    ValidationReport,
    WarmupResult,
)
from backoffice.server.core.config import settings

logger = get_logger(__name__)

performance_cache = TTLCache()

USER_KEY_PREFIXES = (
    "personal_performance",
    "team_performance",
    "referral_performance",
    "commission_forecast",
    "team_statistics",
)
LEADERBOARD_PREFIX = "leaderboard"

# Depth of the previous-period board used to compute rank changes.
PREVIOUS_BOARD_DEPTH = 100
RANKING_BOARD_DEPTH = 1000
WARMUP_BOARD_LIMIT = 50

# Share of the next-period forecast attributed to each commission source.
FORECAST_SHARES: Tuple[Tuple[CommissionType, float], ...] = (
    (CommissionType.PERSONAL_SALES, 0.60),
    (CommissionType.TEAM_BONUS, 0.25),
    (CommissionType.DIRECT_REFERRAL, 0.15),
)
ACTUAL_TO_DATE_SHARE = 0.7
CAPACITY_MULTIPLIER = 3


def commission_from_performance(
    personal: PersonalPerformance, team: TeamPerformance, referral: ReferralPerformance, role: TeamRole
) -> float:
    """Estimated commission of a period from its metric blocks."""
    return (
        personal.sales_amount * commission_rate(CommissionType.PERSONAL_SALES, role)
        + team.team_sales * commission_rate(CommissionType.TEAM_BONUS, role)
        + referral.direct_referrals * DIRECT_REFERRAL_REWARD
    )


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _previous_month_window(now: datetime) -> Tuple[datetime, datetime]:
    this_month = month_start(now)
    return month_start(this_month - timedelta(days=1)), this_month - timedelta(microseconds=1)


class PerformanceService:
    """Service computing and caching performance figures."""

    def __init__(
        self,
        session: AsyncSession,
        repos: Optional[SqlRepoBundle] = None,
        cache: Optional[TTLCache] = None,
    ):
        self.session = session
        self.repos = repos or build_sql_repos_from_session(session=session)
        self.cache = cache if cache is not None else performance_cache
        self.ttl = settings.performance_cache

    async def _require_user(self, user_id: str) -> User:
        user = await self.repos.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    # ------------------------------------------------------------------
    # Metric blocks
    # ------------------------------------------------------------------

    async def calculate_personal_performance(self, user_id: str, period: str) -> PersonalPerformance:
        """Sales the user made themself within ``period``."""
        key = f"personal_performance:{user_id}:{period}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        orders = self.repos.orders
        start, end = parse_period(period)
        sales, order_count = await orders.sales_summary([user_id], start, end)

        buyer_counts = await orders.buyer_order_counts(user_id, start, end)
        first_purchases = await orders.first_purchase_dates(user_id, list(buyer_counts))
        new_customers = sum(1 for first in first_purchases.values() if start <= first <= end)
        repeat_buyers = sum(1 for count in buyer_counts.values() if count >= 2)

        now = datetime.now(timezone.utc)
        month_to_date, _ = await orders.sales_summary([user_id], month_start(now), now)
        year_to_date, _ = await orders.sales_summary([user_id], year_start(now), now)

        result = PersonalPerformance(
            sales_amount=sales,
            order_count=order_count,
            new_customers=new_customers,
            repeat_rate=_ratio(repeat_buyers, len(buyer_counts)),
            average_order_value=_ratio(sales, order_count),
            month_to_date=month_to_date,
            year_to_date=year_to_date,
        )
        self.cache.set(key, result, self.ttl.performance_metrics_ttl)
        return result

    async def calculate_team_performance(self, user_id: str, period: str) -> TeamPerformance:
        """Aggregates over every descendant of the user."""
        key = f"team_performance:{user_id}:{period}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        start, end = parse_period(period)
        members = await self.repos.users.team_members(user_id)
        member_ids = [member.id for member in members]

        team_sales, team_orders = await self.repos.orders.sales_summary(member_ids, start, end)
        new_members = await self.repos.users.children_count(user_id, start, end)
        active_sellers = await self.repos.orders.active_seller_count(member_ids, start, end)

        now = datetime.now(timezone.utc)
        month_sales = await self.repos.orders.sales_by_seller(month_start(now), now, member_ids)
        by_depth: Dict[int, List[str]] = defaultdict(list)
        for member in members:
            depth = depth_below(member.team_path, user_id)
            if depth is not None:
                by_depth[depth].append(member.id)
        distribution = [
            LevelDistributionItem(
                level=depth,
                member_count=len(ids),
                sales=sum(month_sales.get(member_id, 0.0) for member_id in ids),
            )
            for depth, ids in sorted(by_depth.items())
        ]

        result = TeamPerformance(
            team_sales=team_sales,
            team_orders=team_orders,
            new_members=new_members,
            active_rate=_ratio(active_sellers, len(members)),
            productivity=_ratio(team_sales, len(members)),
            level_distribution=distribution,
        )
        self.cache.set(key, result, self.ttl.performance_metrics_ttl)
        return result

    async def calculate_referral_performance(self, user_id: str, period: str) -> ReferralPerformance:
        """Figures about the user's direct and second-level referrals."""
        key = f"referral_performance:{user_id}:{period}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        start, end = parse_period(period)
        children = await self.repos.users.children(user_id)
        grandchildren = await self.repos.users.grandchildren(user_id)
        child_ids = [child.id for child in children]

        direct_sales, _ = await self.repos.orders.sales_summary(child_ids, start, end)
        indirect_sales, _ = await self.repos.orders.sales_summary([g.id for g in grandchildren], start, end)

        recent = await self.repos.users.children_count(user_id, start, end)
        previous = await self.repos.users.children_count(
            user_id, start - timedelta(days=30), start - timedelta(microseconds=1)
        )
        active = await self.repos.orders.active_seller_count(child_ids, start, end)

        result = ReferralPerformance(
            direct_referrals=len(children),
            indirect_referrals=len(grandchildren),
            referral_revenue=direct_sales + INDIRECT_REFERRAL_SHARE * indirect_sales,
            network_growth=_ratio(recent - previous, previous),
            active_referrals=active,
            conversion_rate=_ratio(active, len(children)),
        )
        self.cache.set(key, result, self.ttl.performance_metrics_ttl)
        return result

    async def get_performance_metrics(self, user_id: str, period: str) -> PerformanceMetrics:
        return PerformanceMetrics(
            user_id=user_id,
            period=period,
            personal=await self.calculate_personal_performance(user_id, period),
            team=await self.calculate_team_performance(user_id, period),
            referral=await self.calculate_referral_performance(user_id, period),
        )

    # ------------------------------------------------------------------
    # Leaderboards
    # ------------------------------------------------------------------

    async def _scores(self, board_type: LeaderboardType, period: str) -> List[Tuple[User, float]]:
        start, end = parse_period(period)
        users_repo = self.repos.users

        if board_type == LeaderboardType.personal:
            users = await users_repo.active_users()
            sales = await self.repos.orders.sales_by_seller(start, end, [user.id for user in users])
            return [(user, sales.get(user.id, 0.0)) for user in users]

        if board_type == LeaderboardType.team:
            scored = []
            for leader in await users_repo.active_users(TEAM_LEADER_LEVELS):
                member_ids = await users_repo.team_member_ids(leader.id)
                team_sales, _ = await self.repos.orders.sales_summary(member_ids, start, end)
                scored.append((leader, team_sales))
            return scored

        users = await users_repo.active_users()
        counts = await users_repo.children_counts([user.id for user in users])
        return [(user, float(counts.get(user.id, 0))) for user in users]

    async def _raw_leaderboard(self, board_type: LeaderboardType, period: str, limit: int) -> List[LeaderboardEntry]:
        scored = await self._scores(board_type, period)
        scored.sort(key=lambda pair: (-pair[1], pair[0].id))
        return [
            LeaderboardEntry(
                user_id=user.id,
                nickname=user.nickname,
                role=role_for_level(user.level),
                level=UserLevel(user.level),
                value=value,
                rank=rank,
            )
            for rank, (user, value) in enumerate(scored[:limit], start=1)
        ]

    async def get_performance_leaderboard(
        self, board_type: LeaderboardType, period: str, limit: int = 50
    ) -> List[LeaderboardEntry]:
        """Ranked board of ``board_type`` with rank changes against the previous month."""
        board_type = LeaderboardType(board_type)
        key = f"{LEADERBOARD_PREFIX}:{board_type.value}:{period}:{limit}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        board = await self._raw_leaderboard(board_type, period, limit)
        previous_period = last_period(period)
        if previous_period is not None:
            previous = await self._raw_leaderboard(board_type, previous_period, PREVIOUS_BOARD_DEPTH)
            previous_ranks = {entry.user_id: entry.rank for entry in previous}
            for entry in board:
                if entry.user_id in previous_ranks:
                    entry.change = previous_ranks[entry.user_id] - entry.rank

        self.cache.set(key, board, self.ttl.leaderboard_ttl)
        return board

    async def get_leaderboard_ranking(
        self, user_id: str, board_type: LeaderboardType, period: str
    ) -> LeaderboardRanking:
        board = await self.get_performance_leaderboard(board_type, period, RANKING_BOARD_DEPTH)
        for entry in board:
            if entry.user_id == user_id:
                total = len(board)
                percentile = round((total - entry.rank + 1) / total * 100, 2)
                return LeaderboardRanking(rank=entry.rank, total=total, percentile=percentile, item=entry)
        return LeaderboardRanking(rank=-1, total=0, percentile=0.0)

    # ------------------------------------------------------------------
    # Promotion progress
    # ------------------------------------------------------------------

    async def monthly_growth_rate(self, user_id: str) -> float:
        """Current month sales against the whole previous month, 0 without a baseline."""
        now = datetime.now(timezone.utc)
        current, _ = await self.repos.orders.sales_summary([user_id], month_start(now), now)
        last_start, last_end = _previous_month_window(now)
        previous, _ = await self.repos.orders.sales_summary([user_id], last_start, last_end)
        return _ratio(current - previous, previous)

    async def predict_promotion_time(
        self, user_id: str, items: Sequence[RequirementProgress], growth: Optional[float] = None
    ) -> Optional[int]:
        """Days until every requirement is met at the current growth, None when unknowable."""
        if all(item.met for item in items):
            return 0
        if growth is None:
            growth = await self.monthly_growth_rate(user_id)
        if growth <= 0:
            return None

        estimates = []
        for item in items:
            if item.met or item.current <= 0:
                continue
            daily = item.current * growth / 30
            estimates.append(math.ceil((item.required - item.current) / daily))
        return max(estimates) if estimates else None

    async def get_upgrade_progress(self, user_id: str, target_role: Optional[TeamRole] = None) -> UpgradeProgress:
        user = await self._require_user(user_id)
        current_role = role_for_level(user.level)
        if target_role is None:
            target_role = next_role(current_role)
            if target_role is None:
                raise InvalidStateError(f"User {user_id} already holds the highest role")
        elif role_rank(target_role) <= role_rank(current_role):
            raise ValidationFailedError(f"Target role {target_role.value} is not above {current_role.value}")

        requirement = LEVEL_REQUIREMENTS[target_role]
        personal = await self.calculate_personal_performance(user_id, format_month())
        measured: List[Tuple[str, float, float]] = [
            ("monthly_sales", personal.sales_amount, requirement.min_monthly_sales)
        ]
        if requirement.min_direct_members > 0:
            direct = await self.repos.users.children_count(user_id)
            measured.append(("direct_members", direct, requirement.min_direct_members))
        if requirement.lower_role is not None:
            lower_level = level_for_role(requirement.lower_role)
            members = await self.repos.users.team_members(user_id)
            lower_count = sum(1 for member in members if member.level == lower_level)
            measured.append(
                (f"{requirement.lower_role.value.lower()}_count", lower_count, requirement.min_lower_role_count)
            )

        items = [
            RequirementProgress(
                requirement=name,
                current=current,
                required=required,
                percentage=min(_ratio(current, required) * 100, 100.0) if required else 100.0,
                met=current >= required,
            )
            for name, current, required in measured
        ]
        growth = await self.monthly_growth_rate(user_id)
        return UpgradeProgress(
            current_role=current_role,
            target_role=target_role,
            progress_percentage=sum(item.percentage for item in items) / len(items),
            requirements=items,
            estimated_days=await self.predict_promotion_time(user_id, items, growth),
            monthly_growth_rate=growth,
        )

    # ------------------------------------------------------------------
    # Commission forecast
    # ------------------------------------------------------------------

    async def _best_monthly_sales(self, user_id: str) -> float:
        months: Dict[Tuple[int, int], float] = defaultdict(float)
        for created_at, amount in await self.repos.orders.sales_rows(user_id):
            months[(created_at.year, created_at.month)] += amount
        return max(months.values(), default=0.0)

    async def _estimated_commission(self, user_id: str, period: str, role: TeamRole) -> float:
        return commission_from_performance(
            await self.calculate_personal_performance(user_id, period),
            await self.calculate_team_performance(user_id, period),
            await self.calculate_referral_performance(user_id, period),
            role,
        )

    async def predict_commission(self, user_id: str, period: str) -> CommissionForecast:
        key = f"commission_forecast:{user_id}:{period}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        user = await self._require_user(user_id)
        role = role_for_level(user.level)
        personal = await self.calculate_personal_performance(user_id, period)
        team = await self.calculate_team_performance(user_id, period)
        referral = await self.calculate_referral_performance(user_id, period)

        current = commission_from_performance(personal, team, referral, role)
        growth = await self.monthly_growth_rate(user_id)
        projected = current * (1 + growth)

        current_by_type = {
            CommissionType.PERSONAL_SALES: personal.sales_amount * commission_rate(CommissionType.PERSONAL_SALES, role),
            CommissionType.TEAM_BONUS: team.team_sales * commission_rate(CommissionType.TEAM_BONUS, role),
            CommissionType.DIRECT_REFERRAL: referral.direct_referrals * DIRECT_REFERRAL_REWARD,
        }
        breakdown = [
            ForecastBreakdownItem(
                type=commission_type,
                current=current_by_type[commission_type],
                projected=projected * share,
                percentage=share * 100,
            )
            for commission_type, share in FORECAST_SHARES
        ]

        max_capacity = CAPACITY_MULTIPLIER * await self._best_monthly_sales(user_id)
        this_month = await self._estimated_commission(user_id, format_month(), role)
        utilization = _ratio(this_month, max_capacity)

        result = CommissionForecast(
            current_period=CurrentPeriodForecast(
                estimated_commission=current,
                actual_to_date=current * ACTUAL_TO_DATE_SHARE,
                projection=current,
            ),
            next_period=NextPeriodForecast(
                estimated_commission=projected,
                confidence=min(85.0, 50 + growth * 100) if growth > 0 else 30.0,
            ),
            breakdown=breakdown,
            capacity_analysis=CommissionCapacity(
                max_capacity=max_capacity,
                utilization_rate=utilization,
                growth_potential=max(0.0, 1 - utilization),
            ),
        )
        self.cache.set(key, result, self.ttl.commission_data_ttl)
        return result

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    def clear_user_cache(self, user_id: str) -> int:
        """Drop the user's cached figures and every leaderboard."""
        removed = sum(self.cache.delete_prefix(f"{prefix}:{user_id}:") for prefix in USER_KEY_PREFIXES)
        removed += self.cache.delete_prefix(f"{LEADERBOARD_PREFIX}:")
        logger.debug(f"Cleared {removed} cache entries for user {user_id}")
        return removed

    async def warmup_cache(self, user_ids: Sequence[str]) -> WarmupResult:
        period = format_month()
        result = WarmupResult(warmed=0)
        for user_id in user_ids:
            try:
                await self.calculate_personal_performance(user_id, period)
                await self.calculate_team_performance(user_id, period)
                await self.calculate_referral_performance(user_id, period)
            except Exception as e:
                logger.warning(f"Cache warmup failed for user {user_id}: {e}", exc_info=True)
                result.failed.append(user_id)
                continue
            result.warmed += 1

        for board_type in LeaderboardType:
            await self.get_performance_leaderboard(board_type, period, WARMUP_BOARD_LIMIT)
        logger.info(f"Performance cache warmed for {result.warmed} of {len(user_ids)} users")
        return result

    def cache_stats(self) -> CacheStats:
        self.cache.cleanup()
        keys = sorted(self.cache.keys())
        by_prefix: Dict[str, int] = defaultdict(int)
        for key in keys:
            by_prefix[key.split(":", 1)[0]] += 1
        return CacheStats(size=len(keys), keys=keys, by_prefix=dict(by_prefix))

    async def validate_performance_data(self, user_id: str, period: str) -> ValidationReport:
        """Sanity-check the computed figures of a user and period."""
        report = ValidationReport(is_valid=True)
        if await self.repos.users.get_by_id(user_id) is None:
            report.errors.append(f"user {user_id} not found")
            report.is_valid = False
            return report

        if not is_month_or_year(period):
            report.errors.append(f"invalid period format {period!r}, expected YYYY-MM or YYYY")

        personal = await self.calculate_personal_performance(user_id, period)
        if personal.sales_amount < 0:
            report.errors.append("sales amount is negative")
        if personal.order_count < 0:
            report.errors.append("order count is negative")
        if personal.average_order_value < 0:
            report.errors.append("average order value is negative")
        if not 0 <= personal.repeat_rate <= 1:
            report.warnings.append("repeat rate outside 0..1")

        team = await self.calculate_team_performance(user_id, period)
        if team.team_sales < personal.sales_amount:
            report.warnings.append("team sales below personal sales")
        if not 0 <= team.active_rate <= 1:
            report.warnings.append("active rate outside 0..1")

        report.is_valid = not report.errors
        return report

    async def _rank_progress(self, user: User) -> RankProgress:
        current_role = role_for_level(user.level)
        target = next_role(current_role)
        if target is None:
            return RankProgress(current_role=current_role, progress_percentage=100.0)
        progress = await self.get_upgrade_progress(user.id, target)
        return RankProgress(
            current_role=current_role,
            next_role=target,
            progress_percentage=progress.progress_percentage,
            requirements_met=[item.requirement for item in progress.requirements if item.met],
            requirements_pending=[item.requirement for item in progress.requirements if not item.met],
        )

    async def rebuild_performance_metrics(self, user_id: str, period: str) -> RebuildResult:
        """Validate, then recompute the user's figures from scratch."""
        self.clear_user_cache(user_id)
        report = await self.validate_performance_data(user_id, period)
        if not report.is_valid:
            return RebuildResult(success=False, message="validation failed: " + "; ".join(report.errors))

        self.clear_user_cache(user_id)
        user = await self._require_user(user_id)
        metrics = RebuiltMetrics(
            user_id=user_id,
            period=period,
            personal=await self.calculate_personal_performance(user_id, period),
            team=await self.calculate_team_performance(user_id, period),
            referral=await self.calculate_referral_performance(user_id, period),
            rank_progress=await self._rank_progress(user),
        )
        self.clear_user_cache(user_id)
        logger.info(f"Performance metrics rebuilt for user {user_id}, period {period}")
        return RebuildResult(success=True, message="performance metrics rebuilt", metrics=metrics)
