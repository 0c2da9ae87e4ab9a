"""
Team management service.

Maintains the referral network and builds team-level views on top of the
performance engine: member listings, the network tree, team statistics,
settled commission statements, promotions and status changes.
"""

from __future__ import annotations

import json
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database.entities.commissions import CommissionCalculation
from backoffice.core.database.entities.team_actions import TeamActionLog
from backoffice.core.database.entities.users import User
from backoffice.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from backoffice.core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationFailedError
from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import (
    CommissionStatus,
    CommissionType,
    TeamActionType,
    TeamRole,
    UserLevel,
    UserStatus,
)
from backoffice.core.models.domain.network import child_path, depth_below, path_segments, referral_chain
from backoffice.core.models.domain.periods import format_month, is_month_or_year, last_period, month_start, parse_period
from backoffice.core.models.domain.team_rules import (
    DIRECT_REFERRAL_REWARD,
    ROLE_LADDER,
    SETTLEMENT_LEVEL_BONUS_RATES,
    SETTLEMENT_PERSONAL_RATE,
    SETTLEMENT_TEAM_RATE,
    level_for_role,
    role_for_level,
    role_permissions,
    role_rank,
)
from backoffice.core.models.io.common import Page, Pagination
from backoffice.core.models.io.team import (
    CombinedPerformance,
    CommissionDetailItem,
    CommissionRead,
    GrowthTrendPoint,
    LevelStatistics,
    NetworkNode,
    PromoteResult,
    ReferralResult,
    RoleCount,
    RolePermissions,
    RoleStatistics,
    TeamActionRead,
    TeamMemberDetail,
    TeamMemberRead,
    TeamOverview,
    TeamRankingEntry,
    TeamStatistics,
    TeamStructure,
    TopPerformer,
)
from backoffice.core.monitoring import log_commission_calculation
from backoffice.server.services.performance import PerformanceService

logger = get_logger(__name__)

TOP_PERFORMERS = 5
TREND_MONTHS = 3

_STATUS_ACTIONS: Dict[UserStatus, TeamActionType] = {
    UserStatus.ACTIVE: TeamActionType.ACTIVATE,
    UserStatus.INACTIVE: TeamActionType.SUSPEND,
    UserStatus.SUSPENDED: TeamActionType.SUSPEND,
    UserStatus.BANNED: TeamActionType.TERMINATE,
}

_REFERRAL_TYPES = (CommissionType.DIRECT_REFERRAL.value, CommissionType.INDIRECT_REFERRAL.value)
_BONUS_TYPES = (CommissionType.LEVEL_BONUS.value, CommissionType.PERFORMANCE_BONUS.value)


def _levels_of_role(role: TeamRole) -> List[UserLevel]:
    return [level for level in UserLevel if role_for_level(level) == role]


def _month_window(period: str) -> List[str]:
    """The ``TREND_MONTHS`` months ending with ``period`` (or the current month), oldest first."""
    months = [period if is_month_or_year(period) and len(period) == 7 else format_month()]
    while len(months) < TREND_MONTHS:
        months.insert(0, last_period(months[0]))
    return months


class TeamService:
    """Service for referral network and team operations."""

    def __init__(self, session: AsyncSession, repos: Optional[SqlRepoBundle] = None):
        self.session = session
        self.repos = repos or build_sql_repos_from_session(session=session)
        self.performance = PerformanceService(session, self.repos)

    async def _require_user(self, user_id: str) -> User:
        user = await self.repos.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def _invalidate(self, *user_ids: str) -> None:
        for user_id in user_ids:
            self.performance.clear_user_cache(user_id)

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    async def create_referral_relationship(self, referrer_id: str, referee_id: str) -> ReferralResult:
        """Attach ``referee_id`` (and its own subtree) under ``referrer_id``."""
        if not referrer_id or not referee_id:
            raise ValidationFailedError("Both referrer_id and referee_id are required")
        if referrer_id == referee_id:
            raise ValidationFailedError("A user cannot refer themself")

        referee = await self._require_user(referee_id)
        if referee.parent_id:
            raise ConflictError(f"User {referee_id} already has a referrer")
        referrer = await self._require_user(referrer_id)
        if referee_id in path_segments(referrer.team_path):
            raise ValidationFailedError(f"User {referrer_id} is inside the team of {referee_id}")

        try:
            old_prefix = referee.subtree_path
            level_shift = referrer.team_level + 1 - referee.team_level
            referee.parent_id = referrer.id
            referee.team_level = referrer.team_level + 1
            referee.team_path = child_path(referrer.team_path, referrer.id)
            await self.repos.users.stage(referee)

            new_prefix = referee.subtree_path
            for member in await self.repos.users.team_members(referee.id):
                member.team_path = new_prefix + member.team_path[len(old_prefix) :]
                member.team_level += level_shift
                await self.repos.users.stage(member)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        self._invalidate(referee.id, *path_segments(referee.team_path))
        logger.info(f"User {referee_id} joined the team of {referrer_id}")
        return ReferralResult(
            referrer_id=referrer.id,
            referee_id=referee.id,
            relationship_level=referee.team_level,
            referral_path=referral_chain(referee.team_path, referee.id),
        )

    async def get_team_members(
        self,
        user_id: str,
        *,
        role: Optional[TeamRole] = None,
        status: Optional[UserStatus] = None,
        keyword: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Page[TeamMemberRead]:
        await self._require_user(user_id)
        users = self.repos.users
        stmt = users.search_stmt(status=status, keyword=keyword, base=users.team_stmt(user_id))
        if role is not None:
            stmt = stmt.where(User.level.in_(_levels_of_role(role)))  # type: ignore
        stmt = stmt.order_by(User.team_level, User.created_at)
        rows, total = await users.paginate(stmt, page, per_page)
        return Page[TeamMemberRead](
            items=[
                TeamMemberRead(
                    user_id=row.id,
                    nickname=row.nickname,
                    phone=row.phone,
                    level=row.level,
                    role=role_for_level(row.level),
                    status=row.status,
                    parent_id=row.parent_id,
                    team_level=row.team_level,
                    depth=depth_below(row.team_path, user_id) or 0,
                    joined_at=row.created_at,
                )
                for row in rows
            ],
            pagination=Pagination.build(page, per_page, total),
        )

    async def get_team_member(self, user_id: str) -> TeamMemberDetail:
        user = await self._require_user(user_id)
        parent = await self.repos.users.get_by_id(user.parent_id) if user.parent_id else None
        now = datetime.now(timezone.utc)
        personal_sales, _ = await self.repos.orders.sales_summary([user.id], month_start(now), now)
        member_ids = await self.repos.users.team_member_ids(user.id)
        team_sales, _ = await self.repos.orders.sales_summary(member_ids, month_start(now), now)
        return TeamMemberDetail(
            user_id=user.id,
            nickname=user.nickname,
            phone=user.phone,
            level=user.level,
            role=role_for_level(user.level),
            status=user.status,
            parent_id=user.parent_id,
            parent_nickname=parent.nickname if parent else None,
            team_level=user.team_level,
            personal_sales=personal_sales,
            team_sales=team_sales,
            direct_count=await self.repos.users.children_count(user.id),
            team_count=len(member_ids),
            joined_at=user.created_at,
        )

    async def get_network_tree(self, user_id: str, max_depth: int = 9) -> NetworkNode:
        """Referral tree below the user, cut at ``max_depth`` levels.

        Team sales and counts of every node cover its whole subtree, including
        members below the cut.
        """
        root = await self._require_user(user_id)
        members = await self.repos.users.team_members(user_id)
        now = datetime.now(timezone.utc)
        sales = await self.repos.orders.sales_by_seller(
            month_start(now), now, [root.id] + [member.id for member in members]
        )

        children: Dict[str, List[User]] = defaultdict(list)
        for member in members:
            children[member.parent_id].append(member)

        subtree: Dict[str, tuple] = {}

        def totals(node_id: str) -> tuple:
            """Return ``(team sales, team count)`` below ``node_id``."""
            if node_id not in subtree:
                team_sales, team_count = 0.0, 0
                for child in children.get(node_id, []):
                    child_sales, child_count = totals(child.id)
                    team_sales += sales.get(child.id, 0.0) + child_sales
                    team_count += 1 + child_count
                subtree[node_id] = (team_sales, team_count)
            return subtree[node_id]

        def build(user: User, depth: int) -> NetworkNode:
            team_sales, team_count = totals(user.id)
            node = NetworkNode(
                user_id=user.id,
                nickname=user.nickname,
                role=role_for_level(user.level),
                level=depth,
                personal_sales=sales.get(user.id, 0.0),
                team_sales=team_sales,
                direct_count=len(children.get(user.id, [])),
                team_count=team_count,
                status=user.status,
            )
            if depth < max_depth:
                node.children = [build(child, depth + 1) for child in children.get(user.id, [])]
            return node

        return build(root, 1)

    async def get_team_structure(self, user_id: str) -> TeamStructure:
        leader = await self._require_user(user_id)
        members = await self.repos.users.team_members(user_id)
        role_counts: Dict[TeamRole, int] = defaultdict(int)
        for member in members:
            role_counts[role_for_level(member.level)] += 1
        depths = [depth_below(member.team_path, user_id) or 0 for member in members]
        return TeamStructure(
            leader_id=leader.id,
            leader_nickname=leader.nickname,
            leader_role=role_for_level(leader.level),
            total_members=len(members),
            active_members=sum(1 for member in members if member.status == UserStatus.ACTIVE),
            direct_members=sum(1 for member in members if member.parent_id == user_id),
            max_depth=max(depths, default=0),
            role_breakdown=[RoleCount(role=role, count=role_counts[role]) for role in ROLE_LADDER if role_counts[role]],
        )

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def calculate_team_statistics(self, user_id: str, period: Optional[str] = None) -> TeamStatistics:
        period = period or format_month()
        cache = self.performance.cache
        key = f"team_statistics:{user_id}:{period}"
        cached = cache.get(key)
        if cached is not None:
            return cached

        await self._require_user(user_id)
        members = await self.repos.users.team_members(user_id)
        member_ids = [member.id for member in members]
        start, end = parse_period(period)
        sales = await self.repos.orders.sales_by_seller(start, end, member_ids)
        total_sales = sum(sales.values())

        previous = last_period(period)
        growth_rate = 0.0
        if previous is not None:
            previous_start, previous_end = parse_period(previous)
            previous_sales, _ = await self.repos.orders.sales_summary(member_ids, previous_start, previous_end)
            if previous_sales:
                growth_rate = (total_sales - previous_sales) / previous_sales

        overview = TeamOverview(
            total_members=len(members),
            active_members=sum(1 for member in members if member.status == UserStatus.ACTIVE),
            total_sales=total_sales,
            average_performance=total_sales / len(members) if members else 0.0,
            growth_rate=growth_rate,
        )

        by_depth: Dict[int, List[str]] = defaultdict(list)
        by_role: Dict[TeamRole, List[str]] = defaultdict(list)
        for member in members:
            by_depth[depth_below(member.team_path, user_id) or 0].append(member.id)
            by_role[role_for_level(member.level)].append(member.id)

        level_distribution = []
        for depth, ids in sorted(by_depth.items()):
            contribution = sum(sales.get(member_id, 0.0) for member_id in ids)
            level_distribution.append(
                LevelStatistics(
                    level=depth,
                    member_count=len(ids),
                    sales_contribution=contribution,
                    percentage=contribution / total_sales * 100 if total_sales else 0.0,
                )
            )

        role_distribution = []
        for role in ROLE_LADDER:
            ids = by_role.get(role)
            if not ids:
                continue
            role_sales = sum(sales.get(member_id, 0.0) for member_id in ids)
            role_distribution.append(
                RoleStatistics(role=role, count=len(ids), sales=role_sales, avg_performance=role_sales / len(ids))
            )

        ranked = sorted(members, key=lambda member: (-sales.get(member.id, 0.0), member.id))[:TOP_PERFORMERS]
        top_performers = [
            TopPerformer(
                user_id=member.id,
                nickname=member.nickname,
                role=role_for_level(member.level),
                sales=sales.get(member.id, 0.0),
                team_size=await self.repos.users.team_count(member.id),
            )
            for member in ranked
        ]

        growth_trends = []
        for month in _month_window(period):
            month_from, month_to = parse_period(month)
            month_sales, _ = await self.repos.orders.sales_summary(member_ids, month_from, month_to)
            active = await self.repos.orders.active_seller_count(member_ids, month_from, month_to)
            growth_trends.append(
                GrowthTrendPoint(
                    period=month,
                    sales=month_sales,
                    new_members=sum(1 for member in members if month_from <= member.created_at <= month_to),
                    active_rate=active / len(members) if members else 0.0,
                )
            )

        result = TeamStatistics(
            period=period,
            overview=overview,
            level_distribution=level_distribution,
            role_distribution=role_distribution,
            top_performers=top_performers,
            growth_trends=growth_trends,
        )
        cache.set(key, result, self.performance.ttl.team_stats_ttl)
        return result

    async def get_performance_metrics(self, user_id: str, period: str) -> CombinedPerformance:
        user = await self._require_user(user_id)
        metrics = await self.performance.get_performance_metrics(user_id, period)
        return CombinedPerformance(**metrics.model_dump(), role=role_for_level(user.level))

    async def calculate_team_ranking(self, user_id: str, period: str) -> List[TeamRankingEntry]:
        """Team members ranked by their own sales in ``period``."""
        await self._require_user(user_id)
        members = await self.repos.users.team_members(user_id)
        start, end = parse_period(period)
        sales = await self.repos.orders.sales_by_seller(start, end, [member.id for member in members])
        ranked = sorted(members, key=lambda member: (-sales.get(member.id, 0.0), member.id))
        return [
            TeamRankingEntry(
                user_id=member.id,
                nickname=member.nickname,
                role=role_for_level(member.level),
                sales=sales.get(member.id, 0.0),
                rank=rank,
            )
            for rank, member in enumerate(ranked, start=1)
        ]

    # ------------------------------------------------------------------
    # Commission statements
    # ------------------------------------------------------------------

    async def calculate_commission(self, user_id: str, period: Optional[str] = None) -> CommissionRead:
        """Compute and persist the commission statement of a user for a month.

        Raises:
            NotFoundError: Unknown user
            ValidationFailedError: Period is not ``YYYY-MM`` or ``YYYY``
            InvalidStateError: The statement of this period is already PAID
        """
        period = period or format_month()
        if not is_month_or_year(period):
            raise ValidationFailedError(f"Invalid period {period!r}, expected YYYY-MM or YYYY")
        user = await self._require_user(user_id)
        role = role_for_level(user.level)

        existing = await self.repos.commissions.get_for_period(user_id, period)
        if existing is not None and existing.status == CommissionStatus.PAID:
            raise InvalidStateError(f"Commission of {user_id} for {period} is already paid")

        personal = await self.performance.calculate_personal_performance(user_id, period)
        team = await self.performance.calculate_team_performance(user_id, period)
        referral = await self.performance.calculate_referral_performance(user_id, period)

        details = [
            CommissionDetailItem(
                type=CommissionType.PERSONAL_SALES.value,
                amount=personal.sales_amount * SETTLEMENT_PERSONAL_RATE,
                rate=SETTLEMENT_PERSONAL_RATE,
                base_amount=personal.sales_amount,
                description="Personal sales commission",
            ),
            CommissionDetailItem(
                type=CommissionType.DIRECT_REFERRAL.value,
                amount=referral.direct_referrals * DIRECT_REFERRAL_REWARD,
                rate=DIRECT_REFERRAL_REWARD,
                base_amount=referral.direct_referrals,
                description="Direct referral reward",
            ),
            CommissionDetailItem(
                type=CommissionType.TEAM_BONUS.value,
                amount=team.team_sales * SETTLEMENT_TEAM_RATE,
                rate=SETTLEMENT_TEAM_RATE,
                base_amount=team.team_sales,
                description="Team sales bonus",
            ),
        ]
        level_rate = SETTLEMENT_LEVEL_BONUS_RATES[role]
        if level_rate > 0:
            details.append(
                CommissionDetailItem(
                    type=CommissionType.LEVEL_BONUS.value,
                    amount=team.team_sales * level_rate,
                    rate=level_rate,
                    base_amount=team.team_sales,
                    description=f"{role.value} level bonus",
                )
            )

        def bucket(*types: str) -> float:
            return sum(item.amount for item in details if item.type in types)

        statement = existing or CommissionCalculation(user_id=user_id, period=period)
        statement.personal_commission = bucket(CommissionType.PERSONAL_SALES.value)
        statement.team_commission = bucket(CommissionType.TEAM_BONUS.value)
        statement.referral_commission = bucket(*_REFERRAL_TYPES)
        statement.bonus_commission = bucket(*_BONUS_TYPES)
        statement.total_commission = sum(item.amount for item in details)
        statement.status = CommissionStatus.CALCULATED
        statement.details = json.dumps([item.model_dump() for item in details])
        statement.calculated_at = datetime.now(timezone.utc)

        try:
            await self.repos.commissions.stage(statement)
            await self.session.commit()
            await self.session.refresh(statement)
        except Exception:
            await self.session.rollback()
            raise

        log_commission_calculation(user_id, period, statement.total_commission)
        logger.info(f"Commission for {user_id} in {period}: {statement.total_commission:.2f}")
        return CommissionRead.model_validate(statement)

    async def get_commission(self, user_id: str, period: str) -> CommissionRead:
        statement = await self.repos.commissions.get_for_period(user_id, period)
        if statement is None:
            raise NotFoundError(f"No commission for {user_id} in {period}")
        return CommissionRead.model_validate(statement)

    # ------------------------------------------------------------------
    # Member actions
    # ------------------------------------------------------------------

    async def _record_action(
        self,
        user: User,
        operator_id: str,
        action_type: TeamActionType,
        old_data: dict,
        new_data: dict,
        reason: Optional[str],
        notes: Optional[str] = None,
    ) -> TeamActionLog:
        action = TeamActionLog(
            user_id=user.id,
            operator_id=operator_id,
            action_type=action_type,
            old_data=json.dumps(old_data),
            new_data=json.dumps(new_data),
            reason=reason,
            notes=notes,
        )
        return await self.repos.team_actions.stage(action)

    async def promote_member(
        self,
        user_id: str,
        new_role: TeamRole,
        reason: str,
        operator_id: str,
        notes: Optional[str] = None,
    ) -> PromoteResult:
        """Move a member up the ladder once every requirement of ``new_role`` is met."""
        user = await self._require_user(user_id)
        old_role = role_for_level(user.level)
        if role_rank(new_role) <= role_rank(old_role):
            raise ValidationFailedError(f"{new_role.value} is not above the current role {old_role.value}")

        progress = await self.performance.get_upgrade_progress(user_id, new_role)
        pending = [item.requirement for item in progress.requirements if not item.met]
        if pending:
            raise InvalidStateError(f"User {user_id} does not meet: {', '.join(pending)}")

        old_level = UserLevel(user.level)
        try:
            user.level = level_for_role(new_role)
            await self.repos.users.stage(user)
            await self._record_action(
                user,
                operator_id,
                TeamActionType.PROMOTE,
                {"role": old_role.value, "level": old_level.value},
                {"role": new_role.value, "level": level_for_role(new_role).value},
                reason,
                notes,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        self._invalidate(user.id, *path_segments(user.team_path))
        logger.info(f"User {user_id} promoted from {old_role.value} to {new_role.value} by {operator_id}")
        return PromoteResult(user_id=user.id, old_role=old_role, new_role=new_role, level=user.level)

    async def update_member_status(
        self, user_id: str, status: UserStatus, reason: str, operator_id: str
    ) -> TeamActionRead:
        user = await self._require_user(user_id)
        old_status = UserStatus(user.status)
        if old_status == status:
            raise InvalidStateError(f"User {user_id} is already {status.value}")

        try:
            user.status = status
            await self.repos.users.stage(user)
            action = await self._record_action(
                user,
                operator_id,
                _STATUS_ACTIONS[status],
                {"status": old_status.value},
                {"status": status.value},
                reason,
            )
            await self.session.commit()
            await self.session.refresh(action)
        except Exception:
            await self.session.rollback()
            raise

        self.performance.cache.delete_prefix("leaderboard:")
        logger.info(f"User {user_id} status {old_status.value} -> {status.value} by {operator_id}")
        return TeamActionRead.model_validate(action)

    def get_role_permissions(self, role: TeamRole) -> RolePermissions:
        return RolePermissions(role=role, permissions=role_permissions(role))

    async def list_team_actions(self, user_id: str, page: int = 1, per_page: int = 20) -> Page[TeamActionRead]:
        stmt = self.repos.team_actions.for_user_stmt(user_id)
        rows, total = await self.repos.team_actions.paginate(stmt, page, per_page)
        return Page[TeamActionRead](
            items=[TeamActionRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, per_page, total),
        )
