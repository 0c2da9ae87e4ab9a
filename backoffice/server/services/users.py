"""
Admin user management service.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from typing import List, Literal, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database.entities.users import User
from backoffice.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from backoffice.core.errors import NotFoundError
from backoffice.core.logging_config import get_logger
from backoffice.core.models.domain.enums import (
    AuditLogType,
    PointsTransactionStatus,
    PointsTransactionType,
    UserLevel,
    UserStatus,
)
from backoffice.core.models.domain.periods import month_start
from backoffice.core.models.io.audit_logs import AdminContext
from backoffice.core.models.io.common import Page, Pagination
from backoffice.core.models.io.team import NetworkNode
from backoffice.core.models.io.users import (
    PointsTransactionRead,
    UserDetail,
    UserListItem,
    UserRead,
    UserUpdate,
)
from backoffice.server.services.audit import AuditService
from backoffice.server.services.performance import PerformanceService
from backoffice.server.services.team import TeamService

logger = get_logger(__name__)

MODULE = "users"
EXPORT_FIELDS = (
    "id",
    "nickname",
    "phone",
    "level",
    "status",
    "parent_id",
    "team_level",
    "points_balance",
    "created_at",
)
SUSPENDING_STATUSES = (UserStatus.SUSPENDED, UserStatus.BANNED)


def _plain(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return getattr(value, "value", value)


class UserAdminService:
    """Service behind the admin user pages."""

    def __init__(self, session: AsyncSession, repos: Optional[SqlRepoBundle] = None):
        self.session = session
        self.repos = repos or build_sql_repos_from_session(session=session)
        self.audit = AuditService(session, self.repos)

    async def _require_user(self, user_id: str) -> User:
        user = await self.repos.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def _search(
        self,
        level: Optional[UserLevel],
        status: Optional[UserStatus],
        keyword: Optional[str],
        created_from: Optional[datetime],
        created_to: Optional[datetime],
    ):
        return self.repos.users.search_stmt(
            level=level, status=status, keyword=keyword, created_from=created_from, created_to=created_to
        )

    async def list_users(
        self,
        *,
        level: Optional[UserLevel] = None,
        status: Optional[UserStatus] = None,
        keyword: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        sort_by: Literal["created_at", "total_sales", "direct_count"] = "created_at",
        sort_order: Literal["asc", "desc"] = "desc",
        page: int = 1,
        per_page: int = 20,
    ) -> Page[UserListItem]:
        stmt = self._search(level, status, keyword, created_from, created_to)
        sort_key = self.repos.users.sort_expression(sort_by)
        stmt = stmt.order_by(sort_key.asc() if sort_order == "asc" else sort_key.desc(), User.id)
        rows, total = await self.repos.users.paginate(stmt, page, per_page)

        ids = [row.id for row in rows]
        sales = await self.repos.orders.sales_by_seller(seller_ids=ids)
        direct = await self.repos.users.children_counts(ids)
        return Page[UserListItem](
            items=[
                UserListItem(
                    **UserRead.model_validate(row).model_dump(),
                    total_sales=sales.get(row.id, 0.0),
                    direct_count=direct.get(row.id, 0),
                )
                for row in rows
            ],
            pagination=Pagination.build(page, per_page, total),
        )

    async def get_user_detail(self, user_id: str) -> UserDetail:
        user = await self._require_user(user_id)
        parent = await self.repos.users.get_by_id(user.parent_id) if user.parent_id else None
        total_sales, total_orders = await self.repos.orders.sales_summary([user.id])
        now = datetime.now(timezone.utc)
        month_sales, _ = await self.repos.orders.sales_summary([user.id], month_start(now), now)
        return UserDetail(
            **UserRead.model_validate(user).model_dump(),
            parent=UserRead.model_validate(parent) if parent else None,
            direct_count=await self.repos.users.children_count(user.id),
            team_count=await self.repos.users.team_count(user.id),
            total_sales=total_sales,
            month_sales=month_sales,
            total_orders=total_orders,
        )

    async def update_user(self, user_id: str, data: UserUpdate, admin: AdminContext) -> UserRead:
        """Apply the fields set in ``data`` and audit the old and new values."""
        user = await self._require_user(user_id)
        changes = data.model_dump(exclude_unset=True)
        old_values = {field: _plain(getattr(user, field)) for field in changes}

        try:
            for field, value in changes.items():
                setattr(user, field, value)
            await self.repos.users.stage(user)
            await self.audit.record(
                admin,
                type=AuditLogType.UPDATE,
                module=MODULE,
                action="update_user",
                description=f"Updated user {user_id}",
                target_id=user_id,
                target_type="user",
                details={"old": old_values, "new": {field: _plain(value) for field, value in changes.items()}},
            )
            await self.session.commit()
            await self.session.refresh(user)
        except Exception:
            await self.session.rollback()
            raise

        if "level" in changes or "status" in changes:
            PerformanceService(self.session, self.repos).clear_user_cache(user_id)
        logger.info(f"User {user_id} updated by {admin.admin_id}: {sorted(changes)}")
        return UserRead.model_validate(user)

    async def toggle_user_status(
        self, user_id: str, status: UserStatus, reason: Optional[str], admin: AdminContext
    ) -> UserRead:
        user = await self._require_user(user_id)
        old_status = _plain(user.status)
        action_type = AuditLogType.SUSPEND if status in SUSPENDING_STATUSES else AuditLogType.ACTIVATE

        try:
            user.status = status
            await self.repos.users.stage(user)
            await self.audit.record(
                admin,
                type=action_type,
                module=MODULE,
                action="toggle_user_status",
                description=f"User {user_id} status {old_status} -> {status.value}",
                target_id=user_id,
                target_type="user",
                details={"old_status": old_status, "new_status": status.value, "reason": reason},
            )
            await self.session.commit()
            await self.session.refresh(user)
        except Exception:
            await self.session.rollback()
            raise

        PerformanceService(self.session, self.repos).clear_user_cache(user_id)
        return UserRead.model_validate(user)

    async def get_user_team(self, user_id: str, max_depth: int = 3) -> NetworkNode:
        return await TeamService(self.session, self.repos).get_network_tree(user_id, max_depth)

    async def list_points_transactions(
        self,
        user_id: str,
        *,
        type: Optional[PointsTransactionType] = None,
        status: Optional[PointsTransactionStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Page[PointsTransactionRead]:
        await self._require_user(user_id)
        stmt = self.repos.points.list_stmt(user_id=user_id, type=type, status=status, start=start, end=end)
        rows, total = await self.repos.points.paginate(stmt, page, per_page)
        return Page[PointsTransactionRead](
            items=[PointsTransactionRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, per_page, total),
        )

    async def export_users(
        self,
        admin: AdminContext,
        *,
        format: Literal["csv", "json"] = "csv",
        level: Optional[UserLevel] = None,
        status: Optional[UserStatus] = None,
        keyword: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> Tuple[str, str]:
        """Render the matching users and return ``(content, media type)``."""
        stmt = self._search(level, status, keyword, created_from, created_to).order_by(User.created_at)
        users: List[User] = list((await self.session.execute(stmt)).scalars().all())
        records = [{field: _plain(getattr(user, field)) for field in EXPORT_FIELDS} for user in users]

        if format == "json":
            content, media_type = json.dumps(records, ensure_ascii=False), "application/json"
        else:
            buffer = io.StringIO()
            writer = csv.DictWriter(buffer, fieldnames=EXPORT_FIELDS)
            writer.writeheader()
            writer.writerows(records)
            content, media_type = buffer.getvalue(), "text/csv"

        await self.audit.log_entry(
            admin,
            type=AuditLogType.EXPORT,
            module=MODULE,
            action="export_users",
            description=f"Exported {len(records)} users as {format}",
            details={"format": format, "count": len(records)},
        )
        return content, media_type
