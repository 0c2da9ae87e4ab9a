"""Unit tests for the admin user management service."""

import csv
import io
import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from backoffice.core.database.entities.points import PointsTransaction
from backoffice.core.errors import NotFoundError
from backoffice.core.models.domain.enums import (
    AuditLogType,
    OrderStatus,
    PointsTransactionStatus,
    PointsTransactionType,
    UserLevel,
    UserStatus,
)
from backoffice.core.models.io.users import UserUpdate
from backoffice.server.services.audit import AuditService
from backoffice.server.services.performance import performance_cache
from backoffice.server.services.users import EXPORT_FIELDS, UserAdminService

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def users(seed):
    await seed.user(
        "root", level=UserLevel.STAR_1, created_at=datetime(2025, 1, 1, tzinfo=timezone.utc), phone="0911222333"
    )
    await seed.user("a", "root", created_at=datetime(2025, 2, 1, tzinfo=timezone.utc), nickname="Amy")
    await seed.user("b", "root", created_at=datetime(2025, 3, 1, tzinfo=timezone.utc), status=UserStatus.SUSPENDED)
    await seed.user("c", "a", created_at=datetime(2025, 4, 1, tzinfo=timezone.utc))

    await seed.order("a", 900)
    await seed.order("c", 100)
    await seed.order("c", 5000, status=OrderStatus.CANCELLED)
    return seed


async def audit_entries(session, action: str):
    page = await AuditService(session).query_logs(action=action)
    return page.items


class TestListUsers:
    async def test_newest_first_by_default(self, session, users):
        page = await UserAdminService(session).list_users()

        assert page.pagination.total == 4
        assert [item.id for item in page.items] == ["c", "b", "a", "root"]

    async def test_items_carry_sales_and_direct_count(self, session, users):
        page = await UserAdminService(session).list_users(sort_by="created_at", sort_order="asc")
        by_id = {item.id: item for item in page.items}

        assert by_id["root"].direct_count == 2
        assert by_id["a"].total_sales == 900
        assert by_id["c"].total_sales == 100

    async def test_sort_by_total_sales(self, session, users):
        page = await UserAdminService(session).list_users(sort_by="total_sales")
        assert [item.id for item in page.items][:2] == ["a", "c"]

    async def test_sort_by_direct_count(self, session, users):
        page = await UserAdminService(session).list_users(sort_by="direct_count")
        assert [item.id for item in page.items][:2] == ["root", "a"]

    async def test_filters(self, session, users):
        service = UserAdminService(session)

        assert [item.id for item in (await service.list_users(status=UserStatus.SUSPENDED)).items] == ["b"]
        assert [item.id for item in (await service.list_users(level=UserLevel.STAR_1)).items] == ["root"]
        assert [item.id for item in (await service.list_users(keyword="Amy")).items] == ["a"]
        assert [item.id for item in (await service.list_users(keyword="0911")).items] == ["root"]

        recent = await service.list_users(created_from=datetime(2025, 2, 15, tzinfo=timezone.utc))
        assert {item.id for item in recent.items} == {"b", "c"}

    async def test_pagination(self, session, users):
        page = await UserAdminService(session).list_users(page=2, per_page=3)
        assert [item.id for item in page.items] == ["root"]
        assert page.pagination.total == 4


class TestUserDetail:
    async def test_detail(self, session, users):
        detail = await UserAdminService(session).get_user_detail("a")

        assert detail.parent.id == "root"
        assert detail.direct_count == 1
        assert detail.team_count == 1
        assert detail.total_sales == 900
        assert detail.month_sales == 900
        assert detail.total_orders == 1

    async def test_root_has_no_parent(self, session, users):
        detail = await UserAdminService(session).get_user_detail("root")
        assert detail.parent is None
        assert detail.team_count == 3

    async def test_unknown(self, session):
        with pytest.raises(NotFoundError):
            await UserAdminService(session).get_user_detail("ghost")

    async def test_user_team(self, session, users):
        tree = await UserAdminService(session).get_user_team("root", max_depth=2)
        assert {child.user_id for child in tree.children} == {"a", "b"}


class TestUpdateUser:
    async def test_only_given_fields_change(self, session, users, admin):
        updated = await UserAdminService(session).update_user("a", UserUpdate(remark="vip candidate"), admin)

        assert updated.remark == "vip candidate"
        assert updated.nickname == "Amy"

    async def test_audits_old_and_new_values(self, session, users, admin):
        await UserAdminService(session).update_user("a", UserUpdate(nickname="Amelia", level=UserLevel.VIP), admin)

        (entry,) = await audit_entries(session, "update_user")
        assert entry.type == AuditLogType.UPDATE
        assert entry.admin_id == "admin-1"
        assert entry.target_id == "a"
        details = json.loads(entry.details)
        assert details["old"] == {"nickname": "Amy", "level": "NORMAL"}
        assert details["new"] == {"nickname": "Amelia", "level": "VIP"}

    async def test_level_change_clears_cached_metrics(self, session, users, admin):
        performance_cache.set("personal_performance:a:2025-03", {"cached": True}, ttl=300)
        performance_cache.set("personal_performance:c:2025-03", {"cached": True}, ttl=300)
        assert performance_cache.get("personal_performance:a:2025-03") == {"cached": True}

        await UserAdminService(session).update_user("a", UserUpdate(level=UserLevel.STAR_1), admin)

        assert performance_cache.get("personal_performance:a:2025-03") is None
        assert performance_cache.get("personal_performance:c:2025-03") == {"cached": True}

    @pytest.mark.parametrize("field", ["level", "status", "points_balance"])
    async def test_null_for_required_column_is_rejected(self, field):
        with pytest.raises(ValidationError):
            UserUpdate.model_validate({field: None})

    async def test_nullable_columns_accept_null(self):
        assert UserUpdate.model_validate({"phone": None}).model_dump(exclude_unset=True) == {"phone": None}

    async def test_unknown_user(self, session, admin):
        with pytest.raises(NotFoundError):
            await UserAdminService(session).update_user("ghost", UserUpdate(remark="x"), admin)


class TestToggleStatus:
    @pytest.mark.parametrize(
        "status,audit_type",
        [
            (UserStatus.SUSPENDED, AuditLogType.SUSPEND),
            (UserStatus.BANNED, AuditLogType.SUSPEND),
            (UserStatus.INACTIVE, AuditLogType.ACTIVATE),
        ],
    )
    async def test_audit_type_follows_status(self, session, users, admin, status, audit_type):
        result = await UserAdminService(session).toggle_user_status("a", status, "policy", admin)

        assert result.status == status
        (entry,) = await audit_entries(session, "toggle_user_status")
        assert entry.type == audit_type
        assert json.loads(entry.details) == {"old_status": "ACTIVE", "new_status": status.value, "reason": "policy"}

    async def test_reactivate(self, session, users, admin):
        result = await UserAdminService(session).toggle_user_status("b", UserStatus.ACTIVE, None, admin)
        assert result.status == UserStatus.ACTIVE
        (entry,) = await audit_entries(session, "toggle_user_status")
        assert entry.type == AuditLogType.ACTIVATE


class TestPointsTransactions:
    async def test_lists_both_directions(self, session, users):
        session.add(
            PointsTransaction(
                transaction_no="CO1",
                to_user_id="a",
                amount=50,
                type=PointsTransactionType.COMMISSION,
                status=PointsTransactionStatus.COMPLETED,
            )
        )
        session.add(
            PointsTransaction(
                transaction_no="WI1",
                from_user_id="a",
                amount=20,
                type=PointsTransactionType.WITHDRAW,
                status=PointsTransactionStatus.PENDING,
            )
        )
        session.add(
            PointsTransaction(
                transaction_no="CO2",
                to_user_id="b",
                amount=70,
                type=PointsTransactionType.COMMISSION,
                status=PointsTransactionStatus.COMPLETED,
            )
        )
        await session.commit()
        service = UserAdminService(session)

        page = await service.list_points_transactions("a")
        assert {item.transaction_no for item in page.items} == {"CO1", "WI1"}

        withdrawals = await service.list_points_transactions("a", type=PointsTransactionType.WITHDRAW)
        assert [item.transaction_no for item in withdrawals.items] == ["WI1"]

    async def test_unknown_user(self, session):
        with pytest.raises(NotFoundError):
            await UserAdminService(session).list_points_transactions("ghost")


class TestExportUsers:
    async def test_csv(self, session, users, admin):
        content, media_type = await UserAdminService(session).export_users(admin, format="csv")

        assert media_type == "text/csv"
        rows = list(csv.DictReader(io.StringIO(content)))
        assert tuple(rows[0].keys()) == EXPORT_FIELDS
        assert [row["id"] for row in rows] == ["root", "a", "b", "c"]
        assert rows[0]["level"] == "STAR_1"

    async def test_json_with_filter(self, session, users, admin):
        content, media_type = await UserAdminService(session).export_users(
            admin, format="json", status=UserStatus.SUSPENDED
        )

        assert media_type == "application/json"
        records = json.loads(content)
        assert [record["id"] for record in records] == ["b"]
        assert records[0]["status"] == "SUSPENDED"

    async def test_export_is_audited(self, session, users, admin):
        await UserAdminService(session).export_users(admin, format="json")

        (entry,) = await audit_entries(session, "export_users")
        assert entry.type == AuditLogType.EXPORT
        assert json.loads(entry.details) == {"format": "json", "count": 4}
