"""Unit tests for the audit trail service."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from starlette.requests import Request

from backoffice.core.models.domain.enums import AuditLogLevel, AuditLogType
from backoffice.core.models.io.audit_logs import AdminContext, AuditLogCreate
from backoffice.server.services.audit import AuditService, admin_context_from_request

pytestmark = pytest.mark.asyncio


def make_request(headers=None, client=("10.0.0.8", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/v1/admin/configs",
        "headers": [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def entry(**overrides) -> AuditLogCreate:
    fields = dict(
        admin_id="admin-1",
        admin_name="Alice Admin",
        type=AuditLogType.UPDATE,
        module="users",
        action="update_user",
        description="Updated user u1",
    )
    fields.update(overrides)
    return AuditLogCreate(**fields)


class TestAdminContext:
    async def test_from_headers(self):
        request = make_request({"X-Admin-Id": "a-7", "X-Admin-Name": "Bob", "User-Agent": "curl/8"})
        admin = admin_context_from_request(request)

        assert admin == AdminContext(admin_id="a-7", admin_name="Bob", ip_address="10.0.0.8", user_agent="curl/8")

    async def test_defaults_to_system(self):
        admin = admin_context_from_request(make_request(client=None))
        assert (admin.admin_id, admin.admin_name, admin.ip_address) == ("system", "system", None)


class TestWriting:
    async def test_log_serializes_details(self, session):
        written = await AuditService(session).log(entry(details={"old": {"level": "NORMAL"}}))

        assert written.id
        assert written.result == "SUCCESS"
        assert written.level == AuditLogLevel.INFO
        assert json.loads(written.details) == {"old": {"level": "NORMAL"}}

    async def test_record_stages_until_commit(self, session, admin):
        service = AuditService(session)
        await service.record(admin, type=AuditLogType.CREATE, module="m", action="a", description="d")
        await session.rollback()

        assert (await service.query_logs()).pagination.total == 0

    async def test_log_entry_commits(self, session, admin):
        service = AuditService(session)
        await service.log_entry(admin, type=AuditLogType.EXPORT, module="m", action="export", description="d")
        await session.rollback()

        (row,) = (await service.query_logs()).items
        assert row.admin_name == "Alice Admin"
        assert row.ip_address == "127.0.0.1"
        assert row.user_agent == "pytest"

    async def test_log_from_request(self, session):
        request = make_request({"X-Admin-Id": "a-7", "X-Admin-Name": "Bob"})
        written = await AuditService(session).log_from_request(
            request,
            type=AuditLogType.DELETE,
            module="system_config",
            action="delete_config",
            description="Deleted config x",
        )
        assert (written.admin_id, written.admin_name, written.ip_address) == ("a-7", "Bob", "10.0.0.8")

    async def test_log_from_request_explicit_admin(self, session):
        written = await AuditService(session).log_from_request(
            make_request(),
            admin_id="override",
            type=AuditLogType.VIEW,
            module="reports",
            action="view_report",
            description="Viewed report",
        )
        assert written.admin_id == "override"
        assert written.admin_name == "system"


class TestQueries:
    @pytest.fixture
    async def logs(self, session):
        service = AuditService(session)
        await service.log(entry())
        await service.log(entry(admin_id="admin-2", type=AuditLogType.DELETE, module="finance", action="x"))
        await service.log(
            entry(
                level=AuditLogLevel.ERROR,
                module="finance",
                action="pay_commissions",
                result="FAILED",
                error_message="boom",
            )
        )
        return service

    async def test_filters(self, logs):
        assert (await logs.query_logs(admin_id="admin-2")).pagination.total == 1
        assert (await logs.query_logs(module="finance")).pagination.total == 2
        assert (await logs.query_logs(type=AuditLogType.DELETE)).items[0].admin_id == "admin-2"
        assert (await logs.query_logs(level=AuditLogLevel.ERROR)).items[0].error_message == "boom"
        assert (await logs.query_logs(end=datetime.now(timezone.utc) - timedelta(days=1))).pagination.total == 0

    async def test_newest_first(self, logs):
        page = await logs.query_logs()
        assert page.items[0].action == "pay_commissions"

    async def test_statistics(self, logs):
        stats = await logs.statistics()

        assert stats.total == 3
        assert stats.failed == 1
        assert stats.by_type == {"UPDATE": 2, "DELETE": 1}
        assert stats.by_level == {"INFO": 2, "ERROR": 1}
        assert stats.by_module == {"users": 1, "finance": 2}

    async def test_cleanup_expired_logs(self, session, logs):
        (oldest,) = (await logs.query_logs(admin_id="admin-2")).items
        row = await logs.repos.audit_logs.get_by_id(oldest.id)
        row.created_at = datetime.now(timezone.utc) - timedelta(days=120)
        session.add(row)
        await session.commit()

        assert await logs.cleanup_expired_logs(90) == 1
        assert (await logs.query_logs()).pagination.total == 2

    async def test_cleanup_uses_configured_retention(self, logs):
        assert await logs.cleanup_expired_logs() == 0
