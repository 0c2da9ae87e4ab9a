from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio


@pytest.mark.parametrize("path", ["/health", "/api/v1/health"])
async def test_health_check(client: AsyncClient, path: str):
    response = await client.get(f"http://localhost{path}")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}


async def test_health_check_reports_unreachable_database(client: AsyncClient, session, monkeypatch):
    monkeypatch.setattr(session, "execute", AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("down"))))
    response = await client.get("/health")
    assert response.status_code == 503
    assert response.json() == {"status": "degraded", "database": "unavailable"}


async def test_version(client: AsyncClient):
    response = await client.get("http://localhost/version")
    assert response.status_code == 200
    data = response.json()
    assert data["version"] == "1.0.0"
    assert data["schema_version"] == "20260101_000000"


async def test_process_time_header(client: AsyncClient):
    response = await client.get("/health")
    assert float(response.headers["X-Process-Time"]) >= 0
