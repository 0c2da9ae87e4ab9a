import os
from datetime import datetime
from typing import AsyncGenerator, Optional
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel.pool import StaticPool

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Set test database URL before importing app
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from backoffice.core.database import Base  # noqa: E402
from backoffice.core.database.entities.orders import Order  # noqa: E402
from backoffice.core.database.entities.products import ProductSpec  # noqa: E402
from backoffice.core.database.entities.users import User  # noqa: E402
from backoffice.core.models.domain.enums import OrderStatus, UserLevel, UserStatus  # noqa: E402
from backoffice.core.models.domain.network import ROOT_PATH, child_path  # noqa: E402
from backoffice.core.models.io.audit_logs import AdminContext  # noqa: E402


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database for every test."""
    import backoffice.core.database.entities  # noqa: F401

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new session for each test."""
    session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and overridden dependencies."""
    from backoffice.core.database import get_session
    from backoffice.server.main import app

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_session] = get_session_override

    # Mock the lifespan to prevent database initialization during tests
    async def mock_lifespan(app):
        yield

    with patch("backoffice.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _clear_performance_cache():
    from backoffice.server.services.performance import performance_cache

    performance_cache.clear()
    yield
    performance_cache.clear()


@pytest.fixture
def admin() -> AdminContext:
    return AdminContext(admin_id="admin-1", admin_name="Alice Admin", ip_address="127.0.0.1", user_agent="pytest")


class Seeder:
    """Writes users, orders and product specs straight into the test database."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = {}

    async def user(
        self,
        user_id: str,
        parent: Optional[str] = None,
        *,
        level: UserLevel = UserLevel.NORMAL,
        status: UserStatus = UserStatus.ACTIVE,
        created_at: Optional[datetime] = None,
        points_balance: float = 0.0,
        nickname: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> User:
        if parent is None:
            team_path, team_level = ROOT_PATH, 1
        else:
            parent_user = self.users[parent]
            team_path, team_level = child_path(parent_user.team_path, parent), parent_user.team_level + 1
        user = User(
            id=user_id,
            parent_id=parent,
            team_path=team_path,
            team_level=team_level,
            level=level,
            status=status,
            points_balance=points_balance,
            nickname=nickname or user_id,
            phone=phone,
        )
        if created_at is not None:
            user.created_at = created_at
        self.session.add(user)
        await self.session.commit()
        self.users[user_id] = user
        return user

    async def order(
        self,
        seller: str,
        amount: float,
        status: OrderStatus = OrderStatus.PAID,
        created_at: Optional[datetime] = None,
        buyer: str = "buyer",
    ) -> Order:
        order = Order(seller_id=seller, buyer_id=buyer, total_amount=amount, status=status)
        if created_at is not None:
            order.created_at = created_at
        self.session.add(order)
        await self.session.commit()
        return order

    async def spec(
        self, spec_id: str, product_id: str = "p1", low: Optional[int] = None, out: Optional[int] = None
    ) -> ProductSpec:
        spec = ProductSpec(id=spec_id, product_id=product_id, low_stock_threshold=low, out_of_stock_threshold=out)
        self.session.add(spec)
        await self.session.commit()
        return spec


@pytest.fixture
def seed(session: AsyncSession) -> Seeder:
    return Seeder(session)
