import pytest
from sqlalchemy import inspect

from backoffice.core.database.utils import create_all, create_engine, create_sessionmaker


@pytest.mark.parametrize(
    "url",
    [
        "postgres://u:p@db:5432/backoffice",
        "postgresql://u:p@db:5432/backoffice",
        "postgresql+psycopg://u:p@db:5432/backoffice",
        "postgresql+asyncpg://u:p@db:5432/backoffice",
    ],
)
async def test_postgres_urls_use_asyncpg(url):
    engine = create_engine(url)
    assert engine.url.drivername == "postgresql+asyncpg"
    assert engine.url.database == "backoffice"
    await engine.dispose()


async def test_sqlite_urls_pass_through():
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    assert engine.url.drivername == "sqlite+aiosqlite"
    await engine.dispose()


async def test_create_all_registers_every_entity(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'backoffice.db'}")
    await create_all(engine)
    async with engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    await engine.dispose()

    assert {"users", "orders", "inventory_stocks", "system_configs", "audit_logs"} <= set(tables)


async def test_sessions_keep_loaded_state_after_commit():
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    assert create_sessionmaker(engine).kw["expire_on_commit"] is False
    await engine.dispose()
