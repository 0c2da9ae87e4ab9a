"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
request tracing), registers the exception handlers and includes all API
routers. It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice.core.database import close_db, init_db
from backoffice.core.logging_config import get_logger, setup_logging
from backoffice.core.monitoring import initialize_logfire

from .api.v1 import (
    admin_configs,
    admin_finance,
    admin_users,
    audit_logs,
    batches,
    health,
    inventory,
    inventory_alerts,
    inventory_logs,
    performance,
    teams,
)
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers
from .middleware import LogfireMiddleware

# Initialize logging
setup_logging(log_level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Creates missing tables on startup. Schema changes themselves go through
    the Alembic migrations.
    """
    try:
        logger.info("Starting up back office server...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    logger.info("Shutting down back office server...")
    await close_db()


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    Back Office Server API

    Inventory across platform, user and cloud warehouses with batches and alerts,
    the referral team and performance engine with commissions, and the admin
    surface for users, finance, system configuration and audit logs.
    """,
    version=constant.VERSION,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
)
app.add_middleware(LogfireMiddleware)

setup_exception_handlers(app)
initialize_logfire(app)

app.include_router(health.router, tags=["health"])
app.include_router(health.router, prefix=constant.API_V1_STR, tags=["health"])
app.include_router(inventory_logs.router, prefix=f"{constant.API_V1_STR}/inventory/logs")
app.include_router(inventory_alerts.router, prefix=f"{constant.API_V1_STR}/inventory/alerts")
app.include_router(batches.router, prefix=f"{constant.API_V1_STR}/inventory/batches")
app.include_router(inventory.router, prefix=f"{constant.API_V1_STR}/inventory")
app.include_router(teams.router, prefix=f"{constant.API_V1_STR}/teams")
app.include_router(performance.router, prefix=f"{constant.API_V1_STR}/performance")
app.include_router(admin_users.router, prefix=f"{constant.API_V1_STR}/admin/users")
app.include_router(admin_finance.router, prefix=f"{constant.API_V1_STR}/admin/finance")
app.include_router(admin_configs.router, prefix=f"{constant.API_V1_STR}/admin/config")
app.include_router(audit_logs.router, prefix=f"{constant.API_V1_STR}/admin/audit-logs")
