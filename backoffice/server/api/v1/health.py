"""
Health Check Endpoints.

``/health`` reports whether the server can reach its database; ``/version``
reports the API version and the Alembic revision the code expects.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_session
from backoffice.core.logging_config import get_logger
from backoffice.server.core import constant

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/health",
    summary="Health Check",
    description="Check that the API server is up and its database answers.",
    response_description="Status object.",
    responses={503: {"description": "Database unreachable"}},
)
async def health_check(session: Annotated[AsyncSession, Depends(get_session)]):
    """Run ``SELECT 1``; a failure turns the response into a 503."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Health check could not reach the database: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "degraded", "database": "unavailable"},
        )
    return {"status": "ok", "database": "ok"}


@router.get(
    "/version",
    summary="Get Version",
    description="Retrieve the API version and the expected database schema revision.",
    response_description="Version object.",
)
async def version():
    return {"version": constant.VERSION, "schema_version": constant.SCHEMA_VERSION}
