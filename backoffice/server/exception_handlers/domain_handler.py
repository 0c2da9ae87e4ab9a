"""
Domain Exception Handler.

Maps the service layer's business-rule errors to HTTP responses carrying the
message and the error's machine-readable code.
"""

from typing import Dict, Type

from fastapi import Request, status
from fastapi.responses import JSONResponse

from backoffice.core.errors import (
    BackofficeError,
    ConflictError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from backoffice.core.logging_config import get_logger

logger = get_logger(__name__)

STATUS_BY_ERROR: Dict[Type[BackofficeError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationFailedError: status.HTTP_400_BAD_REQUEST,
    InsufficientStockError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    InvalidStateError: status.HTTP_409_CONFLICT,
}


def status_for(exc: BackofficeError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return status.HTTP_400_BAD_REQUEST


async def domain_exception_handler(request: Request, exc: BackofficeError) -> JSONResponse:
    """
    Turn a domain error into a JSON error response.

    Args:
        request: The HTTP request that raised the error
        exc: The domain error

    Returns:
        JSONResponse with ``detail``, ``code`` and ``error_type``
    """
    status_code = status_for(exc)
    logger.warning(
        f"{request.method} {request.url.path} rejected with {status_code}: [{exc.code}] {exc.message}",
        extra={"method": request.method, "path": request.url.path, "code": exc.code},
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code, "error_type": type(exc).__name__},
    )
