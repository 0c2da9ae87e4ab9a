"""
Exception handlers for the back office server.

Domain errors from the service layer become 4xx responses; anything else is
logged with its traceback and returned as a 500 with an error id.
"""

from fastapi import FastAPI

from backoffice.core.errors import BackofficeError
from backoffice.core.logging_config import get_logger

from .domain_handler import domain_exception_handler
from .global_handler import global_exception_handler

logger = get_logger(__name__)


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(BackofficeError, domain_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered successfully")


__all__ = ["setup_exception_handlers", "domain_exception_handler", "global_exception_handler"]
