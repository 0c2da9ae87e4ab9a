"""
Domain errors raised by the service layer.

Every error carries a short machine-readable ``code``. The server maps each
class to an HTTP status in ``backoffice.server.exception_handlers``.
"""

from __future__ import annotations


class BackofficeError(Exception):
    """Base class for expected business-rule failures."""

    code = "BACKOFFICE_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(BackofficeError):
    """A referenced record does not exist."""

    code = "NOT_FOUND"


class ValidationFailedError(BackofficeError):
    """Input passed schema validation but violates a business rule."""

    code = "VALIDATION_ERROR"


class InsufficientStockError(BackofficeError):
    """A stock scope cannot cover the requested quantity."""

    code = "INSUFFICIENT_STOCK"


class ConflictError(BackofficeError):
    """The operation would duplicate an existing record."""

    code = "CONFLICT"


class InvalidStateError(BackofficeError):
    """The record is not in a state that allows the operation."""

    code = "INVALID_STATE"
