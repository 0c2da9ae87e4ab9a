"""
Unit tests for server exception handlers.

Tests cover the mapping of domain errors to HTTP statuses and the generic
500 handler for everything else.
"""

import json
from unittest.mock import Mock, patch

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backoffice.core.errors import (
    BackofficeError,
    ConflictError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from backoffice.server.exception_handlers import setup_exception_handlers
from backoffice.server.exception_handlers.domain_handler import (
    STATUS_BY_ERROR,
    domain_exception_handler,
    status_for,
)
from backoffice.server.exception_handlers.global_handler import (
    global_exception_handler,
)


@pytest.fixture
def mock_request():
    """Create a mock request object."""
    request = Mock(spec=Request)
    request.method = "POST"
    request.url.path = "/api/v1/inventory/manual-out"
    request.query_params = {"dry_run": "1"}
    request.client = Mock()
    request.client.host = "127.0.0.1"
    return request


class TestStatusMapping:
    @pytest.mark.parametrize(
        "error,status_code",
        [
            (NotFoundError("x"), 404),
            (ValidationFailedError("x"), 400),
            (InsufficientStockError("x"), 400),
            (ConflictError("x"), 409),
            (InvalidStateError("x"), 409),
        ],
    )
    def test_status_for(self, error, status_code):
        assert status_for(error) == status_code

    def test_subclass_inherits_parent_status(self):
        class BatchMissingError(NotFoundError):
            pass

        assert status_for(BatchMissingError("gone")) == 404

    def test_unmapped_domain_error_is_bad_request(self):
        assert BackofficeError not in STATUS_BY_ERROR
        assert status_for(BackofficeError("nope")) == 400

    def test_custom_code(self):
        error = ConflictError("dup", code="DUPLICATE_KEY")
        assert error.code == "DUPLICATE_KEY"
        assert ConflictError("dup").code == "CONFLICT"


class TestDomainExceptionHandler:
    @pytest.mark.asyncio
    async def test_payload(self, mock_request):
        response = await domain_exception_handler(mock_request, InsufficientStockError("need 5, have 2"))

        assert isinstance(response, JSONResponse)
        assert response.status_code == 400
        assert json.loads(response.body.decode()) == {
            "detail": "need 5, have 2",
            "code": "INSUFFICIENT_STOCK",
            "error_type": "InsufficientStockError",
        }

    @pytest.mark.asyncio
    async def test_logs_warning(self, mock_request):
        with patch("backoffice.server.exception_handlers.domain_handler.logger") as mock_logger:
            await domain_exception_handler(mock_request, NotFoundError("User u1 not found"))

        mock_logger.warning.assert_called_once()
        message = mock_logger.warning.call_args[0][0]
        assert "404" in message
        assert "NOT_FOUND" in message
        assert mock_logger.warning.call_args[1]["extra"]["code"] == "NOT_FOUND"


class TestGlobalExceptionHandler:
    """Test suite for global exception handler."""

    @pytest.mark.asyncio
    async def test_exception_handler_logs_error(self, mock_request):
        """Test that exception handler logs errors."""
        exc = ValueError("Test error")

        with patch("backoffice.server.exception_handlers.global_handler.logger") as mock_logger, patch(
            "backoffice.server.exception_handlers.global_handler.log_error"
        ):
            await global_exception_handler(mock_request, exc)

            mock_logger.error.assert_called_once()
            call_args = mock_logger.error.call_args
            assert "Unhandled exception" in call_args[0][0]
            extra = call_args[1]["extra"]
            assert extra["error_type"] == "ValueError"
            assert extra["query_params"] == {"dry_run": "1"}
            assert extra["client"] == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_exception_handler_response(self, mock_request):
        exc = RuntimeError("Test error")

        with patch("backoffice.server.exception_handlers.global_handler.logger"), patch(
            "backoffice.server.exception_handlers.global_handler.log_error"
        ):
            response = await global_exception_handler(mock_request, exc)

        assert isinstance(response, JSONResponse)
        assert response.status_code == 500
        body = json.loads(response.body.decode())
        assert body["detail"] == "Internal server error"
        assert body["error_id"] == id(exc)
        assert body["error_type"] == "RuntimeError"

    @pytest.mark.asyncio
    async def test_exception_handler_reports_to_monitoring(self, mock_request):
        exc = KeyError("missing")

        with patch("backoffice.server.exception_handlers.global_handler.logger"), patch(
            "backoffice.server.exception_handlers.global_handler.log_error"
        ) as mock_log_error:
            await global_exception_handler(mock_request, exc)

        mock_log_error.assert_called_once()
        args = mock_log_error.call_args[0]
        assert args[0] == "KeyError"
        assert args[2]["path"] == "/api/v1/inventory/manual-out"

    @pytest.mark.asyncio
    async def test_exception_handler_without_client(self, mock_request):
        mock_request.client = None

        with patch("backoffice.server.exception_handlers.global_handler.logger") as mock_logger, patch(
            "backoffice.server.exception_handlers.global_handler.log_error"
        ):
            response = await global_exception_handler(mock_request, RuntimeError("boom"))

        assert response.status_code == 500
        assert mock_logger.error.call_args[1]["extra"]["client"] == "unknown"


class TestSetupExceptionHandlers:
    def test_registers_handlers(self):
        app = FastAPI()
        setup_exception_handlers(app)

        assert app.exception_handlers[BackofficeError] is domain_exception_handler
        assert app.exception_handlers[Exception] is global_exception_handler
