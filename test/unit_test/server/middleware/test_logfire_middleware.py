"""
Unit tests for Logfire middleware.

This test suite covers:
- Request/response processing
- Error handling and exception tracking
- Slow request detection
- Header injection
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI, Request
from starlette.responses import Response
from starlette.testclient import TestClient

from backoffice.server.middleware.logfire_middleware import SLOW_REQUEST_MS, LogfireMiddleware

MODULE = "backoffice.server.middleware.logfire_middleware"


def make_request(method: str = "GET", path: str = "/api/v1/inventory/stocks") -> AsyncMock:
    mock_request = AsyncMock(spec=Request)
    mock_request.method = method
    mock_request.url.path = path
    mock_request.url.query = ""
    mock_request.state = MagicMock()
    return mock_request


class TestLogfireMiddlewareDispatch:
    """Test LogfireMiddleware.dispatch method."""

    @pytest.mark.asyncio
    async def test_middleware_processes_successful_request(self):
        """Test that middleware processes successful requests."""
        mock_response = Response(content="test", status_code=200)

        async def mock_call_next(request):
            return mock_response

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch(f"{MODULE}.log_api_request") as mock_log:
            response = await middleware.dispatch(make_request(), mock_call_next)

        assert response.status_code == 200
        mock_log.assert_called_once()
        call_args = mock_log.call_args
        assert call_args[1]["method"] == "GET"
        assert call_args[1]["path"] == "/api/v1/inventory/stocks"
        assert call_args[1]["status_code"] == 200
        assert call_args[1]["duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_middleware_adds_process_time_header(self):
        """Test that middleware adds X-Process-Time header."""

        async def mock_call_next(request):
            return Response(content="test", status_code=201)

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch(f"{MODULE}.log_api_request"):
            response = await middleware.dispatch(make_request("POST"), mock_call_next)

        assert float(response.headers["X-Process-Time"]) >= 0

    @pytest.mark.asyncio
    async def test_middleware_records_start_time(self):
        request = make_request()

        async def mock_call_next(request):
            return Response(status_code=204)

        with patch(f"{MODULE}.log_api_request"):
            await LogfireMiddleware(app=AsyncMock()).dispatch(request, mock_call_next)

        assert isinstance(request.state.start_time, float)

    @pytest.mark.asyncio
    async def test_middleware_detects_slow_requests(self):
        """Test that middleware detects and logs slow requests."""

        async def mock_call_next(request):
            return Response(content="test", status_code=200)

        middleware = LogfireMiddleware(app=AsyncMock())
        finish = 100.0 + (SLOW_REQUEST_MS + 500) / 1000

        with patch(f"{MODULE}.log_api_request"), patch(f"{MODULE}.logger") as mock_logger, patch(
            f"{MODULE}.time.time", side_effect=[100.0] + [finish] * 5
        ):
            await middleware.dispatch(make_request(path="/api/v1/teams/root/statistics"), mock_call_next)

        mock_logger.warning.assert_called_once()
        assert "Slow API request" in mock_logger.warning.call_args[0][0]
        assert mock_logger.warning.call_args[1]["extra"]["status_code"] == 200

    @pytest.mark.asyncio
    async def test_fast_request_is_not_flagged(self):
        async def mock_call_next(request):
            return Response(status_code=200)

        with patch(f"{MODULE}.log_api_request"), patch(f"{MODULE}.logger") as mock_logger:
            await LogfireMiddleware(app=AsyncMock()).dispatch(make_request(), mock_call_next)

        mock_logger.warning.assert_not_called()

    @pytest.mark.asyncio
    async def test_middleware_logs_and_reraises_errors(self):
        """Test that failures are reported as 500 and propagated."""

        async def mock_call_next(request):
            raise RuntimeError("database unavailable")

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch(f"{MODULE}.log_api_request") as mock_log, patch(f"{MODULE}.logger") as mock_logger:
            with pytest.raises(RuntimeError, match="database unavailable"):
                await middleware.dispatch(make_request("PUT"), mock_call_next)

        assert mock_log.call_args[1]["status_code"] == 500
        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args[1]["extra"]["error"] == "database unavailable"


class TestLogfireMiddlewareIntegration:
    def test_header_on_real_app(self):
        app = FastAPI()
        app.add_middleware(LogfireMiddleware)

        @app.get("/ping")
        async def ping():
            return {"pong": True}

        with patch(f"{MODULE}.log_api_request") as mock_log:
            client = TestClient(app, base_url="http://localhost")
            response = client.get("/ping")

        assert response.status_code == 200
        assert "X-Process-Time" in response.headers
        assert mock_log.call_args[1]["path"] == "/ping"
