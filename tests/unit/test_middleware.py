"""Unit tests for middleware."""
import pytest
from unittest.mock import Mock
from gatepass.middleware.logging import LoggingMiddleware


def mock_request(headers: dict = None, path: str = "/api/v1/scans"):
    request = Mock()
    request.state = Mock(spec=[])
    request.method = "POST"
    request.url = Mock()
    request.url.path = path
    request.client = Mock()
    request.client.host = "127.0.0.1"
    request.headers = headers or {}
    return request


def mock_response(status_code: int = 200):
    response = Mock()
    response.headers = {}
    response.status_code = status_code
    return response


@pytest.mark.unit
class TestLoggingMiddleware:
    """Test logging middleware."""

    @pytest.mark.asyncio
    async def test_request_id_added_to_state_and_header(self):
        request = mock_request()
        response = mock_response()

        async def call_next(req):
            assert isinstance(req.state.request_id, str)
            return response

        result = await LoggingMiddleware(Mock()).dispatch(request, call_next)

        assert result.headers["X-Request-ID"] == request.state.request_id

    @pytest.mark.asyncio
    async def test_incoming_request_id_reused(self):
        request = mock_request({"X-Request-ID": "scanner-17-000042"})
        response = mock_response()

        async def call_next(req):
            return response

        result = await LoggingMiddleware(Mock()).dispatch(request, call_next)

        assert result.headers["X-Request-ID"] == "scanner-17-000042"

    @pytest.mark.asyncio
    async def test_oversized_request_id_replaced(self):
        request = mock_request({"X-Request-ID": "x" * 500})
        response = mock_response()

        async def call_next(req):
            return response

        result = await LoggingMiddleware(Mock()).dispatch(request, call_next)

        assert result.headers["X-Request-ID"] != "x" * 500
        assert len(result.headers["X-Request-ID"]) == 36

    @pytest.mark.asyncio
    async def test_request_ids_unique(self):
        middleware = LoggingMiddleware(Mock())

        async def call_next(req):
            return mock_response()

        first = await middleware.dispatch(mock_request(), call_next)
        second = await middleware.dispatch(mock_request(), call_next)

        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_exception_reraised(self):
        async def call_next(req):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await LoggingMiddleware(Mock()).dispatch(mock_request(), call_next)
