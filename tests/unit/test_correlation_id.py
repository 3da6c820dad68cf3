"""Tests for correlation ID middleware."""

import uuid

import pytest
from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase

from calendar_range.middleware import correlation_id_middleware, get_request_id
from calendar_range.middleware.correlation_id import request_id_var


class TestCorrelationIdMiddleware(AioHTTPTestCase):
    """Test correlation ID middleware functionality."""

    async def get_application(self):
        """Create test application with correlation ID middleware."""
        app = web.Application(middlewares=[correlation_id_middleware])

        async def test_handler(request):
            """Test handler that returns correlation ID."""
            return web.json_response(
                {
                    "correlation_id": request.get("correlation_id", "not-set"),
                    "context_id": get_request_id(),
                }
            )

        app.router.add_get("/test", test_handler)
        return app

    async def test_correlation_id_from_x_request_id_header(self):
        """Test correlation ID extraction from X-Request-ID header."""
        test_id = "test-request-id-12345"
        resp = await self.client.request("GET", "/test", headers={"X-Request-ID": test_id})
        assert resp.status == 200

        data = await resp.json()
        assert data["correlation_id"] == test_id
        assert data["context_id"] == test_id
        assert resp.headers.get("X-Request-ID") == test_id

    async def test_correlation_id_from_x_correlation_id_header(self):
        """Test correlation ID extraction from X-Correlation-ID header."""
        test_id = "correlation-id-67890"
        resp = await self.client.request("GET", "/test", headers={"X-Correlation-ID": test_id})

        data = await resp.json()
        assert data["correlation_id"] == test_id
        assert resp.headers.get("X-Request-ID") == test_id

    async def test_x_request_id_takes_priority(self):
        resp = await self.client.request(
            "GET", "/test", headers={"X-Request-ID": "primary", "X-Correlation-ID": "secondary"}
        )
        data = await resp.json()
        assert data["correlation_id"] == "primary"

    async def test_correlation_id_generated_when_absent(self):
        """Test a UUID is generated when the client sends no ID."""
        resp = await self.client.request("GET", "/test")
        data = await resp.json()

        generated = data["correlation_id"]
        assert uuid.UUID(generated)
        assert resp.headers.get("X-Request-ID") == generated

    async def test_each_request_gets_distinct_id(self):
        first = await (await self.client.request("GET", "/test")).json()
        second = await (await self.client.request("GET", "/test")).json()
        assert first["correlation_id"] != second["correlation_id"]


@pytest.mark.unit
class TestGetRequestId:
    """Tests for get_request_id outside a request."""

    def test_default_when_unset(self):
        token = request_id_var.set("")
        try:
            assert get_request_id() == "no-request-id"
        finally:
            request_id_var.reset(token)
