"""
Health check endpoint tests
"""
import json
import pytest
from httpx import AsyncClient, ASGITransport
from starlette.requests import Request

from config import settings
from habitpush.core.error_handling import general_exception_handler
from main import app


@pytest.mark.asyncio
@pytest.mark.unit
async def test_root_endpoint():
    """Test root health check endpoint"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_health_endpoint():
    """Test detailed health check endpoint"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "HabitPush API"
        assert data["version"] == "1.0.0"


def _request(path: str) -> Request:
    return Request({"type": "http", "method": "GET", "path": path, "headers": [], "query_string": b""})


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("environment, exposed", [("production", False), ("development", True)])
async def test_unhandled_error_details_follow_environment(environment, exposed, monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", environment)

    response = await general_exception_handler(_request("/boom"), RuntimeError("db password leaked"))

    assert response.status_code == 500
    error = json.loads(response.body)["error"]
    assert error["type"] == "RuntimeError"
    assert (error["message"] == "db password leaked") is exposed
    assert ("traceback" in error) is exposed
