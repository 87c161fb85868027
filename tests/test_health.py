"""Tests for health check endpoints."""

from httpx import AsyncClient


async def test_health_check(client: AsyncClient):
    """Test basic health check."""
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["environment"] == "test"


async def test_ping(client: AsyncClient):
    """Test ping endpoint."""
    response = await client.get("/api/v1/ping")

    assert response.status_code == 200
    assert response.json() == {"message": "pong"}


async def test_root(client: AsyncClient):
    """Test root endpoint."""
    response = await client.get("/")

    assert response.status_code == 200
    assert "Session Broker" in response.json()["message"]


async def test_unknown_route_uses_error_envelope(client: AsyncClient):
    """Test 404s are rendered in the failure envelope."""
    response = await client.get("/api/v1/nope")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found", "data": None}
