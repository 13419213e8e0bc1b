import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_reports_pool_stats(client: AsyncClient, override_store):
    """Health answers from pool telemetry without running SQL"""
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["stats"]["open_connections"] == 2
    assert data["stats"]["in_use"] == 1
    assert override_store.executed == []
