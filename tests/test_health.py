"""Health endpoint tests."""

from fastapi.testclient import TestClient
from profitability_engine.main import app


client = TestClient(app)


def test_health_check():
    """Test health check endpoint returns correct status."""
    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "profitability-engine"
