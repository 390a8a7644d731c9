"""Tests for health endpoints."""

import pytest
from fastapi.testclient import TestClient


def test_health_endpoint(test_client: TestClient) -> None:
    """Test the basic health endpoint."""
    response = test_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    # Test settings keep every collaborator on its stub
    assert data["components"] == {
        "content": False,
        "renderer": False,
        "publisher": False,
        "metrics": False,
    }


def test_liveness_endpoint(test_client: TestClient) -> None:
    """Test the liveness probe endpoint."""
    response = test_client.get("/health/live")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "alive"


def test_readiness_reports_database(test_client: TestClient) -> None:
    """The SQLite test database is always reachable."""
    response = test_client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["database"] is True
    assert data["adapters"] == {
        "content": True,
        "renderer": True,
        "publisher": True,
        "metrics": True,
    }


def test_root_endpoint(test_client: TestClient) -> None:
    """Test the root endpoint."""
    response = test_client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert "name" in data
    assert "version" in data
    assert "docs" in data


def test_readiness_reports_unhealthy_adapter(test_client: TestClient, monkeypatch) -> None:
    """A metrics provider without credentials keeps the service unready."""
    from quiz_engine.adapters.metrics.youtube import YouTubeMetricsProvider
    from quiz_engine.services import providers

    monkeypatch.setattr(
        providers, "get_metrics_provider", lambda: YouTubeMetricsProvider(api_key="")
    )

    data = test_client.get("/health/ready").json()

    assert data["adapters"]["metrics"] is False
    assert data["adapters"]["content"] is True
    assert data["ready"] is False


@pytest.mark.asyncio
async def test_adapter_health_check_that_raises_counts_as_unhealthy(monkeypatch) -> None:
    from quiz_engine.adapters.publisher.stub import StubPublisherAdapter
    from quiz_engine.services import providers

    class BrokenPublisher(StubPublisherAdapter):
        async def health_check(self) -> bool:
            raise RuntimeError("upload API down")

    monkeypatch.setattr(providers, "get_publisher", BrokenPublisher)

    health = await providers.check_collaborators()

    assert health == {"content": True, "renderer": True, "publisher": False, "metrics": True}
