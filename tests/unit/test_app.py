"""Unit tests for root and introspection endpoints."""

from fastapi.testclient import TestClient


def test_root(client: TestClient):
    response = client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "EcoScan Backend API"
    assert data["endpoints"]["analyze"] == "/api/sustainability/analyze"


def test_health_reports_configuration(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["apiConfigured"] is True
    assert data["features"] == {
        "imageQualityCheck": True,
        "imageOptimization": True,
        "alternativeRecommendations": True,
    }
    assert "timestamp" in data


def test_health_never_exposes_the_key(client: TestClient):
    assert "test-key" not in client.get("/health").text


def test_health_without_key(client: TestClient, monkeypatch):
    from ecoscan.core.config import settings

    monkeypatch.setattr(settings, "GEMINI_API_KEY", "  ")

    assert client.get("/health").json()["apiConfigured"] is False


def test_version(client: TestClient):
    data = client.get("/version").json()

    assert data["version"] == "2.0.0"
    assert "build" in data


def test_unknown_route(client: TestClient):
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.json()["error"] == "Endpoint not found"
    assert "analyze" in response.json()["availableEndpoints"]
