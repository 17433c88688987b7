import pytest
from fastapi.testclient import TestClient

from dealfinder.main import create_app


@pytest.fixture
def triggered(monkeypatch):
    calls = []
    monkeypatch.setattr(
        "dealfinder.routers.system.start_background_run",
        lambda settings, reason: calls.append((settings, reason)),
    )
    return calls


@pytest.fixture
def client(make_settings):
    return TestClient(create_app(make_settings(), enable_scheduler=False))


@pytest.mark.parametrize("path", ["/", "/health"])
def test_health(client, path):
    response = client.get(path)
    assert response.status_code == 200
    assert response.json() == {"status": "running"}


@pytest.mark.parametrize("method", ["GET", "POST"])
def test_trigger_starts_a_run(client, triggered, method):
    response = client.request(method, "/trigger")

    assert response.status_code == 200
    assert response.json() == {"status": "triggered"}
    assert len(triggered) == 1
    assert triggered[0][1] == "manual"


def test_unknown_path(client):
    response = client.get("/deals/latest")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}


def test_response_time_header(client):
    assert client.get("/health").headers["X-Response-Time"].endswith("ms")
