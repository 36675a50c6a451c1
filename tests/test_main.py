from app.core.config import settings


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["success"] is True


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_request_schema_errors_use_error_envelope(client):
    response = client.get("/api/ads/first")

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert "error" in body


def test_openapi_describes_the_project(client):
    info = client.get("/api/openapi.json").json()["info"]

    assert info["title"] == settings.PROJECT_NAME
    assert info["description"] == settings.PROJECT_DESCRIPTION
