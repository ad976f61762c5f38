"""Tests for app factory and basic middleware."""
import pytest
from smack_builders.api.main import create_app
from smack_builders.api.config import ApiSettings


def test_create_app():
    app = create_app(ApiSettings(job_store="memory"))
    assert app.title == "Smack Builders API"


def test_openapi_schema():
    app = create_app(ApiSettings(job_store="memory"))
    schema = app.openapi()
    assert "paths" in schema
    assert "/api/builds" in schema["paths"]
    assert "/api/jobs/{job_id}" in schema["paths"]


def test_routes_registered():
    app = create_app(ApiSettings(job_store="memory"))
    paths = set(app.openapi()["paths"])
    expected = {
        "/api/health",
        "/api/builds",
        "/api/builds/kinds",
        "/api/jobs",
        "/api/jobs/{job_id}",
        "/api/jobs/{job_id}/events",
    }
    for ep in expected:
        assert ep in paths, f"Missing route: {ep}"


def test_invalid_settings_rejected():
    with pytest.raises(ValueError):
        ApiSettings(max_concurrent=0)
    with pytest.raises(ValueError):
        ApiSettings(job_timeout_seconds=-1)


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("SMACK_API_MAX_QUEUED", "7")
    monkeypatch.setenv("SMACK_API_JOB_STORE", "memory")
    settings = ApiSettings()
    assert settings.max_queued == 7
    assert settings.job_store == "memory"


@pytest.mark.asyncio
async def test_404_wrapped(client):
    resp = await client.get("/api/nonexistent")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cors_headers(client):
    resp = await client.options(
        "/api/health",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "GET"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"
