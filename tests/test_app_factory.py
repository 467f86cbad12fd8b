"""Tests for the Flask application factory and cross-cutting request handling."""
from __future__ import annotations

import pytest

from conftest import build_app


def test_health_endpoint_returns_ok(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "environment": "test"}


def test_blueprints_registered(app):
    """Application factory should register every API blueprint."""
    bps = set(app.blueprints.keys())
    required = {
        "auth",
        "users",
        "panelists",
        "surveys",
        "survey_responses",
        "rewards",
        "settings",
        "analytics",
        "vendor",
        "marketplace",
    }
    assert required.issubset(bps)


def test_otp_test_mode_refused_in_production():
    with pytest.raises(RuntimeError):
        build_app(APP_ENV="production", OTP_TEST_MODE=True)


def test_cors_allows_configured_origin():
    app = build_app(CORS_ORIGINS=["https://client.example"])
    client = app.test_client()

    response = client.get("/health", headers={"Origin": "https://client.example"})

    assert response.status_code == 200
    assert response.headers.get("Access-Control-Allow-Origin") == "https://client.example"


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers.get("X-Request-ID") == "abc-123"

    generated = client.get("/health")
    assert generated.headers.get("X-Request-ID")


def test_rate_limit_exceeded_returns_envelope():
    app = build_app(RATE_LIMIT="2 per minute")
    client = app.test_client()

    client.get("/health")
    client.get("/health")
    response = client.get("/health")

    assert response.status_code == 429
    payload = response.get_json()
    assert payload["success"] is False
    assert payload["request_id"]


def test_json_error_shape_for_invalid_request(client):
    response = client.post(
        "/api/auth/register",
        data="not-json",
        content_type="text/plain",
    )

    assert response.status_code == 400
    payload = response.get_json()
    assert payload["success"] is False
    assert "Request content type" in payload["message"]
    assert payload["request_id"]


def test_validation_errors_are_listed_per_field(client):
    response = client.post(
        "/api/auth/register",
        json={"firstName": "A", "email": "not-an-email", "password": "x"},
    )

    assert response.status_code == 400
    fields = {error["field"] for error in response.get_json()["errors"]}
    assert {"firstName", "lastName", "email", "password", "confirmPassword"} <= fields


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.get_json()["success"] is False


def test_missing_token_is_unauthorized(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.get_json()["message"] == "Access token required"


def test_garbage_token_is_forbidden(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.token"})
    assert response.status_code == 403
    assert response.get_json()["message"] == "Invalid token"


def test_unhandled_error_returns_500_with_stack_outside_production(app, client, monkeypatch):
    import routes.auth

    def _boom(email):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(routes.auth, "_find_user", _boom)
    response = client.post("/api/auth/login", json={"email": "a@b.co", "password": "x"})

    assert response.status_code == 500
    payload = response.get_json()
    assert payload["message"] == "Internal server error"
    assert "database exploded" in payload["stack"]
