"""Tests for application wiring: health, debug and error envelopes."""

from unittest.mock import AsyncMock, patch

from calendar_sync.config import Environment, get_settings


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["app_name"] == "calendar-sync"


def test_ready_reports_database_state(client):
    with patch("calendar_sync.main.check_connection", new_callable=AsyncMock, return_value=False):
        response = client.get("/ready")
    assert response.status_code == 503
    assert response.json()["database"] == "disconnected"

    with patch("calendar_sync.main.check_connection", new_callable=AsyncMock, return_value=True):
        response = client.get("/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_debug_config_reports_presence_only(client):
    response = client.get("/debug/config")

    assert response.status_code == 200
    body = response.json()
    assert body["values"]["NYLAS_CLIENT_SECRET"] is True
    assert body["values"]["SUPABASE_JWT_SECRET"] is False
    assert body["exchange_endpoint"] == "https://project.supabase.co/functions/v1/nylas-exchange"
    assert "test-client-secret" not in response.text
    assert "test-service-role-key" not in response.text


def test_debug_config_hidden_in_production(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "environment", Environment.PRODUCTION)

    response = client.get("/debug/config")

    assert response.status_code == 404


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "HTTP_ERROR"


def test_security_and_request_id_headers(client):
    response = client.get("/health", headers={"X-Request-ID": "abc"})

    assert response.headers["X-Request-ID"] == "abc"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Process-Time" in response.headers


def test_cors_preflight_allows_signature_header(client):
    response = client.options(
        "/functions/v1/nylas-webhook",
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "x-nylas-signature, content-type",
        },
    )

    assert response.status_code == 200
    assert "x-nylas-signature" in response.headers["access-control-allow-headers"].lower()


def test_callback_responses_are_not_cached_or_referred(client):
    response = client.get("/nylas/callback", params={"code": "abc", "state": "s"})

    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["Referrer-Policy"] == "no-referrer"
    assert "Cache-Control" not in client.get("/health").headers
