"""Tests for the OAuth callback handler."""

import json

import httpx
import pytest

from calendar_sync.portal.callback import CallbackOutcome, OAuthCallbackHandler
from calendar_sync.portal.state_store import InMemoryStateStore

from conftest import make_backend_client


def _exchange_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json={"success": True, "account_id": "acct_1", "message": "Calendar connected successfully"},
    )


def _handler(state=None, backend_handler=_exchange_ok):
    backend_client = make_backend_client(backend_handler)
    store = InMemoryStateStore(state)
    return OAuthCallbackHandler(backend_client, store), store, backend_client._transport


@pytest.mark.asyncio
async def test_success_forwards_code_and_redirects():
    handler, store, transport = _handler(state="S1")

    result = await handler.handle({"code": "abc123", "state": "S1"}, session_token="session-jwt")

    assert result.outcome == CallbackOutcome.SUCCESS
    assert result.account_id == "acct_1"
    assert result.redirect_url == "/calendar?sync=success"
    assert result.redirect_delay == 2
    assert store.load() is None

    request = transport.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://project.supabase.co/functions/v1/nylas-exchange"
    assert request.headers["Authorization"] == "Bearer session-jwt"
    assert json.loads(request.content) == {"code": "abc123"}


@pytest.mark.asyncio
@pytest.mark.parametrize("stored", [None, "S1"])
async def test_state_mismatch_is_a_security_error(stored):
    handler, store, transport = _handler(state=stored)

    result = await handler.handle({"code": "abc123", "state": "S2"}, session_token="session-jwt")

    assert result.outcome == CallbackOutcome.SECURITY_ERROR
    assert result.message == "Invalid OAuth state"
    assert transport.requests == []
    assert store.load() is None


@pytest.mark.asyncio
async def test_replayed_callback_fails_state_check():
    handler, store, transport = _handler(state="S1")
    params = {"code": "abc123", "state": "S1"}

    first = await handler.handle(params, session_token="session-jwt")
    second = await handler.handle(params, session_token="session-jwt")

    assert first.outcome == CallbackOutcome.SUCCESS
    assert second.outcome == CallbackOutcome.SECURITY_ERROR
    assert len(transport.requests) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params, session_token, message",
    [
        ({"state": "S1", "error": "access_denied"}, "session-jwt", "access_denied"),
        ({"state": "S1"}, "session-jwt", "No code received"),
        ({"state": "S1", "code": "abc123"}, None, "Authentication required"),
    ],
)
async def test_error_outcomes_before_exchange(params, session_token, message):
    handler, store, transport = _handler(state="S1")

    result = await handler.handle(params, session_token=session_token)

    assert result.outcome == CallbackOutcome.ERROR
    assert result.message == message
    assert transport.requests == []
    assert store.load() is None


@pytest.mark.asyncio
async def test_backend_error_message_is_surfaced():
    def _reject(request):
        return httpx.Response(
            400,
            json={"error": {"message": "Token exchange failed", "code": "EXTERNAL_SERVICE_ERROR"}},
        )

    handler, store, _ = _handler(state="S1", backend_handler=_reject)

    result = await handler.handle({"code": "abc123", "state": "S1"}, session_token="session-jwt")

    assert result.outcome == CallbackOutcome.ERROR
    assert result.message == "Token exchange failed"


@pytest.mark.asyncio
async def test_backend_error_without_message_uses_status():
    handler, _, _ = _handler(state="S1", backend_handler=lambda request: httpx.Response(502, text=""))

    result = await handler.handle({"code": "abc123", "state": "S1"}, session_token="session-jwt")

    assert result.outcome == CallbackOutcome.ERROR
    assert result.message == "HTTP 502"


@pytest.mark.asyncio
async def test_body_without_success_flag_is_an_error():
    handler, _, _ = _handler(
        state="S1", backend_handler=lambda request: httpx.Response(200, json={"account_id": "acct_1"})
    )

    result = await handler.handle({"code": "abc123", "state": "S1"}, session_token="session-jwt")

    assert result.outcome == CallbackOutcome.ERROR


@pytest.mark.asyncio
async def test_network_failure_is_an_error():
    def _fail(request):
        raise httpx.ConnectError("connection refused", request=request)

    handler, _, _ = _handler(state="S1", backend_handler=_fail)

    result = await handler.handle({"code": "abc123", "state": "S1"}, session_token="session-jwt")

    assert result.outcome == CallbackOutcome.ERROR
    assert "connection refused" in result.message


def test_callback_route_success_page(client, override_backend_client):
    override_backend_client(_exchange_ok)
    response = client.get(
        "/nylas/callback",
        params={"code": "abc123", "state": "S1"},
        headers={"Authorization": "Bearer session-jwt", "Cookie": "nylas_oauth_state=S1"},
    )

    assert response.status_code == 200
    assert '<meta http-equiv="refresh" content="2;url=/calendar?sync=success">' in response.text
    assert "Calendar connected successfully!" in response.text
    assert 'nylas_oauth_state=""' in response.headers["set-cookie"]


def test_callback_route_state_mismatch(client, override_backend_client):
    backend_client = override_backend_client(_exchange_ok)
    response = client.get(
        "/nylas/callback",
        params={"code": "abc123", "state": "S2"},
        headers={"Authorization": "Bearer session-jwt", "Cookie": "nylas_oauth_state=S1"},
    )

    assert response.status_code == 403
    assert "Invalid OAuth state" in response.text
    assert "Return to Calendar" in response.text
    assert backend_client._transport.requests == []
    assert 'nylas_oauth_state=""' in response.headers["set-cookie"]


def test_callback_route_uses_session_cookie(client, override_backend_client):
    backend_client = override_backend_client(_exchange_ok)
    response = client.get(
        "/nylas/callback",
        params={"code": "abc123", "state": "S1"},
        headers={"Cookie": "nylas_oauth_state=S1; sb-access-token=cookie-jwt"},
    )

    assert response.status_code == 200
    assert backend_client._transport.requests[0].headers["Authorization"] == "Bearer cookie-jwt"
