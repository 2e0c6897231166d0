"""Tests for the calendar listing function."""

import httpx
import pytest

from calendar_sync.api.dependencies import get_identity_verifier, get_nylas_client
from calendar_sync.clients.backend_client import BackendResponse
from calendar_sync.clients.nylas_client import NylasClient
from calendar_sync.main import app
from calendar_sync.portal.sync_status import SyncStatus, resolve_sync_status
from calendar_sync.repositories.nylas_account_repository import NylasAccountRepository

from conftest import TEST_USER_ID, VALID_TOKEN, RecordingTransport

CALENDARS_URL = "/functions/v1/nylas-calendars"
AUTH = {"Authorization": f"Bearer {VALID_TOKEN}"}


async def _connect(session_factory, access_token: str = "stored-token"):
    async with session_factory() as session:
        await NylasAccountRepository(session).upsert_for_user(
            user_id=TEST_USER_ID, account_id="acct_1", access_token=access_token, expires_at=None
        )
        await session.commit()


@pytest.mark.asyncio
async def test_lists_calendars_with_stored_token(api_client, session_factory, nylas_transport):
    await _connect(session_factory)

    response = await api_client.get(CALENDARS_URL, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["account_id"] == "acct_1"
    assert [c["id"] for c in body["calendars"]] == ["cal_1", "cal_2"]

    provider_request = nylas_transport.requests[0]
    assert str(provider_request.url) == "https://api.nylas.com/calendars"
    assert provider_request.headers["Authorization"] == "Bearer stored-token"


@pytest.mark.asyncio
async def test_not_connected_returns_404(api_client, nylas_transport):
    response = await api_client.get(CALENDARS_URL, headers=AUTH)

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["message"] == "Calendar not connected. Please connect your calendar first."
    assert error["code"] == "CALENDAR_NOT_CONNECTED"
    assert nylas_transport.requests == []


@pytest.mark.asyncio
async def test_missing_or_invalid_bearer_returns_401(api_client):
    assert (await api_client.get(CALENDARS_URL)).status_code == 401
    response = await api_client.get(CALENDARS_URL, headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unconfigured_identity_provider_returns_500(api_client):
    app.dependency_overrides[get_identity_verifier] = lambda: None

    response = await api_client.get(CALENDARS_URL, headers=AUTH)

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "CONFIGURATION_ERROR"


@pytest.mark.asyncio
async def test_provider_failure_passes_status_through(api_client, session_factory):
    await _connect(session_factory)
    client = NylasClient(
        transport=RecordingTransport(lambda request: httpx.Response(403, text="token revoked"))
    )
    app.dependency_overrides[get_nylas_client] = lambda: client

    response = await api_client.get(CALENDARS_URL, headers=AUTH)

    assert response.status_code == 403
    error = response.json()["error"]
    assert error["message"] == "Failed to fetch calendars"
    assert error["details"]["provider_body"] == "token revoked"


@pytest.mark.asyncio
async def test_unexpected_provider_body_returns_502(api_client, session_factory):
    await _connect(session_factory)
    client = NylasClient(
        transport=RecordingTransport(lambda request: httpx.Response(200, json={"data": [{"id": "c"}]}))
    )
    app.dependency_overrides[get_nylas_client] = lambda: client

    response = await api_client.get(CALENDARS_URL, headers=AUTH)

    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "EXTERNAL_SERVICE_ERROR"
    assert error["details"]["provider_body"] == {"data": [{"id": "c"}]}


@pytest.mark.asyncio
async def test_expired_provider_token_shows_as_sync_error(api_client, session_factory):
    await _connect(session_factory)
    client = NylasClient(
        transport=RecordingTransport(lambda request: httpx.Response(401, text="token expired"))
    )
    app.dependency_overrides[get_nylas_client] = lambda: client

    response = await api_client.get(CALENDARS_URL, headers=AUTH)

    assert response.status_code == 401
    listing = BackendResponse(response.status_code, response.json())
    assert resolve_sync_status(listing) == SyncStatus.ERROR
