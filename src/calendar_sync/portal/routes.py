"""Browser-facing routes: connect, OAuth callback and sync status."""

import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from calendar_sync.api.dependencies import get_backend_client
from calendar_sync.clients.backend_client import BackendClient
from calendar_sync.config import get_settings
from calendar_sync.portal.callback import CallbackOutcome, CallbackResult, OAuthCallbackHandler
from calendar_sync.portal.connect import ConnectInitiator
from calendar_sync.portal.state_store import CookieStateStore
from calendar_sync.portal.sync_status import SyncStatusMonitor

logger = logging.getLogger(__name__)

router = APIRouter(tags=["portal"])

CONNECT_PATH = "/calendar/connect"

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Calendar Connection</title>
{refresh}
</head>
<body>
<main class="calendar-connection calendar-connection--{outcome}">
<h1>Calendar Connection</h1>
<p class="message">{message}</p>
{extra}
</main>
</body>
</html>
"""


def _state_store(request: Request) -> CookieStateStore:
    settings = get_settings()
    return CookieStateStore(
        request.cookies,
        cookie_name=settings.portal.state_cookie_name,
        secure=settings.is_production,
    )


def _session_token(request: Request) -> Optional[str]:
    """Session credential from the Authorization header, falling back to the session cookie."""
    authorization = request.headers.get("authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get(get_settings().portal.session_cookie_name) or None


def render_callback_page(result: CallbackResult, calendar_path: str = "/calendar") -> str:
    """Status page for a finished callback."""
    if result.outcome == CallbackOutcome.SUCCESS:
        redirect_url = html.escape(result.redirect_url or calendar_path, quote=True)
        refresh = f'<meta http-equiv="refresh" content="{result.redirect_delay};url={redirect_url}">'
        message = "Calendar connected successfully!"
        extra = '<p class="hint">Redirecting to calendar...</p>'
    else:
        refresh = ""
        message = html.escape(result.message)
        extra = f'<a class="button" href="{html.escape(calendar_path, quote=True)}">Return to Calendar</a>'

    return _PAGE_TEMPLATE.format(
        refresh=refresh,
        outcome=result.outcome.value,
        message=message,
        extra=extra,
    )


@router.get("/calendar/connect", summary="Start the calendar connect flow")
async def connect_calendar(request: Request):
    """Persist a fresh state token and send the browser to the consent screen."""
    store = _state_store(request)
    url = ConnectInitiator.from_settings().begin(store)
    response = RedirectResponse(url=url, status_code=307)
    store.apply(response)
    return response


@router.get("/nylas/callback", response_class=HTMLResponse, summary="OAuth callback")
async def oauth_callback(
    request: Request,
    backend_client: BackendClient = Depends(get_backend_client),
):
    """Finish the connect flow. The state cookie is deleted on every outcome."""
    settings = get_settings()
    store = _state_store(request)
    handler = OAuthCallbackHandler(
        backend_client,
        store,
        success_redirect=settings.portal.success_redirect_path,
        redirect_delay=settings.portal.redirect_delay_seconds,
    )
    result = await handler.handle(request.query_params, _session_token(request))

    status_code = {
        CallbackOutcome.SUCCESS: 200,
        CallbackOutcome.ERROR: 400,
        CallbackOutcome.SECURITY_ERROR: 403,
    }[result.outcome]
    response = HTMLResponse(
        render_callback_page(result, settings.portal.calendar_path),
        status_code=status_code,
    )
    store.apply(response)
    return response


@router.get("/calendar/sync-status", summary="Current calendar sync status")
async def sync_status(
    request: Request,
    backend_client: BackendClient = Depends(get_backend_client),
):
    """Resolve the caller's sync status with one listing call."""
    monitor = SyncStatusMonitor(
        backend_client,
        _session_token(request),
        connect_url=CONNECT_PATH,
        poll_interval=get_settings().portal.poll_interval_seconds,
    )
    snapshot = await monitor.refresh()
    # Tells the page when to ask again
    return JSONResponse({**snapshot.to_dict(), "poll_interval": monitor.poll_interval})
