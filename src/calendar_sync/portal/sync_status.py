"""Calendar sync status derived from the calendar listing function."""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from calendar_sync.clients.backend_client import BackendClient, BackendResponse

logger = logging.getLogger(__name__)

# Error messages that mean "nothing connected yet" rather than a failure
_DISCONNECTED_MARKERS = (
    "not authenticated",
    "invalid authentication",
    "no nylas account",
    "calendar not connected",
)


class SyncStatus(str, Enum):
    """Displayed sync states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class SyncStatusSnapshot:
    """One resolved view of the user's sync state."""

    def __init__(
        self,
        status: SyncStatus,
        calendars: Optional[List[Dict[str, Any]]] = None,
        error: Optional[str] = None,
        account_id: Optional[str] = None,
        connect_url: Optional[str] = None,
    ):
        self.status = status
        self.calendars = calendars or []
        self.error = error
        self.account_id = account_id
        self.connect_url = connect_url
        self.checked_at = datetime.now(timezone.utc)

    @property
    def label(self) -> str:
        """Badge text for the status."""
        if self.status == SyncStatus.CONNECTED:
            count = len(self.calendars)
            return f"Connected ({count} calendar{'' if count == 1 else 's'})"
        if self.status == SyncStatus.CONNECTING:
            return "Connecting..."
        if self.status == SyncStatus.ERROR:
            return "Connection Error"
        return "Not Connected"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "label": self.label,
            "calendars": self.calendars,
            "error": self.error,
            "account_id": self.account_id,
            "connect_url": self.connect_url,
            "checked_at": self.checked_at.isoformat(),
        }


def resolve_sync_status(
    response: Optional[BackendResponse] = None,
    error: Optional[str] = None,
    in_flight: bool = False,
) -> SyncStatus:
    """
    Map a listing outcome to a displayed status.

    Args:
        response: Listing response, if one arrived
        error: Failure message when no usable response arrived
        in_flight: True while a request is outstanding
    """
    if in_flight:
        return SyncStatus.CONNECTING

    if response is None:
        if error and any(marker in error.lower() for marker in _DISCONNECTED_MARKERS):
            return SyncStatus.DISCONNECTED
        return SyncStatus.ERROR

    if not response.ok:
        # Provider statuses are passed through by the listing function and are failures
        if response.error_code == "EXTERNAL_SERVICE_ERROR":
            return SyncStatus.ERROR
        if response.status_code == 404:
            return SyncStatus.DISCONNECTED
        if response.status_code == 401 and response.error_code == "AUTHENTICATION_ERROR":
            return SyncStatus.DISCONNECTED
        message = response.error_message.lower()
        if any(marker in message for marker in _DISCONNECTED_MARKERS):
            return SyncStatus.DISCONNECTED
        return SyncStatus.ERROR

    body = response.body if isinstance(response.body, dict) else {}
    calendars = body.get("calendars")
    if not isinstance(calendars, list):
        return SyncStatus.ERROR
    return SyncStatus.CONNECTED if calendars else SyncStatus.DISCONNECTED


class SyncStatusMonitor:
    """Fetches and tracks the sync status for one user session."""

    def __init__(
        self,
        backend_client: BackendClient,
        session_token: Optional[str],
        connect_url: str = "/calendar/connect",
        poll_interval: float = 30.0,
    ):
        self.backend_client = backend_client
        self.poll_interval = poll_interval
        self.session_token = session_token
        self.connect_url = connect_url
        self.current = SyncStatusSnapshot(SyncStatus.DISCONNECTED, connect_url=connect_url)

    def _snapshot(
        self,
        status: SyncStatus,
        calendars: Optional[List[Dict[str, Any]]] = None,
        error: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> SyncStatusSnapshot:
        connect_url = (
            self.connect_url if status in (SyncStatus.DISCONNECTED, SyncStatus.ERROR) else None
        )
        self.current = SyncStatusSnapshot(status, calendars, error, account_id, connect_url)
        return self.current

    async def refresh(self) -> SyncStatusSnapshot:
        """Fetch the calendar list once and resolve the status. Never raises on HTTP failure."""
        if not self.session_token:
            return self._snapshot(SyncStatus.DISCONNECTED, error="Not authenticated")

        self._snapshot(SyncStatus.CONNECTING)
        try:
            response = await self.backend_client.list_calendars(self.session_token)
        except httpx.HTTPError as e:
            message = f"Network error: {e}"
            logger.warning(f"Sync status check failed: {message}")
            return self._snapshot(resolve_sync_status(error=message), error=message)

        status = resolve_sync_status(response)
        body = response.body if isinstance(response.body, dict) else {}
        error = None if response.ok else response.error_message
        calendars = body.get("calendars") if response.ok else None
        return self._snapshot(
            status,
            calendars=calendars if isinstance(calendars, list) else None,
            error=error,
            account_id=body.get("account_id") if response.ok else None,
        )

    async def poll(self, interval: Optional[float] = None) -> AsyncIterator[SyncStatusSnapshot]:
        """Yield a fresh snapshot every ``interval`` seconds (default: the monitor's poll interval)."""
        delay = self.poll_interval if interval is None else interval
        while True:
            yield await self.refresh()
            await asyncio.sleep(delay)
