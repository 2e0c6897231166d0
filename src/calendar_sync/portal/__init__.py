"""Browser-facing pieces of the calendar connect flow."""

from calendar_sync.portal.callback import CallbackOutcome, CallbackResult, OAuthCallbackHandler
from calendar_sync.portal.connect import ConnectInitiator
from calendar_sync.portal.state_store import CookieStateStore, InMemoryStateStore, OAuthStateStore
from calendar_sync.portal.sync_status import (
    SyncStatus,
    SyncStatusMonitor,
    SyncStatusSnapshot,
    resolve_sync_status,
)

__all__ = [
    "CallbackOutcome",
    "CallbackResult",
    "ConnectInitiator",
    "CookieStateStore",
    "InMemoryStateStore",
    "OAuthCallbackHandler",
    "OAuthStateStore",
    "SyncStatus",
    "SyncStatusMonitor",
    "SyncStatusSnapshot",
    "resolve_sync_status",
]
