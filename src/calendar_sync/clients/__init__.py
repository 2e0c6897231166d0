"""Outbound HTTP clients."""

from calendar_sync.clients.backend_client import BackendClient, BackendResponse, get_backend_client
from calendar_sync.clients.nylas_client import (
    NylasAPIError,
    NylasClient,
    NylasTokenResponse,
    get_nylas_client,
)

__all__ = [
    "BackendClient",
    "BackendResponse",
    "NylasAPIError",
    "NylasClient",
    "NylasTokenResponse",
    "get_backend_client",
    "get_nylas_client",
]
