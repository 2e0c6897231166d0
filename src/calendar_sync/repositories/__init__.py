"""Repository layer for data access."""

from calendar_sync.repositories.base import BaseRepository
from calendar_sync.repositories.nylas_account_repository import NylasAccountRepository
from calendar_sync.repositories.nylas_event_repository import NylasEventRepository

__all__ = [
    "BaseRepository",
    "NylasAccountRepository",
    "NylasEventRepository",
]
