"""Business logic services."""

from calendar_sync.services.calendar_listing_service import CalendarListingService
from calendar_sync.services.token_exchange_service import TokenExchangeService
from calendar_sync.services.webhook_service import (
    WebhookService,
    compute_signature,
    verify_signature,
)

__all__ = [
    "CalendarListingService",
    "TokenExchangeService",
    "WebhookService",
    "compute_signature",
    "verify_signature",
]
