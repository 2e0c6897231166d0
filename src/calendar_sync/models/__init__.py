"""Pydantic models shared across routes and services."""

from calendar_sync.models.webhook_event import (
    NylasEventData,
    NylasWebhookNotification,
    WebhookProcessingResult,
)

__all__ = [
    "NylasEventData",
    "NylasWebhookNotification",
    "WebhookProcessingResult",
]
