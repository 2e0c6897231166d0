"""Pydantic models for Nylas webhook notifications."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class NylasWebhookNotification(BaseModel):
    """Signed notification body: a type tag and the affected object."""

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = Field(default=None, description="Notification type, e.g. event.created")
    data: Dict[str, Any] = Field(default_factory=dict, description="Affected object")


class NylasEventData(BaseModel):
    """Event object carried by event.* notifications."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(default=None, description="Provider event ID")
    account_id: Optional[str] = Field(default=None, description="Provider account ID")
    calendar_id: Optional[str] = Field(default=None, description="Provider calendar ID")
    title: Optional[str] = Field(default=None, description="Event title")
    description: Optional[str] = Field(default=None, description="Event description")
    location: Optional[str] = Field(default=None, description="Event location")
    when: Optional[Dict[str, Any]] = Field(default=None, description="Raw time specification")

    @property
    def start_time(self) -> Optional[datetime]:
        return _epoch_to_datetime((self.when or {}).get("start_time"))

    @property
    def end_time(self) -> Optional[datetime]:
        return _epoch_to_datetime((self.when or {}).get("end_time"))


class WebhookProcessingResult(BaseModel):
    """Acknowledgement returned once a notification is verified."""

    success: bool = Field(default=True, description="Always true once the signature verified")


def _epoch_to_datetime(value: Any) -> Optional[datetime]:
    """Provider epoch seconds to an aware UTC datetime. Zero and missing map to None."""
    if not value:
        return None
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
