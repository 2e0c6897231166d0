"""SQLAlchemy database models."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class NylasAccount(Base):
    """Stored Nylas credential for a user who connected a calendar.

    One row per user; the token exchange upserts on ``user_id``.
    """

    __tablename__ = "nylas_accounts"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<NylasAccount(user_id={self.user_id}, account_id={self.account_id})>"


class NylasEvent(Base):
    """Local mirror of a provider-side calendar event, kept current by webhooks."""

    __tablename__ = "nylas_events"

    event_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    account_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    calendar_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    title: Mapped[str] = mapped_column(Text, default="", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    when_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    when_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    when_data: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    location: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # "metadata" is reserved on declarative classes, so the attribute is renamed
    payload: Mapped[Dict[str, Any]] = mapped_column(
        "metadata", JSONType, default=dict, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<NylasEvent(event_id={self.event_id}, account_id={self.account_id})>"
