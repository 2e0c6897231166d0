"""Mirrored calendar event repository."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calendar_sync.database.models import NylasEvent
from calendar_sync.repositories.base import BaseRepository


class NylasEventRepository(BaseRepository[NylasEvent]):
    """Repository for events mirrored from the provider."""

    def __init__(self, session: AsyncSession):
        super().__init__(NylasEvent, session)

    async def get_by_event_id(self, event_id: str) -> Optional[NylasEvent]:
        """Get a mirrored event by provider event id."""
        return await self.get_by_key(event_id)

    async def upsert(  # type: ignore[override]
        self,
        event_id: str,
        user_id: str,
        account_id: str,
        calendar_id: Optional[str] = None,
        title: str = "",
        description: str = "",
        when_start: Optional[datetime] = None,
        when_end: Optional[datetime] = None,
        when_data: Optional[Dict[str, Any]] = None,
        location: str = "",
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Insert or fully overwrite the event row.

        Every column is written, so fields missing from a later notification
        become empty/null rather than keeping stale values.
        """
        await super().upsert(
            {
                "event_id": event_id,
                "user_id": user_id,
                "account_id": account_id,
                "calendar_id": calendar_id,
                "title": title,
                "description": description,
                "when_start": when_start,
                "when_end": when_end,
                "when_data": when_data or {},
                "location": location,
                "metadata": payload or {},
            }
        )

    async def delete_by_event_id(self, event_id: str) -> int:
        """Delete an event. Deleting an unknown id is a no-op."""
        return await self.delete_where(event_id=event_id)

    async def delete_by_account_id(self, account_id: str) -> int:
        """Delete every event mirrored for a provider account."""
        return await self.delete_where(account_id=account_id)

    async def list_for_user(self, user_id: str, limit: int = 100) -> List[NylasEvent]:
        """List a user's mirrored events ordered by start time."""
        result = await self.session.execute(
            select(NylasEvent)
            .where(NylasEvent.user_id == user_id)
            .order_by(NylasEvent.when_start)
            .limit(limit)
        )
        return list(result.scalars().all())
