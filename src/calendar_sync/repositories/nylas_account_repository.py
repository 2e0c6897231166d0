"""Nylas account credential repository."""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calendar_sync.database.models import NylasAccount
from calendar_sync.repositories.base import BaseRepository


class NylasAccountRepository(BaseRepository[NylasAccount]):
    """Repository for stored Nylas account credentials (one per user)."""

    def __init__(self, session: AsyncSession):
        super().__init__(NylasAccount, session)

    async def get_by_user_id(self, user_id: str) -> Optional[NylasAccount]:
        """Get the credential stored for a user."""
        return await self.get_by_key(user_id)

    async def get_by_account_id(self, account_id: str) -> Optional[NylasAccount]:
        """Resolve the owning credential of a provider account."""
        result = await self.session.execute(
            select(NylasAccount)
            .where(NylasAccount.account_id == account_id)
            .order_by(NylasAccount.updated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def upsert_for_user(
        self,
        user_id: str,
        account_id: str,
        access_token: str,
        expires_at: Optional[datetime],
    ) -> None:
        """Create or replace the user's credential. Re-connecting overwrites the row."""
        await self.upsert(
            {
                "user_id": user_id,
                "account_id": account_id,
                "access_token": access_token,
                "expires_at": expires_at,
            }
        )

    async def delete_by_account_id(self, account_id: str) -> int:
        """Delete the credential(s) of a revoked provider account."""
        return await self.delete_where(account_id=account_id)
