"""Calendar listing through a user's stored credential."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from calendar_sync.auth.identity import IdentityVerifier
from calendar_sync.clients.nylas_client import NylasAPIError, NylasClient
from calendar_sync.exceptions import (
    AuthenticationError,
    CalendarNotConnectedError,
    ConfigurationError,
    ExternalServiceError,
)
from calendar_sync.repositories.nylas_account_repository import NylasAccountRepository

logger = logging.getLogger(__name__)


class CalendarListingService:
    """Lists the caller's provider calendars. No caching, pagination or refresh."""

    def __init__(
        self,
        session: AsyncSession,
        nylas_client: NylasClient,
        identity_verifier: Optional[IdentityVerifier],
    ):
        """Initialize calendar listing service."""
        self.repository = NylasAccountRepository(session)
        self.nylas_client = nylas_client
        self.identity_verifier = identity_verifier

    async def list_calendars(self, session_token: Optional[str]) -> Dict[str, Any]:
        """
        Return ``{success, calendars, account_id}`` for the caller.

        Raises:
            ConfigurationError: Identity provider not configured (500)
            AuthenticationError: Bearer missing or rejected (401)
            CalendarNotConnectedError: No stored credential (404)
            ExternalServiceError: Provider failure, with the provider's status passed through
        """
        if self.identity_verifier is None:
            raise ConfigurationError()

        if not session_token:
            raise AuthenticationError("Authorization header required")
        try:
            user = await self.identity_verifier.verify(session_token)
        except AuthenticationError as e:
            raise AuthenticationError("Invalid authentication") from e

        logger.info(f"Fetching Nylas account for user: {user.user_id}")
        account = await self.repository.get_by_user_id(user.user_id)
        if account is None:
            raise CalendarNotConnectedError(user.user_id)

        try:
            calendars = await self.nylas_client.list_calendars(account.access_token)
        except NylasAPIError as e:
            raise ExternalServiceError(
                service="nylas",
                message="Failed to fetch calendars",
                status_code=e.provider_status,
                details={"provider_body": e.provider_body},
            ) from e

        return {
            "success": True,
            "calendars": calendars,
            "account_id": account.account_id,
        }
