"""Authorization code exchange and credential storage."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from calendar_sync.auth.identity import IdentityVerifier
from calendar_sync.clients.nylas_client import NylasAPIError, NylasClient
from calendar_sync.config import Settings, get_settings
from calendar_sync.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DatabaseError,
    ExternalServiceError,
    ValidationError,
)
from calendar_sync.repositories.nylas_account_repository import NylasAccountRepository

logger = logging.getLogger(__name__)


class TokenExchangeService:
    """Turns an authorization code into a stored per-user Nylas credential."""

    def __init__(
        self,
        session: AsyncSession,
        nylas_client: NylasClient,
        identity_verifier: Optional[IdentityVerifier],
        settings: Optional[Settings] = None,
    ):
        """Initialize token exchange service."""
        self.session = session
        self.repository = NylasAccountRepository(session)
        self.nylas_client = nylas_client
        self.identity_verifier = identity_verifier
        self.settings = settings or get_settings()

    async def exchange(self, code: Optional[str], session_token: Optional[str]) -> Dict[str, Any]:
        """
        Exchange ``code`` for an access token and upsert the caller's credential.

        Checks run in a fixed order: code, server configuration, caller identity,
        provider exchange, storage. The first failure wins.

        Raises:
            ValidationError: Code missing (400)
            ConfigurationError: Server secrets missing (500)
            AuthenticationError: Bearer missing or rejected (401)
            ExternalServiceError: Provider refused the grant (400) or was unreachable
            DatabaseError: Credential could not be stored (500)
        """
        if not code:
            raise ValidationError("Authorization code is required")

        missing = self.settings.missing_backend_config()
        if missing or self.identity_verifier is None:
            logger.error(f"Missing required configuration: {missing}")
            raise ConfigurationError(missing=missing)

        if not session_token:
            raise AuthenticationError("Authorization header required")
        try:
            user = await self.identity_verifier.verify(session_token)
        except AuthenticationError as e:
            logger.warning("User verification failed during token exchange")
            raise AuthenticationError("Invalid authentication") from e

        try:
            token = await self.nylas_client.exchange_code(code)
        except NylasAPIError as e:
            raise ExternalServiceError(
                service="nylas",
                message="Token exchange failed",
                status_code=400,
                details={"provider_status": e.provider_status, "provider_body": e.provider_body},
            ) from e

        expires_at = None
        if token.expires_in:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(token.expires_in))

        logger.info(f"Storing Nylas account {token.account_id} for user {user.user_id}")
        try:
            await self.repository.upsert_for_user(
                user_id=user.user_id,
                account_id=token.account_id,
                access_token=token.access_token,
                expires_at=expires_at,
            )
            await self.session.commit()
        except (DatabaseError, SQLAlchemyError) as e:
            logger.error(f"Failed to store account data for user {user.user_id}: {e}")
            raise DatabaseError("Failed to store account data") from e

        return {
            "success": True,
            "account_id": token.account_id,
            "message": "Calendar connected successfully",
        }
