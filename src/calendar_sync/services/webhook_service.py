"""Webhook verification and event mirroring.

Notifications arrive signed with an HMAC-SHA256 of the raw body. Once the
signature verifies, each notification is applied in its own transaction and
the sender always gets a success acknowledgement, so storage problems never
trigger provider retries.
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from calendar_sync.database.session import session_scope
from calendar_sync.exceptions import ConfigurationError, ValidationError, WebhookSignatureError
from calendar_sync.models.webhook_event import (
    NylasEventData,
    NylasWebhookNotification,
)
from calendar_sync.repositories.nylas_account_repository import NylasAccountRepository
from calendar_sync.repositories.nylas_event_repository import NylasEventRepository
from calendar_sync.utils.logging import mask_secret

logger = logging.getLogger(__name__)


def compute_signature(secret: str, body: bytes) -> str:
    """Hex HMAC-SHA256 of the raw body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature: str) -> bool:
    """Constant-time comparison of the received signature against the expected one."""
    expected = compute_signature(secret, body)
    return hmac.compare_digest(expected.encode("utf-8"), signature.strip().lower().encode("utf-8"))


class WebhookService:
    """Applies verified Nylas notifications to the local mirror."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        webhook_secret: Optional[str],
    ):
        """
        Initialize webhook service.

        Args:
            session_factory: Factory for the per-notification database sessions
            webhook_secret: Shared secret the provider signs notifications with
        """
        self.session_factory = session_factory
        self.webhook_secret = webhook_secret
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "event.created": self.handle_event_upsert,
            "event.updated": self.handle_event_upsert,
            "event.deleted": self.handle_event_delete,
            "grant.created": self.handle_grant_created,
            "grant.deleted": self.handle_grant_delete,
        }

    def verify(self, body: bytes, signature: Optional[str]) -> None:
        """
        Check the notification signature. Nothing is read or written before this passes.

        Raises:
            ConfigurationError: Webhook secret not configured (500)
            WebhookSignatureError: Signature missing (400) or mismatched (401)
        """
        if not self.webhook_secret:
            logger.error("NYLAS_WEBHOOK_SECRET is not configured")
            raise ConfigurationError(missing=["NYLAS_WEBHOOK_SECRET"])

        if not signature:
            logger.warning("Missing Nylas signature")
            raise WebhookSignatureError("Missing webhook signature", status_code=400)

        if not verify_signature(self.webhook_secret, body, signature):
            logger.warning(f"Invalid webhook signature {mask_secret(signature)}")
            raise WebhookSignatureError("Invalid webhook signature", status_code=401)

        logger.debug("Webhook signature verified")

    def parse(self, body: bytes) -> NylasWebhookNotification:
        """Decode a verified body. Malformed JSON is a client error."""
        try:
            raw = json.loads(body)
            if not isinstance(raw, dict):
                raise ValueError("Notification body must be a JSON object")
            return NylasWebhookNotification.model_validate(raw)
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Failed to parse webhook payload: {e}")
            raise ValidationError("Invalid webhook payload", details={"reason": str(e)}) from e

    async def process(self, body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify, parse and apply a notification."""
        self.verify(body, signature)
        notification = self.parse(body)
        logger.info(f"Webhook received: {notification.type}")

        handler = self._handlers.get(notification.type or "")
        if handler is None:
            logger.info(f"Unhandled webhook type: {notification.type}")
        else:
            await handler(notification.data)

        return {"success": True}

    async def handle_event_upsert(self, data: Dict[str, Any]) -> None:
        """Mirror a created or updated event under the account's owning user."""
        try:
            event = NylasEventData.model_validate(data)
            if not event.id:
                logger.warning("Event notification without an event id, skipping")
                return

            logger.info(f"Handling event upsert: {event.id}")
            async with session_scope(self.session_factory) as session:
                account = await NylasAccountRepository(session).get_by_account_id(
                    event.account_id or ""
                )
                if account is None:
                    logger.warning(f"Account not found for event: {event.account_id}")
                    return

                await NylasEventRepository(session).upsert(
                    event_id=event.id,
                    user_id=account.user_id,
                    account_id=event.account_id or "",
                    calendar_id=event.calendar_id,
                    title=event.title or "",
                    description=event.description or "",
                    when_start=event.start_time,
                    when_end=event.end_time,
                    when_data=event.when or {},
                    location=event.location or "",
                    payload=data,
                )
            logger.info(f"Event upserted successfully: {event.id}")
        except Exception as e:
            logger.error(f"Failed to upsert event {data.get('id')}: {e}", exc_info=True)

    async def handle_event_delete(self, data: Dict[str, Any]) -> None:
        """Remove a mirrored event. Unknown ids are a no-op."""
        event_id = data.get("id")
        if not event_id:
            logger.warning("Event delete notification without an event id, skipping")
            return
        try:
            async with session_scope(self.session_factory) as session:
                deleted = await NylasEventRepository(session).delete_by_event_id(event_id)
            logger.info(f"Event delete handled: {event_id} (rows removed: {deleted})")
        except Exception as e:
            logger.error(f"Failed to delete event {event_id}: {e}", exc_info=True)

    async def handle_grant_created(self, data: Dict[str, Any]) -> None:
        logger.info(f"Grant created for account: {data.get('account_id')}")

    async def handle_grant_delete(self, data: Dict[str, Any]) -> None:
        """Revocation cascade: the account's events first, then the account itself."""
        account_id = data.get("account_id")
        if not account_id:
            logger.warning("Grant delete notification without an account id, skipping")
            return

        logger.info(f"Handling grant delete: {account_id}")
        try:
            async with session_scope(self.session_factory) as session:
                events = await NylasEventRepository(session).delete_by_account_id(account_id)
            logger.info(f"Deleted {events} events for account {account_id}")
        except Exception as e:
            logger.error(f"Failed to delete events for account {account_id}: {e}", exc_info=True)

        try:
            async with session_scope(self.session_factory) as session:
                await NylasAccountRepository(session).delete_by_account_id(account_id)
            logger.info("Grant and associated data deleted successfully")
        except Exception as e:
            logger.error(f"Failed to delete account {account_id}: {e}", exc_info=True)
