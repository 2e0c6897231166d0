"""Nylas webhook endpoint: challenge handshake and signed notifications."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from calendar_sync.api.dependencies import get_db_session_factory
from calendar_sync.config import get_settings
from calendar_sync.models.webhook_event import WebhookProcessingResult
from calendar_sync.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.get(
    "/nylas-webhook",
    status_code=status.HTTP_200_OK,
    summary="Webhook challenge handshake",
    description="Echo the provider's challenge to prove control of the endpoint",
)
async def webhook_challenge(challenge: Optional[str] = Query(None)):
    """
    Handle the Nylas challenge verification.

    The challenge must come back verbatim as plain text.
    """
    if not challenge:
        return Response(
            content="Challenge parameter missing",
            status_code=status.HTTP_400_BAD_REQUEST,
            headers={"Content-Type": "text/plain"},
        )

    logger.info(f"Nylas webhook challenge received (length: {len(challenge)})")
    return Response(
        content=challenge,
        status_code=status.HTTP_200_OK,
        headers={"Content-Type": "text/plain"},
    )


@router.post(
    "/nylas-webhook",
    response_model=WebhookProcessingResult,
    status_code=status.HTTP_200_OK,
    summary="Receive Nylas notifications",
    description="Verify the HMAC signature and apply event and grant notifications",
)
async def receive_webhook(
    request: Request,
    x_nylas_signature: Optional[str] = Header(None, alias="x-nylas-signature"),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
):
    """Apply a signed notification. Per-event storage failures never fail the response."""
    body = await request.body()
    service = WebhookService(session_factory, get_settings().nylas.webhook_secret)
    result = await service.process(body, x_nylas_signature)
    return WebhookProcessingResult(**result)
