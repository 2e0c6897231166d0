"""Token exchange and calendar listing functions."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from calendar_sync.api.dependencies import get_db_session, get_identity_verifier, get_nylas_client
from calendar_sync.auth.dependencies import get_token_from_header
from calendar_sync.auth.identity import IdentityVerifier
from calendar_sync.clients.nylas_client import NylasClient
from calendar_sync.services.calendar_listing_service import CalendarListingService
from calendar_sync.services.token_exchange_service import TokenExchangeService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["nylas"])


class ExchangeRequest(BaseModel):
    """Token exchange request."""

    code: Optional[str] = Field(default=None, description="OAuth authorization code")


class ExchangeResponse(BaseModel):
    """Token exchange response."""

    success: bool = Field(..., description="Whether the calendar was connected")
    account_id: str = Field(..., description="Connected provider account ID")
    message: str = Field(..., description="Human-readable result")


class CalendarListResponse(BaseModel):
    """Calendar listing response."""

    success: bool = Field(..., description="Whether the listing succeeded")
    calendars: List[Dict[str, Any]] = Field(default_factory=list, description="Provider calendars")
    account_id: str = Field(..., description="Connected provider account ID")


@router.post(
    "/nylas-exchange",
    response_model=ExchangeResponse,
    status_code=status.HTTP_200_OK,
    summary="Exchange an OAuth code",
    description="Exchange a Nylas authorization code for an access token and store it for the caller",
)
async def exchange_code(
    request: Optional[ExchangeRequest] = Body(default=None),
    token: Optional[str] = Depends(get_token_from_header),
    session: AsyncSession = Depends(get_db_session),
    nylas_client: NylasClient = Depends(get_nylas_client),
    identity_verifier: Optional[IdentityVerifier] = Depends(get_identity_verifier),
):
    """Connect the caller's calendar."""
    service = TokenExchangeService(session, nylas_client, identity_verifier)
    result = await service.exchange(code=request.code if request else None, session_token=token)
    return ExchangeResponse(**result)


@router.get(
    "/nylas-calendars",
    response_model=CalendarListResponse,
    status_code=status.HTTP_200_OK,
    summary="List connected calendars",
    description="List the caller's calendars through their stored Nylas credential",
)
async def list_calendars(
    token: Optional[str] = Depends(get_token_from_header),
    session: AsyncSession = Depends(get_db_session),
    nylas_client: NylasClient = Depends(get_nylas_client),
    identity_verifier: Optional[IdentityVerifier] = Depends(get_identity_verifier),
):
    """List the caller's calendars."""
    service = CalendarListingService(session, nylas_client, identity_verifier)
    result = await service.list_calendars(session_token=token)
    return CalendarListResponse(**result)
