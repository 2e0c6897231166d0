"""Overridable FastAPI dependencies for data access and outbound clients."""

from typing import AsyncGenerator, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from calendar_sync.auth.identity import IdentityVerifier, build_identity_verifier
from calendar_sync.clients.backend_client import BackendClient
from calendar_sync.clients.backend_client import get_backend_client as build_backend_client
from calendar_sync.clients.nylas_client import NylasClient
from calendar_sync.clients.nylas_client import get_nylas_client as build_nylas_client
from calendar_sync.database.session import get_session_factory


def get_db_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for handlers that open their own transactions."""
    return get_session_factory()


async def get_db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Services commit explicitly; anything left open is rolled back."""
    async with session_factory() as session:
        yield session


def get_identity_verifier() -> Optional[IdentityVerifier]:
    return build_identity_verifier()


def get_nylas_client() -> NylasClient:
    return build_nylas_client()


def get_backend_client() -> BackendClient:
    return build_backend_client()
