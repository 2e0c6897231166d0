"""Pytest configuration and fixtures."""

import os

# Settings are read once at import time, so the environment must be in place first
os.environ.update(
    {
        "ENVIRONMENT": "development",
        "LOG_LEVEL": "WARNING",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "NYLAS_CLIENT_ID": "test-client-id",
        "NYLAS_CLIENT_SECRET": "test-client-secret",
        "NYLAS_CALLBACK_URI": "http://localhost:3000/nylas/callback",
        "NYLAS_WEBHOOK_SECRET": "test-webhook-secret",
        "SUPABASE_URL": "https://project.supabase.co",
        "SUPABASE_SERVICE_ROLE_KEY": "test-service-role-key",
    }
)

from typing import Callable, Dict, List, Optional  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from calendar_sync.api.dependencies import (  # noqa: E402
    get_backend_client,
    get_db_session_factory,
    get_identity_verifier,
    get_nylas_client,
)
from calendar_sync.auth.identity import AuthenticatedUser  # noqa: E402
from calendar_sync.clients.backend_client import BackendClient  # noqa: E402
from calendar_sync.clients.nylas_client import NylasClient  # noqa: E402
from calendar_sync.database.models import Base  # noqa: E402
from calendar_sync.exceptions import AuthenticationError  # noqa: E402
from calendar_sync.main import app  # noqa: E402


# Test database URL (in-memory SQLite for unit tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

VALID_TOKEN = "valid-session-token"
TEST_USER_ID = "user-1"


class FakeIdentityVerifier:
    """Accepts a fixed set of session tokens."""

    def __init__(self, tokens: Optional[Dict[str, str]] = None):
        self.tokens = tokens if tokens is not None else {VALID_TOKEN: TEST_USER_ID}
        self.calls: List[str] = []

    async def verify(self, token: str) -> AuthenticatedUser:
        self.calls.append(token)
        user_id = self.tokens.get(token)
        if not user_id:
            raise AuthenticationError("Unauthorized")
        return AuthenticatedUser(user_id=user_id, email=f"{user_id}@example.com")


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


def default_nylas_handler(request: httpx.Request) -> httpx.Response:
    """Provider that grants every code and owns two calendars."""
    if request.url.path == "/oauth/token":
        return httpx.Response(
            200,
            json={"access_token": "nylas-access-token", "account_id": "acct_1", "expires_in": 3600},
        )
    if request.url.path == "/calendars":
        return httpx.Response(
            200,
            json=[
                {"id": "cal_1", "name": "Work", "read_only": False},
                {"id": "cal_2", "name": "Holidays", "read_only": True},
            ],
        )
    return httpx.Response(404, json={"message": "not found"})


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def identity_verifier():
    """Identity verifier that knows a single valid token."""
    return FakeIdentityVerifier()


@pytest.fixture
def nylas_transport():
    """Mock transport standing in for the Nylas API."""
    return RecordingTransport(default_nylas_handler)


@pytest.fixture
def nylas_client(nylas_transport):
    """Nylas client wired to the mock transport."""
    return NylasClient(
        client_id="test-client-id",
        client_secret="test-client-secret",
        transport=nylas_transport,
    )


@pytest.fixture
async def api_client(session_factory, identity_verifier, nylas_client):
    """Async HTTP client against the app with data access and outbound calls overridden."""
    app.dependency_overrides[get_db_session_factory] = lambda: session_factory
    app.dependency_overrides[get_identity_verifier] = lambda: identity_verifier
    app.dependency_overrides[get_nylas_client] = lambda: nylas_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def client():
    """Create test client."""
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_backend_client(handler: Callable[[httpx.Request], httpx.Response]) -> BackendClient:
    """Backend client whose calls are answered by ``handler``."""
    return BackendClient(
        exchange_url="https://project.supabase.co/functions/v1/nylas-exchange",
        calendars_url="https://project.supabase.co/functions/v1/nylas-calendars",
        transport=RecordingTransport(handler),
    )


@pytest.fixture
def backend_client_factory():
    """Factory for backend clients with a custom response handler."""
    return make_backend_client


@pytest.fixture
def override_backend_client():
    """Install a backend client override on the app for portal route tests."""

    def _install(handler: Callable[[httpx.Request], httpx.Response]) -> BackendClient:
        backend_client = make_backend_client(handler)
        app.dependency_overrides[get_backend_client] = lambda: backend_client
        return backend_client

    yield _install
    app.dependency_overrides.pop(get_backend_client, None)
