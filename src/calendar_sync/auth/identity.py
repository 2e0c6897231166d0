"""Session token verification against the identity provider."""

import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from jose import JWTError, jwt

from calendar_sync.config import get_settings
from calendar_sync.exceptions import AuthenticationError
from calendar_sync.utils.logging import mask_secret

logger = logging.getLogger(__name__)


class AuthenticatedUser:
    """Identity of the caller resolved from a session token."""

    def __init__(
        self,
        user_id: str,
        email: Optional[str] = None,
        claims: Optional[Dict[str, Any]] = None,
    ):
        """Initialize authenticated user."""
        self.user_id = user_id
        self.email = email
        self.claims = claims or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"user_id": self.user_id, "email": self.email}


class IdentityVerifier(Protocol):
    """Anything that can turn a session token into an authenticated user."""

    async def verify(self, token: str) -> AuthenticatedUser:
        ...


class SupabaseIdentityVerifier:
    """Verifies session tokens by asking the identity provider who the bearer is."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize verifier.

        Args:
            base_url: Identity provider base URL
            service_key: Backend service credential sent as ``apikey``
            timeout: Request timeout in seconds
            client: Optional pre-built HTTP client (tests inject a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self._client = client

    async def verify(self, token: str) -> AuthenticatedUser:
        """Resolve the token's user or raise AuthenticationError."""
        if not token:
            raise AuthenticationError("Unauthorized")

        url = f"{self.base_url}/auth/v1/user"
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {token}",
        }
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Identity lookup failed for token {mask_secret(token)}: {e}")
            raise AuthenticationError("Unauthorized") from e

        if response.status_code != 200:
            logger.info(
                f"Identity provider rejected token {mask_secret(token)} "
                f"(status {response.status_code})"
            )
            raise AuthenticationError("Unauthorized")

        data = response.json()
        user_id = data.get("id")
        if not user_id:
            raise AuthenticationError("Unauthorized")
        return AuthenticatedUser(user_id=user_id, email=data.get("email"), claims=data)


class JWTIdentityVerifier:
    """Verifies HS256 session tokens locally with the shared JWT secret."""

    def __init__(self, secret: str, audience: Optional[str] = "authenticated"):
        self.secret = secret
        self.audience = audience

    async def verify(self, token: str) -> AuthenticatedUser:
        """Decode and validate the token, returning its subject."""
        if not token:
            raise AuthenticationError("Unauthorized")
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=["HS256"],
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as e:
            logger.info(f"JWT verification failed for token {mask_secret(token)}: {e}")
            raise AuthenticationError("Unauthorized") from e

        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("Unauthorized")
        return AuthenticatedUser(user_id=user_id, email=claims.get("email"), claims=claims)


def build_identity_verifier() -> Optional[IdentityVerifier]:
    """Pick the verifier for the current configuration, or None when unconfigured."""
    settings = get_settings()
    if settings.supabase.jwt_secret:
        return JWTIdentityVerifier(
            secret=settings.supabase.jwt_secret,
            audience=settings.supabase.jwt_audience,
        )
    if not settings.supabase.url or not settings.supabase.service_role_key:
        return None
    return SupabaseIdentityVerifier(
        base_url=settings.supabase.url,
        service_key=settings.supabase.service_role_key,
        timeout=settings.nylas.timeout,
    )
