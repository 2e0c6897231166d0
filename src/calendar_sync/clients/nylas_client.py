"""HTTP client for the Nylas OAuth and calendar APIs."""

import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from calendar_sync.config import get_settings
from calendar_sync.exceptions import ExternalServiceError
from calendar_sync.utils.logging import mask_secret

logger = logging.getLogger(__name__)


class NylasAPIError(ExternalServiceError):
    """Non-OK response from the Nylas API. Keeps the provider status and body."""

    def __init__(self, status_code: int, body: Union[Dict[str, Any], str, None], message: str):
        super().__init__(
            service="nylas",
            message=message,
            status_code=status_code,
            details={"provider_status": status_code, "provider_body": body},
        )
        self.provider_status = status_code
        self.provider_body = body


class NylasTokenResponse:
    """Result of an authorization-code grant."""

    def __init__(self, access_token: str, account_id: str, expires_in: Optional[int] = None):
        self.access_token = access_token
        self.account_id = account_id
        self.expires_in = expires_in

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NylasTokenResponse":
        """Build from the provider's token response body."""
        return cls(
            access_token=data.get("access_token", ""),
            account_id=data.get("account_id", ""),
            expires_in=data.get("expires_in"),
        )


def _response_body(response: httpx.Response) -> Union[Dict[str, Any], str]:
    """Provider body as JSON when possible, raw text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text


class NylasClient:
    """
    Client for the two Nylas endpoints the sync flow needs.

    Example:
        ```python
        client = NylasClient(client_id="...", client_secret="...")
        token = await client.exchange_code("abc123")
        calendars = await client.list_calendars(token.access_token)
        ```
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        api_url: str = "https://api.nylas.com",
        token_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Nylas client.

        Args:
            client_id: OAuth client ID
            client_secret: OAuth client secret
            api_url: Nylas API base URL
            token_url: OAuth token endpoint (default: ``{api_url}/oauth/token``)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_url = api_url.rstrip("/")
        self.token_url = token_url or f"{self.api_url}/oauth/token"
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def exchange_code(self, code: str) -> NylasTokenResponse:
        """
        Exchange an authorization code for an access token.

        Raises:
            NylasAPIError: If the provider answers with a non-OK status
            ExternalServiceError: If the provider cannot be reached
        """
        url = self.token_url
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "authorization_code",
            "code": code,
        }

        logger.info("Exchanging authorization code for access token")
        try:
            async with self._client() as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Nylas token exchange request failed: {e}")
            raise ExternalServiceError("nylas", f"Nylas token exchange request failed: {e}") from e

        if not response.is_success:
            body = _response_body(response)
            logger.error(f"Nylas token exchange failed with status {response.status_code}: {body}")
            raise NylasAPIError(response.status_code, body, "Token exchange failed")

        token = NylasTokenResponse.from_dict(response.json())
        logger.info(
            f"Token exchange successful for account {token.account_id} "
            f"(token {mask_secret(token.access_token)})"
        )
        return token

    async def list_calendars(self, access_token: str) -> List[Dict[str, Any]]:
        """
        Fetch the calendars visible to an access token.

        Raises:
            NylasAPIError: If the provider answers with a non-OK status
            ExternalServiceError: If the provider cannot be reached or answers with something other than a list of calendars
        """
        url = f"{self.api_url}/calendars"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        logger.debug(f"GET {url}")
        try:
            async with self._client() as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Nylas calendars request failed: {e}")
            raise ExternalServiceError("nylas", f"Nylas calendars request failed: {e}") from e

        if not response.is_success:
            body = response.text
            logger.error(f"Nylas calendars fetch failed with status {response.status_code}: {body}")
            raise NylasAPIError(response.status_code, body, "Failed to fetch calendars")

        calendars = _response_body(response)
        if not isinstance(calendars, list) or not all(isinstance(c, dict) for c in calendars):
            logger.error(f"Nylas calendars response is not a list of calendars: {calendars}")
            raise ExternalServiceError(
                "nylas",
                "Unexpected calendars response from Nylas",
                details={"provider_body": calendars},
            )

        logger.info(f"Fetched {len(calendars)} calendars")
        return calendars


def get_nylas_client() -> NylasClient:
    """Build a Nylas client from the current settings."""
    settings = get_settings()
    return NylasClient(
        client_id=settings.nylas.client_id,
        client_secret=settings.nylas.client_secret,
        api_url=settings.nylas.api_url,
        token_url=settings.nylas.token_url,
        timeout=settings.nylas.timeout,
    )
