"""HTTP client the portal uses to call the backend functions."""

import logging
from typing import Any, Dict, Optional, Union

import httpx

from calendar_sync.config import get_settings

logger = logging.getLogger(__name__)


class BackendResponse:
    """Status code and decoded body of a backend function call."""

    def __init__(self, status_code: int, body: Union[Dict[str, Any], str, None]):
        self.status_code = status_code
        self.body = body

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def error_message(self) -> str:
        """Server-supplied error message, or a generic one built from the status."""
        if isinstance(self.body, dict):
            error = self.body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
        return f"HTTP {self.status_code}"

    @property
    def error_code(self) -> Optional[str]:
        """Machine-readable code from the error envelope, if the body carries one."""
        if isinstance(self.body, dict):
            error = self.body.get("error")
            if isinstance(error, dict) and error.get("code"):
                return str(error["code"])
        return None


class BackendClient:
    """
    Calls the token exchange and calendar listing functions on behalf of a user.

    The user's session token is forwarded as a bearer credential. Transport
    failures propagate as ``httpx.HTTPError``; HTTP error statuses do not raise.
    """

    def __init__(
        self,
        exchange_url: str,
        calendars_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the backend client.

        Args:
            exchange_url: Full URL of the token exchange function
            calendars_url: Full URL of the calendar listing function
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
        """
        self.exchange_url = exchange_url
        self.calendars_url = calendars_url
        self.timeout = timeout
        self._transport = transport

    def _headers(self, session_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {session_token}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _wrap(response: httpx.Response) -> BackendResponse:
        try:
            body: Union[Dict[str, Any], str, None] = response.json()
        except ValueError:
            body = response.text or None
        return BackendResponse(response.status_code, body)

    async def exchange_code(self, code: str, session_token: str) -> BackendResponse:
        """POST the authorization code to the token exchange function."""
        logger.debug(f"POST {self.exchange_url}")
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                self.exchange_url, json={"code": code}, headers=self._headers(session_token)
            )
        return self._wrap(response)

    async def list_calendars(self, session_token: str) -> BackendResponse:
        """GET the user's calendars from the calendar listing function."""
        logger.debug(f"GET {self.calendars_url}")
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.calendars_url, headers=self._headers(session_token))
        return self._wrap(response)


def get_backend_client() -> BackendClient:
    """Build a backend client from the current settings."""
    settings = get_settings()
    return BackendClient(
        exchange_url=settings.exchange_endpoint,
        calendars_url=settings.calendars_endpoint,
        timeout=settings.portal.timeout,
    )
