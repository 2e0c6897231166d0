"""OAuth callback handling: state check, then code forwarding to the backend."""

import hmac
import logging
from enum import Enum
from typing import Mapping, Optional

import httpx

from calendar_sync.clients.backend_client import BackendClient
from calendar_sync.portal.state_store import OAuthStateStore

logger = logging.getLogger(__name__)


class CallbackOutcome(str, Enum):
    """Terminal outcomes of a callback."""

    SUCCESS = "success"
    ERROR = "error"
    SECURITY_ERROR = "security_error"


class CallbackResult:
    """Outcome of one callback invocation."""

    def __init__(
        self,
        outcome: CallbackOutcome,
        message: str,
        account_id: Optional[str] = None,
        redirect_url: Optional[str] = None,
        redirect_delay: int = 0,
    ):
        self.outcome = outcome
        self.message = message
        self.account_id = account_id
        self.redirect_url = redirect_url
        self.redirect_delay = redirect_delay

    @property
    def succeeded(self) -> bool:
        return self.outcome == CallbackOutcome.SUCCESS

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "message": self.message,
            "account_id": self.account_id,
            "redirect_url": self.redirect_url,
        }


class OAuthCallbackHandler:
    """
    Runs the callback state machine once per page load.

    The stored state is consumed before anything else, so replaying a callback
    URL always ends in a security error.
    """

    def __init__(
        self,
        backend_client: BackendClient,
        state_store: OAuthStateStore,
        success_redirect: str = "/calendar?sync=success",
        redirect_delay: int = 2,
    ):
        self.backend_client = backend_client
        self.state_store = state_store
        self.success_redirect = success_redirect
        self.redirect_delay = redirect_delay

    def _error(self, message: str) -> CallbackResult:
        logger.warning(f"Calendar connect failed: {message}")
        return CallbackResult(CallbackOutcome.ERROR, message)

    async def handle(
        self, params: Mapping[str, str], session_token: Optional[str]
    ) -> CallbackResult:
        """Validate the callback parameters and forward the code for exchange."""
        stored_state = self.state_store.load()
        self.state_store.clear()

        returned_state = params.get("state") or ""
        if not stored_state or not hmac.compare_digest(
            stored_state.encode("utf-8"), returned_state.encode("utf-8")
        ):
            logger.warning("OAuth state mismatch on callback")
            return CallbackResult(CallbackOutcome.SECURITY_ERROR, "Invalid OAuth state")

        provider_error = params.get("error")
        if provider_error:
            description = params.get("error_description")
            return self._error(f"{provider_error}: {description}" if description else provider_error)

        code = params.get("code")
        if not code:
            return self._error("No code received")

        if not session_token:
            return self._error("Authentication required")

        try:
            response = await self.backend_client.exchange_code(code, session_token)
        except httpx.HTTPError as e:
            return self._error(f"Failed to connect calendar: {e}")

        body = response.body if isinstance(response.body, dict) else {}
        if not response.ok:
            return self._error(response.error_message)
        if body.get("success") is not True:
            return self._error(str(body.get("error") or "Unknown error occurred"))

        logger.info(f"Calendar connected for account {body.get('account_id')}")
        return CallbackResult(
            CallbackOutcome.SUCCESS,
            str(body.get("message") or "Calendar connected successfully"),
            account_id=body.get("account_id"),
            redirect_url=self.success_redirect,
            redirect_delay=self.redirect_delay,
        )
