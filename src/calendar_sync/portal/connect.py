"""Builds the provider authorization request that starts the connect flow."""

import logging
import uuid
from typing import Optional
from urllib.parse import urlencode

from calendar_sync.config import Settings, get_settings
from calendar_sync.portal.state_store import OAuthStateStore

logger = logging.getLogger(__name__)


class ConnectInitiator:
    """
    Produces the consent-screen URL for a fresh connect attempt.

    Empty client id or callback URI are not rejected here; the provider
    rejects them on its consent screen.
    """

    def __init__(
        self,
        client_id: Optional[str],
        callback_uri: Optional[str],
        authorize_url: str = "https://api.nylas.com/oauth/authorize",
        scopes: str = "calendar.read_write,email.read_only",
    ):
        self.client_id = client_id or ""
        self.callback_uri = callback_uri or ""
        self.authorize_url = authorize_url
        self.scopes = scopes

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ConnectInitiator":
        settings = settings or get_settings()
        return cls(
            client_id=settings.nylas.client_id,
            callback_uri=settings.nylas.callback_uri,
            authorize_url=settings.nylas.authorize_url,
            scopes=settings.nylas.scopes,
        )

    @staticmethod
    def generate_state() -> str:
        return str(uuid.uuid4())

    def build_authorization_url(self, state: str) -> str:
        """Authorization request URL carrying ``state``."""
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.callback_uri,
                "response_type": "code",
                "scope": self.scopes,
                "state": state,
            }
        )
        return f"{self.authorize_url}?{query}"

    def begin(self, state_store: OAuthStateStore) -> str:
        """Generate and persist a new state, then return the URL to redirect to."""
        state = self.generate_state()
        state_store.save(state)
        if not self.client_id or not self.callback_uri:
            logger.warning("Starting connect flow with incomplete Nylas configuration")
        logger.info("Redirecting to Nylas consent screen")
        return self.build_authorization_url(state)
