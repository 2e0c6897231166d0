"""FastAPI dependencies for caller authentication."""

import logging
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_token_from_header(
    authorization: Optional[str] = Header(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Extract the bearer token from the Authorization header, if any.

    Only extraction happens here. Verification is left to the services so that
    input and configuration checks can run first.
    """
    if credentials:
        return credentials.credentials

    if authorization:
        if authorization.startswith("Bearer "):
            return authorization[7:].strip() or None
        return authorization.strip() or None

    logger.debug("No token found in headers")
    return None
