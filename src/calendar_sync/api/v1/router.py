"""Backend function router aggregation.

All functions are served under the configured functions prefix
(``/functions/v1`` by default):

- Token exchange (`POST /nylas-exchange`)
- Calendar listing (`GET /nylas-calendars`)
- Webhook receiver (`GET|POST /nylas-webhook`)
"""

from fastapi import APIRouter

from calendar_sync.api.v1 import nylas, webhooks
from calendar_sync.config import get_settings

router = APIRouter(
    prefix=get_settings().functions_prefix,
    responses={
        400: {"description": "Bad request"},
        401: {"description": "Unauthorized"},
        500: {"description": "Internal server error"},
    },
)

router.include_router(nylas.router)
router.include_router(webhooks.router)
