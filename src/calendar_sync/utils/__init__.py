"""Utility functions."""

from calendar_sync.utils.logging import (
    get_logger,
    get_request_id,
    log_error,
    log_request,
    mask_secret,
    set_request_id,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_request_id",
    "get_request_id",
    "log_request",
    "log_error",
    "mask_secret",
]
