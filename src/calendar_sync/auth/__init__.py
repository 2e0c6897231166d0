"""Caller authentication."""

from calendar_sync.auth.dependencies import get_token_from_header
from calendar_sync.auth.identity import (
    AuthenticatedUser,
    IdentityVerifier,
    JWTIdentityVerifier,
    SupabaseIdentityVerifier,
    build_identity_verifier,
)

__all__ = [
    "AuthenticatedUser",
    "IdentityVerifier",
    "JWTIdentityVerifier",
    "SupabaseIdentityVerifier",
    "build_identity_verifier",
    "get_token_from_header",
]
