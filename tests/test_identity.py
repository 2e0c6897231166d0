"""Tests for session token verification."""

import time

import httpx
import pytest
from jose import jwt

from calendar_sync.auth.identity import (
    JWTIdentityVerifier,
    SupabaseIdentityVerifier,
    build_identity_verifier,
)
from calendar_sync.config import get_settings
from calendar_sync.exceptions import AuthenticationError

JWT_SECRET = "super-secret-jwt-key"


def _token(**claims) -> str:
    payload = {
        "sub": "user-1",
        "email": "user-1@example.com",
        "aud": "authenticated",
        "exp": int(time.time()) + 300,
    }
    payload.update(claims)
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


@pytest.mark.asyncio
async def test_jwt_verifier_accepts_valid_token():
    user = await JWTIdentityVerifier(JWT_SECRET).verify(_token())

    assert user.user_id == "user-1"
    assert user.email == "user-1@example.com"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token",
    [
        "",
        "not-a-jwt",
        _token(exp=int(time.time()) - 60),
        _token(aud="anon"),
        jwt.encode({"sub": "user-1", "aud": "authenticated"}, "other-secret", algorithm="HS256"),
    ],
)
async def test_jwt_verifier_rejects_bad_tokens(token):
    with pytest.raises(AuthenticationError):
        await JWTIdentityVerifier(JWT_SECRET).verify(token)


@pytest.mark.asyncio
async def test_supabase_verifier_resolves_user():
    seen = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "user-1", "email": "user-1@example.com"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        verifier = SupabaseIdentityVerifier("https://project.supabase.co/", "service-key", client=client)
        user = await verifier.verify("session-jwt")

    assert user.user_id == "user-1"
    request = seen[0]
    assert str(request.url) == "https://project.supabase.co/auth/v1/user"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["Authorization"] == "Bearer session-jwt"


@pytest.mark.asyncio
async def test_supabase_verifier_rejects_unknown_token():
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"msg": "invalid"}))
    async with httpx.AsyncClient(transport=transport) as client:
        verifier = SupabaseIdentityVerifier("https://project.supabase.co", "service-key", client=client)
        with pytest.raises(AuthenticationError):
            await verifier.verify("expired")


def test_build_identity_verifier_prefers_local_jwt(monkeypatch):
    assert isinstance(build_identity_verifier(), SupabaseIdentityVerifier)

    monkeypatch.setattr(get_settings().supabase, "jwt_secret", JWT_SECRET)
    assert isinstance(build_identity_verifier(), JWTIdentityVerifier)


def test_build_identity_verifier_unconfigured(monkeypatch):
    monkeypatch.setattr(get_settings().supabase, "service_role_key", None)

    assert build_identity_verifier() is None
