"""Unit tests for access-token decoding and the auth dependencies."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from jose import jwt

from config.settings import settings
from src.sm_common.enums import Role
from src.sm_common.errors import ForbiddenError, InvalidCredentialsError
from src.sm_gateway.auth.actor import Actor
from src.sm_gateway.auth.dependencies import get_current_actor, require_admin
from src.sm_gateway.auth.jwt_handler import create_access_token, decode_access_token


def _sign(claims: dict) -> str:
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def test_access_token_contains_correct_claims() -> None:
    token = create_access_token("user-123", Role.PROVIDER)
    # Decode without verification to inspect claims
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "user-123"
    assert payload["role"] == "provider"
    assert payload["type"] == "access"


def test_decode_valid_access_token() -> None:
    token = create_access_token("user-abc", "seeker")
    payload = decode_access_token(token)
    assert payload["sub"] == "user-abc"
    assert payload["role"] == "seeker"


def test_expired_access_token_raises_credentials_error() -> None:
    with patch(
        "src.sm_gateway.auth.jwt_handler._ACCESS_EXPIRE",
        timedelta(seconds=-1),
    ):
        token = create_access_token("user-abc", Role.SEEKER)
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


def test_tampered_token_raises_error() -> None:
    token = create_access_token("user-abc", Role.SEEKER)
    tampered = token[:-4] + "xxxx"
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(tampered)


def test_non_access_token_rejected() -> None:
    """A refresh token from the auth service must not open the API."""
    now = datetime.now(UTC)
    token = _sign(
        {"sub": "user-abc", "role": "seeker", "type": "refresh", "exp": now + timedelta(days=1)}
    )
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


def test_unknown_role_rejected() -> None:
    now = datetime.now(UTC)
    token = _sign(
        {"sub": "user-abc", "role": "superuser", "type": "access", "exp": now + timedelta(minutes=5)}
    )
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


def test_create_rejects_unknown_role() -> None:
    with pytest.raises(ValueError):
        create_access_token("user-abc", "superuser")


@pytest.mark.asyncio
async def test_get_current_actor_builds_identity() -> None:
    token = create_access_token("admin-7", Role.ADMIN)
    actor = await get_current_actor(token)
    assert actor == Actor("admin-7", Role.ADMIN)
    assert actor.is_admin


@pytest.mark.asyncio
async def test_get_current_actor_invalid_token_is_401() -> None:
    with pytest.raises(HTTPException) as exc_info:
        await get_current_actor("not-a-jwt")
    assert exc_info.value.status_code == 401
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


@pytest.mark.asyncio
async def test_require_admin() -> None:
    admin = Actor("admin-1", Role.ADMIN)
    assert await require_admin(admin) is admin
    with pytest.raises(ForbiddenError):
        await require_admin(Actor("provider-1", Role.PROVIDER))
