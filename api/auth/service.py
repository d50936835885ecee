"""
Auth business logic: registration, login, refresh-token rotation, logout.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import asyncpg
from fastapi import HTTPException, status

from . import repository, schemas, security

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=int(user_row["id"]),
        full_name=str(user_row["full_name"]),
        email=str(user_row["email"]),
        profile_image_url=user_row.get("profile_image_url"),
        is_active=bool(user_row["is_active"]),
        created_at=user_row["created_at"],
    )


async def _issue_token_pair(
    user_row: dict,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[schemas.TokenPairResponse, int]:
    user_id = int(user_row["id"])
    raw_refresh_token = security.build_refresh_token()

    refresh_row = await repository.insert_refresh_token(
        user_id=user_id,
        token_hash=security.hash_refresh_token(raw_refresh_token),
        expires_at=_utc_now() + timedelta(days=security.refresh_token_expire_days()),
        user_agent=user_agent,
        ip_address=ip_address,
    )
    tokens = schemas.TokenPairResponse(
        access_token=security.build_access_token(user_id=user_id, email=str(user_row["email"])),
        refresh_token=raw_refresh_token,
    )
    return tokens, int(refresh_row["id"])


async def register(
    payload: schemas.RegisterRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.AuthResponse:
    if await repository.get_user_by_email(payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered.")

    try:
        user_row = await repository.create_user(
            full_name=payload.full_name,
            email=payload.email,
            password_hash=security.hash_password(payload.password),
            profile_image_url=payload.profile_image_url,
        )
    except asyncpg.UniqueViolationError as exc:
        # Lost a race with a concurrent registration of the same email.
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered.") from exc

    logger.info("Registered user id=%s", user_row["id"])
    tokens, _ = await _issue_token_pair(user_row, user_agent=user_agent, ip_address=ip_address)
    return schemas.AuthResponse(user=to_user_response(user_row), tokens=tokens)


async def login(
    payload: schemas.LoginRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.AuthResponse:
    user_row = await repository.get_user_by_email(payload.email)
    if user_row is None:
        raise _unauthorized("Invalid email or password.")

    if not security.verify_password(payload.password, str(user_row.get("password_hash") or "")):
        raise _unauthorized("Invalid email or password.")

    if not bool(user_row.get("is_active", False)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive.")

    tokens, _ = await _issue_token_pair(user_row, user_agent=user_agent, ip_address=ip_address)
    return schemas.AuthResponse(user=to_user_response(user_row), tokens=tokens)


async def refresh_tokens(
    payload: schemas.RefreshRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.TokenPairResponse:
    token_row = await repository.get_refresh_token_by_hash(
        security.hash_refresh_token(payload.refresh_token.strip())
    )
    if token_row is None:
        raise _unauthorized("Invalid refresh token.")

    token_id = int(token_row["id"])
    if token_row.get("revoked_at") is not None:
        raise _unauthorized("Refresh token is revoked.")

    expires_at = token_row.get("expires_at")
    if not isinstance(expires_at, datetime) or expires_at <= _utc_now():
        await repository.revoke_refresh_token_by_id(token_id)
        raise _unauthorized("Refresh token is expired.")

    user_row = await repository.get_user_by_id(int(token_row["user_id"]))
    if user_row is None or not bool(user_row.get("is_active", False)):
        await repository.revoke_refresh_token_by_id(token_id)
        raise _unauthorized("Invalid refresh token owner.")

    if not await repository.claim_refresh_token(token_id):
        # A concurrent refresh with the same token got there first.
        raise _unauthorized("Refresh token is revoked.")

    tokens, new_token_id = await _issue_token_pair(user_row, user_agent=user_agent, ip_address=ip_address)
    await repository.link_refresh_token(token_id, replaced_by_token_id=new_token_id)
    return tokens


async def logout(payload: schemas.LogoutRequest, *, user_id: int) -> dict:
    if payload.refresh_token:
        token_hash = security.hash_refresh_token(payload.refresh_token.strip())
        revoked = await repository.revoke_refresh_token_for_user(token_hash, user_id=user_id)
        return {"message": "Logged out", "revoked": 1 if revoked else 0}

    revoked = await repository.revoke_all_refresh_tokens_for_user(user_id)
    return {"message": "Logged out from all sessions", "revoked": revoked}


async def get_user_from_access_token(access_token: str) -> dict:
    try:
        claims = security.decode_access_token(access_token)
    except security.AuthSecurityError as exc:
        raise _unauthorized(str(exc)) from exc

    user_row = await repository.get_user_by_id(claims.user_id)
    if user_row is None:
        raise _unauthorized("User not found.")
    if not bool(user_row.get("is_active", False)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive.")
    return user_row
