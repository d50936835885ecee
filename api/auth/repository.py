"""
Auth persistence helpers.
"""

from __future__ import annotations

from datetime import datetime, timezone

from core import db

USER_COLUMNS = "id, full_name, email, password_hash, profile_image_url, is_active, created_at, updated_at"

TOKEN_COLUMNS = (
    "id, user_id, token_hash, expires_at, revoked_at, replaced_by_token_id, "
    "created_at, last_used_at, user_agent, ip_address"
)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def create_user(
    *,
    full_name: str,
    email: str,
    password_hash: str,
    profile_image_url: str | None = None,
) -> dict:
    row = await db.fetch_one(
        f"""
        INSERT INTO users (full_name, email, password_hash, profile_image_url)
        VALUES ($1, $2, $3, $4)
        RETURNING {USER_COLUMNS}
        """,
        full_name.strip(),
        normalize_email(email),
        password_hash,
        profile_image_url,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row


async def get_user_by_email(email: str) -> dict | None:
    return await db.fetch_one(
        f"SELECT {USER_COLUMNS} FROM users WHERE lower(email) = lower($1)",
        normalize_email(email),
    )


async def get_user_by_id(user_id: int) -> dict | None:
    return await db.fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE id = $1", user_id)


async def insert_refresh_token(
    *,
    user_id: int,
    token_hash: str,
    expires_at: datetime,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> dict:
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)

    row = await db.fetch_one(
        f"""
        INSERT INTO refresh_tokens (user_id, token_hash, expires_at, user_agent, ip_address)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING {TOKEN_COLUMNS}
        """,
        user_id,
        token_hash,
        expires_at,
        user_agent,
        ip_address,
    )
    if row is None:
        raise RuntimeError("Failed to insert refresh token.")
    return row


async def get_refresh_token_by_hash(token_hash: str) -> dict | None:
    return await db.fetch_one(
        f"SELECT {TOKEN_COLUMNS} FROM refresh_tokens WHERE token_hash = $1",
        token_hash,
    )


async def claim_refresh_token(token_id: int) -> bool:
    """
    Revoke a live refresh token as it is used. Only one caller can win the
    claim; False means the token was already revoked.
    """
    row = await db.fetch_one(
        """
        UPDATE refresh_tokens
        SET revoked_at = now(),
            last_used_at = now()
        WHERE id = $1
          AND revoked_at IS NULL
        RETURNING id
        """,
        token_id,
    )
    return row is not None


async def link_refresh_token(token_id: int, *, replaced_by_token_id: int) -> None:
    await db.execute(
        "UPDATE refresh_tokens SET replaced_by_token_id = $2 WHERE id = $1",
        token_id,
        replaced_by_token_id,
    )


async def _revoke_where(condition: str, *args: object) -> int:
    """
    Revoke every live refresh token matching `condition`; returns how many.
    """
    rows = await db.fetch_all(
        f"""
        UPDATE refresh_tokens
        SET revoked_at = now()
        WHERE {condition}
          AND revoked_at IS NULL
        RETURNING id
        """,
        *args,
    )
    return len(rows)


async def revoke_refresh_token_by_id(token_id: int) -> bool:
    return await _revoke_where("id = $1", token_id) > 0


async def revoke_refresh_token_for_user(token_hash: str, *, user_id: int) -> bool:
    return await _revoke_where("token_hash = $1 AND user_id = $2", token_hash, user_id) > 0


async def revoke_all_refresh_tokens_for_user(user_id: int) -> int:
    return await _revoke_where("user_id = $1", user_id)
