"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from core.schemas import CamelModel


class RegisterRequest(CamelModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=8, max_length=128)
    profile_image_url: str | None = Field(default=None, max_length=2048)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=20)


class LogoutRequest(CamelModel):
    # Omitted: revoke every refresh token of the authenticated user.
    refresh_token: str | None = Field(default=None, min_length=20)


class UserResponse(CamelModel):
    id: int
    full_name: str
    email: str
    profile_image_url: str | None = None
    is_active: bool
    created_at: datetime


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(CamelModel):
    user: UserResponse
    tokens: TokenPairResponse
