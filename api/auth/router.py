"""
Auth API endpoints, mounted under /api/v1/auth.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from core.body import body_model

from . import dependencies, schemas, service

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: schemas.RegisterRequest = Depends(body_model(schemas.RegisterRequest)),
    client: dict = Depends(dependencies.client_info),
) -> schemas.AuthResponse:
    return await service.register(payload, **client)


@router.post("/login")
async def login(
    payload: schemas.LoginRequest = Depends(body_model(schemas.LoginRequest)),
    client: dict = Depends(dependencies.client_info),
) -> schemas.AuthResponse:
    return await service.login(payload, **client)


@router.post("/refresh")
async def refresh(
    payload: schemas.RefreshRequest = Depends(body_model(schemas.RefreshRequest)),
    client: dict = Depends(dependencies.client_info),
) -> schemas.TokenPairResponse:
    return await service.refresh_tokens(payload, **client)


@router.post("/logout")
async def logout(
    payload: schemas.LogoutRequest = Depends(body_model(schemas.LogoutRequest)),
    current_user: dict = Depends(dependencies.get_current_user),
) -> dict:
    return await service.logout(payload, user_id=int(current_user["id"]))


@router.get("/getUser")
async def get_user(
    current_user: dict = Depends(dependencies.get_current_user),
) -> schemas.UserResponse:
    return service.to_user_response(current_user)
