"""
Dashboard endpoint, mounted under /api/v1/dashboard.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from auth import dependencies as auth_dependencies

from . import service

router = APIRouter()


@router.get("")
@router.get("/")
async def get_dashboard(
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.summary(user_id=int(current_user["id"]))
