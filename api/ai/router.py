"""
AI insight endpoints, mounted under /api/v1/ai.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import Field

from auth import dependencies as auth_dependencies
from core.body import body_model
from core.schemas import CamelModel

from . import service

router = APIRouter()


class InsightsRequest(CamelModel):
    question: str | None = Field(default=None, max_length=1000)


@router.post("/insights")
async def insights(
    request: InsightsRequest = Depends(body_model(InsightsRequest)),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.insights(user_id=int(current_user["id"]), question=request.question)
