"""
Bill scan endpoint, mounted under /api/v1/bill.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Request, UploadFile

from auth import dependencies as auth_dependencies

from . import service

router = APIRouter()


@router.post("/scan")
async def scan_bill(
    request: Request,
    bill: UploadFile = File(...),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.scan_bill(bill, uploads_dir=request.app.state.settings.uploads_dir)
