"""
Router factory for ledger-backed route modules (income, expense).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response

from auth import dependencies as auth_dependencies
from core.body import body_model

from . import schemas, service


def build_router(ledger: service.LedgerKind, create_schema: type[schemas.EntryCreate]) -> APIRouter:
    router = APIRouter()

    @router.post("/add", status_code=status.HTTP_201_CREATED)
    async def add_entry(
        payload: schemas.EntryCreate = Depends(body_model(create_schema)),
        current_user: dict = Depends(auth_dependencies.get_current_user),
    ) -> dict:
        return await service.add_entry(ledger, payload, user_id=int(current_user["id"]))

    @router.get("/get")
    async def list_entries(
        current_user: dict = Depends(auth_dependencies.get_current_user),
    ) -> list[dict]:
        return await service.list_entries(ledger, user_id=int(current_user["id"]))

    @router.delete("/{entry_id}")
    async def delete_entry(
        entry_id: int,
        current_user: dict = Depends(auth_dependencies.get_current_user),
    ) -> dict:
        return await service.delete_entry(ledger, entry_id, user_id=int(current_user["id"]))

    @router.get("/downloadcsv")
    async def download_csv(
        current_user: dict = Depends(auth_dependencies.get_current_user),
    ) -> Response:
        content = await service.export_csv(ledger, user_id=int(current_user["id"]))
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{ledger.kind}_details.csv"'},
        )

    return router
