"""
Ledger business logic shared by the income and expense route modules.

Income entries carry a `source`, expense entries a `category`; both are stored
in the `label` column and renamed on the way out.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass

from fastapi import HTTPException, status

from . import repository, schemas


@dataclass(frozen=True)
class LedgerKind:
    kind: str
    label_field: str
    noun: str


INCOME = LedgerKind(kind="income", label_field="source", noun="Income")
EXPENSE = LedgerKind(kind="expense", label_field="category", noun="Expense")


def to_entry(row: dict, ledger: LedgerKind) -> dict:
    return {
        "id": int(row["id"]),
        ledger.label_field: str(row["label"]),
        "icon": row.get("icon"),
        "amount": float(row["amount"]),
        "date": row["entry_date"].isoformat(),
        "createdAt": row["created_at"].isoformat() if row.get("created_at") else None,
    }


async def add_entry(ledger: LedgerKind, payload: schemas.EntryCreate, *, user_id: int) -> dict:
    row = await repository.insert_entry(
        user_id=user_id,
        kind=ledger.kind,
        label=str(getattr(payload, ledger.label_field)),
        amount=payload.amount,
        entry_date=payload.date,
        icon=payload.icon,
    )
    return to_entry(row, ledger)


async def list_entries(ledger: LedgerKind, *, user_id: int) -> list[dict]:
    rows = await repository.list_entries(user_id=user_id, kind=ledger.kind)
    return [to_entry(row, ledger) for row in rows]


async def delete_entry(ledger: LedgerKind, entry_id: int, *, user_id: int) -> dict:
    row = await repository.delete_entry(entry_id, user_id=user_id, kind=ledger.kind)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{ledger.noun} not found.")
    return {"message": f"{ledger.noun} deleted successfully", "id": int(row["id"])}


async def export_csv(ledger: LedgerKind, *, user_id: int) -> str:
    entries = await list_entries(ledger, user_id=user_id)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([ledger.label_field.capitalize(), "Amount", "Date"])
    for entry in entries:
        writer.writerow([entry[ledger.label_field], f"{entry['amount']:.2f}", entry["date"]])
    return output.getvalue()
