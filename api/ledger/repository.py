"""
Ledger persistence: income and expense entries share one table, split by `kind`.
Every query is scoped to the owning user.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from core import db

KINDS = ("income", "expense")

ENTRY_COLUMNS = "id, user_id, kind, label, icon, amount, entry_date, created_at"


def _check_kind(kind: str) -> str:
    if kind not in KINDS:
        raise ValueError(f"Unknown ledger kind: {kind!r}")
    return kind


async def insert_entry(
    *,
    user_id: int,
    kind: str,
    label: str,
    amount: Decimal,
    entry_date: dt.date,
    icon: str | None = None,
) -> dict:
    row = await db.fetch_one(
        f"""
        INSERT INTO ledger_entries (user_id, kind, label, icon, amount, entry_date)
        VALUES ($1, $2, $3, $4, $5, $6)
        RETURNING {ENTRY_COLUMNS}
        """,
        user_id,
        _check_kind(kind),
        label.strip(),
        icon,
        amount,
        entry_date,
    )
    if row is None:
        raise RuntimeError("Failed to insert ledger entry.")
    return row


async def list_entries(
    *,
    user_id: int,
    kind: str,
    since: dt.date | None = None,
    limit: int | None = None,
) -> list[dict]:
    """
    Entries of one kind, newest first. `since` is inclusive.
    """
    return await db.fetch_all(
        f"""
        SELECT {ENTRY_COLUMNS}
        FROM ledger_entries
        WHERE user_id = $1
          AND kind = $2
          AND ($3::date IS NULL OR entry_date >= $3::date)
        ORDER BY entry_date DESC, id DESC
        LIMIT $4
        """,
        user_id,
        _check_kind(kind),
        since,
        limit,
    )


async def delete_entry(entry_id: int, *, user_id: int, kind: str) -> dict | None:
    return await db.fetch_one(
        """
        DELETE FROM ledger_entries
        WHERE id = $1
          AND user_id = $2
          AND kind = $3
        RETURNING id
        """,
        entry_id,
        user_id,
        _check_kind(kind),
    )


async def totals_by_kind(*, user_id: int) -> dict[str, Decimal]:
    rows = await db.fetch_all(
        """
        SELECT kind, COALESCE(SUM(amount), 0) AS total
        FROM ledger_entries
        WHERE user_id = $1
        GROUP BY kind
        """,
        user_id,
    )
    totals = {kind: Decimal("0") for kind in KINDS}
    for row in rows:
        totals[str(row["kind"])] = Decimal(row["total"])
    return totals
