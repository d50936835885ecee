"""
Dashboard aggregation built on the ledger tables.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from ledger import repository as ledger_repository
from ledger import service as ledger_service

RECENT_LIMIT = 5
EXPENSE_WINDOW_DAYS = 30
INCOME_WINDOW_DAYS = 60


def _window(rows: list[dict], ledger: ledger_service.LedgerKind) -> dict:
    total = sum((Decimal(row["amount"]) for row in rows), Decimal("0"))
    return {
        "total": float(total),
        "transactions": [ledger_service.to_entry(row, ledger) for row in rows],
    }


def merge_recent(income_rows: list[dict], expense_rows: list[dict], *, limit: int = RECENT_LIMIT) -> list[dict]:
    """
    Newest-first mix of both kinds, each tagged with its `type`.
    """
    tagged = [(row, ledger_service.INCOME) for row in income_rows]
    tagged += [(row, ledger_service.EXPENSE) for row in expense_rows]
    tagged.sort(key=lambda item: (item[0]["entry_date"], item[0]["id"]), reverse=True)
    return [
        {**ledger_service.to_entry(row, ledger), "type": ledger.kind}
        for row, ledger in tagged[:limit]
    ]


async def summary(*, user_id: int, today: dt.date | None = None) -> dict:
    today = today or dt.date.today()

    totals = await ledger_repository.totals_by_kind(user_id=user_id)
    expense_window = await ledger_repository.list_entries(
        user_id=user_id,
        kind="expense",
        since=today - dt.timedelta(days=EXPENSE_WINDOW_DAYS),
    )
    income_window = await ledger_repository.list_entries(
        user_id=user_id,
        kind="income",
        since=today - dt.timedelta(days=INCOME_WINDOW_DAYS),
    )
    recent_income = await ledger_repository.list_entries(user_id=user_id, kind="income", limit=RECENT_LIMIT)
    recent_expense = await ledger_repository.list_entries(user_id=user_id, kind="expense", limit=RECENT_LIMIT)

    return {
        "totalBalance": float(totals["income"] - totals["expense"]),
        "totalIncome": float(totals["income"]),
        "totalExpense": float(totals["expense"]),
        "last30DaysExpenses": _window(expense_window, ledger_service.EXPENSE),
        "last60DaysIncome": _window(income_window, ledger_service.INCOME),
        "recentTransactions": merge_recent(recent_income, recent_expense),
    }
