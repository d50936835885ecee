"""Tests for the dashboard summary."""

from __future__ import annotations

import asyncio
import datetime as dt
from decimal import Decimal

from fastapi.testclient import TestClient

from dashboard import service
from ledger import repository


def _row(entry_id: int, kind: str, label: str, amount: str, day: str) -> dict:
    return {
        "id": entry_id,
        "user_id": 7,
        "kind": kind,
        "label": label,
        "icon": None,
        "amount": Decimal(amount),
        "entry_date": dt.date.fromisoformat(day),
        "created_at": None,
    }


ROWS = [
    _row(1, "income", "Salary", "3000.00", "2026-01-01"),
    _row(2, "income", "Freelance", "500.00", "2026-03-10"),
    _row(3, "expense", "Rent", "1200.00", "2026-02-01"),
    _row(4, "expense", "Groceries", "80.50", "2026-03-12"),
    _row(5, "expense", "Coffee", "4.50", "2026-03-12"),
]


def _install(monkeypatch, rows=ROWS) -> list[dict]:
    seen: list[dict] = []

    async def list_entries(*, user_id, kind, since=None, limit=None):
        seen.append({"user_id": user_id, "kind": kind, "since": since, "limit": limit})
        matching = [
            r for r in rows
            if r["user_id"] == user_id and r["kind"] == kind and (since is None or r["entry_date"] >= since)
        ]
        matching.sort(key=lambda r: (r["entry_date"], r["id"]), reverse=True)
        return matching[:limit] if limit else matching

    async def totals_by_kind(*, user_id):
        totals = {"income": Decimal("0"), "expense": Decimal("0")}
        for r in rows:
            if r["user_id"] == user_id:
                totals[r["kind"]] += r["amount"]
        return totals

    monkeypatch.setattr(repository, "list_entries", list_entries)
    monkeypatch.setattr(repository, "totals_by_kind", totals_by_kind)
    return seen


class TestMergeRecent:
    def test_newest_first_across_kinds(self) -> None:
        income = [r for r in ROWS if r["kind"] == "income"]
        expense = [r for r in ROWS if r["kind"] == "expense"]
        merged = service.merge_recent(income, expense, limit=3)
        assert [(e["id"], e["type"]) for e in merged] == [(5, "expense"), (4, "expense"), (2, "income")]

    def test_entries_keep_their_label_field(self) -> None:
        merged = service.merge_recent([ROWS[0]], [ROWS[2]])
        assert merged[0]["category"] == "Rent"
        assert merged[1]["source"] == "Salary"

    def test_empty(self) -> None:
        assert service.merge_recent([], []) == []


class TestSummary:
    def test_totals_and_windows(self, monkeypatch) -> None:
        _install(monkeypatch)
        result = asyncio.run(service.summary(user_id=7, today=dt.date(2026, 3, 15)))

        assert result["totalIncome"] == 3500.0
        assert result["totalExpense"] == 1285.0
        assert result["totalBalance"] == 2215.0
        # 30-day window starts 2026-02-13: rent is outside it.
        assert result["last30DaysExpenses"]["total"] == 85.0
        assert len(result["last30DaysExpenses"]["transactions"]) == 2
        # 60-day window starts 2026-01-14: the January salary is outside it.
        assert result["last60DaysIncome"]["total"] == 500.0
        assert result["recentTransactions"][0]["id"] == 5

    def test_window_boundaries_are_passed_to_the_repository(self, monkeypatch) -> None:
        seen = _install(monkeypatch)
        asyncio.run(service.summary(user_id=7, today=dt.date(2026, 3, 15)))
        windows = {call["kind"]: call["since"] for call in seen if call["since"] is not None}
        assert windows == {"expense": dt.date(2026, 2, 13), "income": dt.date(2026, 1, 14)}

    def test_new_user_has_zero_totals(self, monkeypatch) -> None:
        _install(monkeypatch, rows=[])
        result = asyncio.run(service.summary(user_id=7))
        assert result["totalBalance"] == 0.0
        assert result["recentTransactions"] == []

    def test_route(self, authed_client: TestClient, monkeypatch) -> None:
        _install(monkeypatch)
        for path in ("/api/v1/dashboard", "/api/v1/dashboard/"):
            resp = authed_client.get(path)
            assert resp.status_code == 200
            assert resp.json()["totalIncome"] == 3500.0
