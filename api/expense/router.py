"""
Expense endpoints, mounted under /api/v1/expense.
"""

from __future__ import annotations

from ledger import router as ledger_router
from ledger import schemas, service

router = ledger_router.build_router(service.EXPENSE, schemas.ExpenseCreate)
