"""
Request schemas for income and expense entries.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import Field

from core.schemas import CamelModel


class EntryCreate(CamelModel):
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    date: dt.date
    icon: str | None = Field(default=None, max_length=2048)


class IncomeCreate(EntryCreate):
    source: str = Field(..., min_length=1, max_length=200)


class ExpenseCreate(EntryCreate):
    category: str = Field(..., min_length=1, max_length=200)
