"""
AI insights: summarize the user's dashboard and ask an Ollama chat model
for advice on it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone

from fastapi import HTTPException

from core import ollama
from core.settings import env_float, env_str
from dashboard import service as dashboard_service

from . import prompts

DEFAULT_INSIGHTS_MODEL = "qwen2.5:3b-instruct"
TOP_CATEGORIES = 5

logger = logging.getLogger(__name__)


def insights_model() -> str:
    return env_str("AI_INSIGHTS_MODEL", DEFAULT_INSIGHTS_MODEL)


def insights_timeout_s() -> float:
    return env_float("AI_INSIGHTS_TIMEOUT_S", 120.0)


def top_expense_categories(transactions: list[dict], *, limit: int = TOP_CATEGORIES) -> list[tuple[str, float]]:
    totals: dict[str, float] = defaultdict(float)
    for entry in transactions:
        totals[str(entry.get("category") or "Other")] += float(entry.get("amount") or 0)
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))[:limit]


def format_summary(summary: dict) -> str:
    lines = [
        f"Total income: {summary['totalIncome']:.2f}",
        f"Total expense: {summary['totalExpense']:.2f}",
        f"Balance: {summary['totalBalance']:.2f}",
        f"Income in the last 60 days: {summary['last60DaysIncome']['total']:.2f}",
        f"Expenses in the last 30 days: {summary['last30DaysExpenses']['total']:.2f}",
    ]

    categories = top_expense_categories(summary["last30DaysExpenses"]["transactions"])
    if categories:
        lines.append("Top expense categories (last 30 days):")
        lines.extend(f"- {name}: {amount:.2f}" for name, amount in categories)
    else:
        lines.append("No expenses recorded in the last 30 days.")
    return "\n".join(lines)


async def insights(*, user_id: int, question: str | None = None) -> dict:
    summary = await dashboard_service.summary(user_id=user_id)
    model = insights_model()

    try:
        text = await ollama.chat_text(
            model=model,
            system_prompt=prompts.insights_system_prompt(),
            user_prompt=prompts.insights_user_prompt(format_summary(summary), question),
            temperature=0.3,
            timeout_s=insights_timeout_s(),
        )
    except ollama.OllamaError as exc:
        logger.warning("AI insights failed for user %s: %s", user_id, exc)
        raise HTTPException(status_code=502, detail=f"AI insights are unavailable: {exc}") from exc

    return {
        "insights": text,
        "model": model,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
    }
