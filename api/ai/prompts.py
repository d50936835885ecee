"""
Prompt builders for AI spending insights.
"""

from __future__ import annotations


def insights_system_prompt() -> str:
    return (
        "You are a personal finance assistant inside a budgeting app.\n"
        "Use only the numbers in the provided summary; never invent transactions.\n"
        "Give at most five short, concrete suggestions as a bulleted list.\n"
        "Amounts are in the user's own currency; do not name a currency.\n"
        "Never use any emoji."
    )


def insights_user_prompt(summary_block: str, question: str | None = None) -> str:
    question = (question or "").strip() or "How am I doing, and where can I save money?"
    return (
        "Financial summary:\n"
        f"{summary_block}\n\n"
        "Question:\n"
        f"{question}"
    )
