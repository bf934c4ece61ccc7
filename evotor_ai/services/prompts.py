"""Prompts sent to the model."""

from datetime import datetime

from evotor_ai.utils.period import PeriodRange


def get_system_prompt(interactive: bool, now: datetime | None = None) -> str:
    """Generate the system prompt for a session.

    Args:
        interactive: REPL session (follow-up questions expected) or a one-shot query
        now: Current time shown to the model, defaults to the local time

    Returns:
        System prompt string
    """
    now = now or datetime.now().astimezone()

    base_prompt = """You are an analytics assistant for a retail business using Evotor cash registers.

Your primary responsibilities:
1. Answer questions about sales, receipts (documents), items and stores
2. Get every number from the tools; never invent figures
3. Answer in the language of the user, briefly and precisely

TOOL RULES:
- Dates are RFC3339 timestamps with a UTC offset (e.g., 2025-01-01T00:00:00+03:00)
- Use the period and store from the request context unless the user names others
- Prefer GetSalesMetrics for counts and totals; use SearchDocuments only to list documents
- Use SearchDocuments with item_query to find receipts containing an item
- If a tool returns an error, explain it to the user instead of retrying blindly"""

    if interactive:
        base_prompt += (
            "\n\nThis is an interactive session: earlier questions and answers are part of the conversation, "
            "so follow-up questions may refer to them. Ask a short clarifying question when the request is ambiguous."
        )
    else:
        base_prompt += (
            "\n\nThis is a single question without follow-ups: do not ask clarifying questions, "
            "make a reasonable assumption and state it in the answer."
        )

    base_prompt += f"\n\nCurrent date and time: {now.isoformat(timespec='seconds')}"
    return base_prompt


def get_request_context(period: PeriodRange, store_id: str, note: str = "") -> str:
    """Second text part of a user message: the resolved filters of the turn."""
    lines = [
        "Request context:",
        f"- from: {period.date_from.isoformat(timespec='seconds')}",
        f"- to: {period.date_to.isoformat(timespec='seconds')}",
        f"- store_id: {store_id or 'default'}",
    ]
    if note:
        lines.append(f"- note: {note}")
    return "\n".join(lines)
