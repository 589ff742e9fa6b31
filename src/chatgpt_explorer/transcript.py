"""Plain-text transcripts of a single conversation."""

from __future__ import annotations

from datetime import datetime, timezone

from .models import Conversation, DisplayMessage

MISSING = "—"


def format_timestamp(ts: float | None) -> str:
    if not ts:
        return MISSING
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return MISSING


def _format_message(position: int, message: DisplayMessage) -> str:
    role = message.author_role or "other"
    stamp = f" ({format_timestamp(message.create_time)})" if message.create_time else ""
    return f"{position}. {role}{stamp}\n{message.text or MISSING}"


def build_context_text(conversation: Conversation, messages: list[DisplayMessage]) -> str:
    """Render a conversation header and its numbered messages as text.

    This is the text handed to the clipboard or written by ``export``.
    """
    header = [
        "# ChatGPT Conversation Export",
        f"Title: {conversation.title or 'Untitled'}",
        f"Conversation ID: {conversation.conversation_id or MISSING}",
        f"Created: {format_timestamp(conversation.create_time)}",
        f"Updated: {format_timestamp(conversation.update_time)}",
        f"Archived: {'Yes' if conversation.is_archived else 'No'}",
        "",
        "## Transcript",
    ]
    body = [_format_message(i, m) for i, m in enumerate(messages, 1)]
    return "\n\n".join(header + body)
