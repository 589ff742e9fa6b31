"""Normalize ChatGPT export JSON into conversations and flat, time-ordered messages."""

from __future__ import annotations

import json
import logging
import math
import zipfile
from pathlib import Path
from typing import Any

from .config import CONTAINER_KEYS, CONVERSATION_KEYS
from .models import (
    Conversation,
    ConversationRow,
    DisplayMessage,
    ExportStats,
    MappingNode,
    NodeMessage,
)

logger = logging.getLogger(__name__)


class ExportError(Exception):
    """The export could not be read or holds no conversations."""


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    return value if math.isfinite(value) else None


def _coerce_part(part: Any) -> str:
    """Turn one content part into text; non-strings are JSON-encoded."""
    if isinstance(part, str):
        return part
    return json.dumps(part, ensure_ascii=False, default=str)


def _parse_message(msg: Any) -> NodeMessage | None:
    if not isinstance(msg, dict):
        return None

    author = msg.get("author")
    role = _as_str(author.get("role")) if isinstance(author, dict) else None

    content = msg.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        parts = []

    return NodeMessage(
        author_role=role,
        create_time=_as_float(msg.get("create_time")),
        content_parts=[_coerce_part(part) for part in parts],
    )


def _parse_mapping(mapping: Any) -> dict[str, MappingNode]:
    if not isinstance(mapping, dict):
        return {}

    nodes: dict[str, MappingNode] = {}
    for key, node in mapping.items():
        if not isinstance(node, dict):
            continue
        nodes[str(key)] = MappingNode(
            id=_as_str(node.get("id")) or str(key),
            message=_parse_message(node.get("message")),
        )
    return nodes


def parse_conversation(conv: dict[str, Any], position: int) -> Conversation:
    """Parse one raw conversation object; missing fields fall back to defaults."""
    return Conversation(
        id=_as_str(conv.get("id")) or f"row-{position + 1}",
        title=_as_str(conv.get("title")),
        create_time=_as_float(conv.get("create_time")),
        update_time=_as_float(conv.get("update_time")),
        is_archived=bool(conv.get("is_archived")),
        conversation_id=_as_str(conv.get("conversation_id")),
        current_node=_as_str(conv.get("current_node")),
        mapping=_parse_mapping(conv.get("mapping")),
    )


def _looks_like_conversation(item: Any) -> bool:
    return isinstance(item, dict) and any(key in item for key in CONVERSATION_KEYS)


def _candidates(raw: Any) -> list[Any]:
    if isinstance(raw, list):
        return raw

    if isinstance(raw, dict):
        for key in CONTAINER_KEYS:
            if isinstance(raw.get(key), list):
                return raw[key]
        return [item for item in raw.values() if _looks_like_conversation(item)]

    return []


def normalize_document(raw: Any) -> list[Conversation]:
    """Find the conversation collection in a parsed export.

    Accepts a top-level array, an object holding ``conversations``, ``items``
    or ``data`` as an array, or an object whose values look like
    conversations. Returns an empty list when nothing matches.
    """
    conversations: list[Conversation] = []

    for item in _candidates(raw):
        if not isinstance(item, dict):
            logger.warning("Skipping non-object conversation entry (%s)", type(item).__name__)
            continue
        conversations.append(parse_conversation(item, len(conversations)))

    logger.debug("Normalized %d conversations", len(conversations))
    return conversations


def extract_messages(conversation: Conversation) -> list[DisplayMessage]:
    """Flatten a conversation's mapping into messages ordered by create time.

    Messages without a timestamp sort as 0; ties keep mapping order.
    """
    messages = [
        DisplayMessage(
            id=node.id,
            author_role=node.message.author_role,
            create_time=node.message.create_time,
            text=node.message.text,
        )
        for node in conversation.mapping.values()
        if node.message is not None
    ]
    return sorted(messages, key=lambda m: m.create_time or 0)


def _reject_constant(name: str) -> Any:
    raise ExportError(f"Invalid JSON literal: {name}")


def load_export(path: str | Path) -> Any:
    """Read raw export JSON from a conversations.json file or a ChatGPT export ZIP."""
    export_file = Path(path)

    if not export_file.is_file():
        raise ExportError(f"File not found: {path}")

    try:
        if zipfile.is_zipfile(export_file):
            with zipfile.ZipFile(export_file, "r") as zf:
                if "conversations.json" not in zf.namelist():
                    raise ExportError(
                        "No conversations.json found in ZIP. "
                        "Make sure this is a ChatGPT data export."
                    )
                with zf.open("conversations.json") as f:
                    return json.load(f, parse_constant=_reject_constant)

        with export_file.open("r", encoding="utf-8-sig") as f:
            return json.load(f, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError, zipfile.BadZipFile) as exc:
        raise ExportError(str(exc)) from exc


def build_rows(conversations: list[Conversation]) -> list[ConversationRow]:
    """Summarize each conversation for the conversation table."""
    rows: list[ConversationRow] = []

    for index, conv in enumerate(conversations):
        roles = [
            node.message.author_role
            for node in conv.mapping.values()
            if node.message is not None
        ]
        rows.append(
            ConversationRow(
                id=conv.id,
                title=conv.title or "",
                create_time=conv.create_time,
                update_time=conv.update_time,
                message_count=len(roles),
                user_count=roles.count("user"),
                assistant_count=roles.count("assistant"),
                current_node=conv.current_node,
                is_archived=conv.is_archived,
                conversation_id=conv.conversation_id,
                source_index=index,
            )
        )

    return rows


def compute_stats(rows: list[ConversationRow]) -> ExportStats:
    if not rows:
        return ExportStats()

    return ExportStats(
        total=len(rows),
        total_messages=sum(r.message_count for r in rows),
        archived=sum(1 for r in rows if r.is_archived),
        latest_update=max(r.update_time or r.create_time or 0 for r in rows),
    )


def filter_rows(rows: list[ConversationRow], text: str) -> list[ConversationRow]:
    """Keep rows whose visible fields contain ``text`` (case-insensitive)."""
    needle = text.strip().lower()
    if not needle:
        return list(rows)

    def haystack(row: ConversationRow) -> str:
        fields = [
            row.title,
            row.id,
            row.conversation_id,
            row.current_node,
            "yes" if row.is_archived else "no",
            row.message_count,
            row.user_count,
            row.assistant_count,
            row.create_time,
            row.update_time,
        ]
        return " ".join("" if f is None else str(f) for f in fields).lower()

    return [row for row in rows if needle in haystack(row)]


def sort_rows(
    rows: list[ConversationRow],
    key: str = "update_time",
    descending: bool = True,
) -> list[ConversationRow]:
    """Sort rows by a field; rows missing the field always go last."""
    if key not in ConversationRow.model_fields:
        raise ValueError(f"Unknown sort field: {key}")

    present = [r for r in rows if getattr(r, key) is not None]
    missing = [r for r in rows if getattr(r, key) is None]
    present.sort(key=lambda r: getattr(r, key), reverse=descending)
    return present + missing
