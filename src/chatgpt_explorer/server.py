"""FastMCP server exposing conversation browsing and search tools."""

from __future__ import annotations

import logging
import sys

from mcp.server.fastmcp import FastMCP

from . import config
from .highlight import highlight_snippet, segment
from .models import Segment
from .parser import ExportError, filter_rows, sort_rows
from .session import ExplorerSession
from .transcript import format_timestamp

# Logging to stderr only — stdout is the MCP JSON-RPC transport
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "chatgpt-explorer",
    instructions=(
        "Browse and search a ChatGPT conversations export. "
        "Use load_export to open a conversations.json file or export ZIP. "
        "Use list_conversations to browse, open_conversation to read a transcript, "
        "find_in_conversation with next_match/previous_match to search inside it, "
        "and search_all to search every message of every conversation."
    ),
)

# Singleton session — reused across tool calls
_session: ExplorerSession | None = None


def _get_session() -> ExplorerSession:
    global _session
    if _session is None:
        _session = ExplorerSession()
        if config.EXPORT_PATH is not None:
            try:
                _session.load_file(config.EXPORT_PATH)
            except ExportError as exc:
                logger.warning("Could not load %s: %s", config.EXPORT_PATH, exc)
    return _session


def _check_loaded(session: ExplorerSession) -> str | None:
    """Return an error message if no export is loaded."""
    if not session.conversations:
        return session.error or (
            "No export loaded. Call load_export with the path to conversations.json "
            "or your ChatGPT export ZIP."
        )
    return None


def render_segments(segments: list[Segment]) -> str:
    """Render segments as markdown: matches in bold, the active match marked."""
    parts = []
    for seg in segments:
        if seg.is_active:
            parts.append(f">>>{seg.text}<<<")
        elif seg.is_match:
            parts.append(f"**{seg.text}**")
        else:
            parts.append(seg.text)
    return "".join(parts)


def _describe_active_match(session: ExplorerSession) -> str:
    chat = session.chat
    match = chat.active_match
    if match is None:
        if chat.query.strip():
            return f"No matches for '{chat.query.strip()}' in this conversation."
        return "No active search in this conversation."

    message = next(m for m in session.selected_messages if m.id == match.message_id)
    position = session.selected_messages.index(message) + 1
    rendered = render_segments(segment(message.text, chat.matches_for(message.id), match))

    return "\n".join(
        [
            f"Match {chat.active_index + 1} of {len(chat.matches)} "
            f"(message {position}, {message.author_role or 'other'}):",
            "",
            rendered,
        ]
    )


@mcp.tool()
async def load_export(path: str) -> str:
    """Load a ChatGPT conversations.json file or export ZIP, replacing any loaded data.

    Args:
        path: Path to conversations.json or the export ZIP
    """
    session = _get_session()
    try:
        conversations = session.load_file(path)
    except ExportError as exc:
        return f"Could not load {path}: {exc}"

    return (
        f"Loaded {len(conversations):,} conversations "
        f"({session.total_messages:,} messages) from {session.file_name}. "
        "The search index is building in the background."
    )


@mcp.tool()
async def list_conversations(
    limit: int = 20,
    offset: int = 0,
    keyword: str | None = None,
) -> str:
    """Browse conversations, most recently updated first.

    Args:
        limit: Maximum results (default 20)
        offset: Skip this many results (for pagination)
        keyword: Optional filter over titles, ids and counts
    """
    session = _get_session()
    err = _check_loaded(session)
    if err:
        return err

    rows = sort_rows(filter_rows(session.rows, keyword or ""))
    page = rows[offset : offset + limit]

    if not page:
        if keyword:
            return f"No conversations found matching '{keyword}'."
        return "No conversations found."

    lines = []
    if keyword:
        lines.append(f"Conversations matching '{keyword}':\n")
    else:
        lines.append(f"Conversations (showing {offset + 1}–{offset + len(page)} of {len(rows)}):\n")

    for r in page:
        archived = " | archived" if r.is_archived else ""
        lines.append(f"[{r.source_index}] **{r.title or 'Untitled'}** ({format_timestamp(r.update_time)})")
        lines.append(
            f"   ID: `{r.id}` | {r.message_count} msgs "
            f"({r.user_count} user, {r.assistant_count} assistant){archived}"
        )

    if offset + limit < len(rows):
        lines.append(f"\nMore available — use offset={offset + limit} to see the next page.")

    lines.append("\nUse open_conversation(position) with the number in brackets to read one.")
    return "\n".join(lines)


@mcp.tool()
async def open_conversation(position: int, max_chars: int = 50_000) -> str:
    """Open a conversation and return its transcript in chronological order.

    Args:
        position: The bracketed number from list_conversations or search_all
        max_chars: Truncate the transcript after this many characters
    """
    session = _get_session()
    err = _check_loaded(session)
    if err:
        return err

    try:
        session.select_conversation(position)
    except IndexError:
        return f"Conversation not found: {position}"

    conv = session.selected_conversation
    messages = session.selected_messages
    lines = [
        f"# {conv.title or 'Untitled'}",
        f"Created: {format_timestamp(conv.create_time)} | Updated: {format_timestamp(conv.update_time)}",
        f"Messages: {len(messages)}",
        "",
        "---",
        "",
    ]

    char_count = 0
    for msg in messages:
        role = msg.author_role or "other"
        ts = f" ({format_timestamp(msg.create_time)})" if msg.create_time else ""

        truncated = (
            f"\n... [Truncated — transcript exceeds {max_chars:,} chars. "
            f"Total: {len(messages)} messages]"
        )

        remaining_budget = max_chars - char_count
        if remaining_budget <= 0:
            lines.append(truncated)
            break

        lines.append(f"**{role}**{ts}:")

        if len(msg.text) > remaining_budget:
            lines.append(msg.text[:remaining_budget])
            lines.append(truncated)
            break

        char_count += len(msg.text)
        lines.append(msg.text or "—")
        lines.append("")

    return "\n".join(lines)


@mcp.tool()
async def find_in_conversation(query: str) -> str:
    """Search inside the open conversation and jump to the first match.

    Args:
        query: Text to find (case-insensitive substring)
    """
    session = _get_session()
    err = _check_loaded(session)
    if err:
        return err
    if session.selected_conversation is None:
        return "No conversation is open. Use open_conversation first."

    session.set_chat_query(query)
    return _describe_active_match(session)


@mcp.tool()
async def next_match() -> str:
    """Move to the next match in the open conversation, wrapping to the first."""
    session = _get_session()
    session.chat_next()
    return _describe_active_match(session)


@mcp.tool()
async def previous_match() -> str:
    """Move to the previous match in the open conversation, wrapping to the last."""
    session = _get_session()
    session.chat_prev()
    return _describe_active_match(session)


@mcp.tool()
async def search_all(query: str, limit: int = 10) -> str:
    """Search every message of every loaded conversation.

    Args:
        query: Words to search for (prefix matching, all words required)
        limit: Maximum number of results shown (default 10)
    """
    session = _get_session()
    err = _check_loaded(session)
    if err:
        return err

    await session.wait_for_index()
    results = session.set_corpus_query(query)

    if not query.strip():
        return "Empty query."
    if not results:
        return f"No messages found matching '{query}'."

    shown = results[:limit]
    lines = [f"Found {len(results)} messages matching '{query}' (showing {len(shown)}):\n"]

    for i, r in enumerate(shown, 1):
        record = r.record
        lines.append(f"{i}. **{record.title}** [{record.conversation_index}] — {record.role}")
        lines.append(f"   Date: {format_timestamp(record.create_time)}")
        snippet = render_segments(highlight_snippet(r.snippet, query.strip()))
        lines.append(f"   {snippet.replace(chr(10), ' ')}")
        lines.append("")

    lines.append("Use open_conversation(position) with the bracketed number to read the conversation.")
    return "\n".join(lines)


@mcp.tool()
async def index_status() -> str:
    """Report whether the corpus search index is idle, building, or ready."""
    session = _get_session()
    return (
        f"Index: {session.index_status.value} | "
        f"{session.index.record_count:,} indexed / {session.total_messages:,} msgs"
    )
