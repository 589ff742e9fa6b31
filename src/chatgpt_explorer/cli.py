"""CLI interface for chatgpt-explorer."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import LOG_LEVEL, NO_RECORDS_MESSAGE
from .highlight import highlight_snippet, segment
from .matcher import ChatSearch
from .models import Conversation, SearchResult, Segment
from .parser import (
    ExportError,
    build_rows,
    compute_stats,
    extract_messages,
    filter_rows,
    load_export,
    normalize_document,
    sort_rows,
)
from .session import ExplorerSession
from .transcript import build_context_text, format_timestamp

SORT_FIELDS = ["update_time", "create_time", "title", "message_count"]


def _load(path: str) -> list[Conversation]:
    try:
        conversations = normalize_document(load_export(path))
    except ExportError as exc:
        raise click.ClickException(str(exc)) from exc
    if not conversations:
        raise click.ClickException(NO_RECORDS_MESSAGE)
    return conversations


def _pick(conversations: list[Conversation], position: int) -> Conversation:
    if not 0 <= position < len(conversations):
        raise click.ClickException(
            f"No conversation at position {position} (export has {len(conversations)})."
        )
    return conversations[position]


def _styled(segments: list[Segment]) -> str:
    parts = []
    for s in segments:
        if s.is_active:
            parts.append(click.style(s.text, reverse=True, bold=True))
        elif s.is_match:
            parts.append(click.style(s.text, fg="yellow", bold=True))
        else:
            parts.append(s.text)
    return "".join(parts)


@click.group()
@click.version_option(version=__version__, prog_name="chatgpt-explorer")
def cli():
    """chatgpt-explorer — Browse and search a ChatGPT conversations export.

    Every command takes the path to conversations.json or to the export ZIP
    you download from ChatGPT (Settings → Data Controls → Export Data).
    """
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@cli.command("list")
@click.argument("export_path", type=click.Path(exists=True))
@click.option("--filter", "filter_text", default="", help="Only rows containing this text")
@click.option("--sort", "sort_key", type=click.Choice(SORT_FIELDS), default="update_time")
@click.option("--asc", is_flag=True, help="Sort ascending instead of descending")
@click.option("--limit", default=50, show_default=True)
def list_cmd(export_path: str, filter_text: str, sort_key: str, asc: bool, limit: int):
    """List conversations in an export.

    Example:
        chatgpt-explorer list conversations.json --filter python
    """
    rows = build_rows(_load(export_path))
    rows = sort_rows(filter_rows(rows, filter_text), key=sort_key, descending=not asc)

    if not rows:
        click.echo(f"No conversations found matching '{filter_text}'.")
        return

    for r in rows[:limit]:
        archived = click.style(" [archived]", fg="magenta") if r.is_archived else ""
        click.echo(
            f"{r.source_index:>5}  {format_timestamp(r.update_time):<16}  "
            f"{r.message_count:>5} msgs  {r.title or 'Untitled'}{archived}"
        )

    if len(rows) > limit:
        click.echo(f"... {len(rows) - limit:,} more (use --limit)")


@cli.command()
@click.argument("export_path", type=click.Path(exists=True))
def stats(export_path: str):
    """Show statistics about an export."""
    s = compute_stats(build_rows(_load(export_path)))

    click.echo()
    click.echo(click.style("ChatGPT Export Statistics", bold=True))
    click.echo(f"  Conversations:  {s.total:,}")
    click.echo(f"  Messages:       {s.total_messages:,}")
    click.echo(f"  Archived:       {s.archived:,}")
    click.echo(f"  Latest update:  {format_timestamp(s.latest_update)}")
    click.echo()


@cli.command()
@click.argument("export_path", type=click.Path(exists=True))
@click.argument("position", type=int)
@click.option("--find", "find_text", default="", help="Highlight matches of this text")
@click.option("--match", "match_number", default=1, show_default=True,
              help="Which match to mark as active (wraps around)")
def show(export_path: str, position: int, find_text: str, match_number: int):
    """Print a conversation transcript in chronological order.

    Example:
        chatgpt-explorer show conversations.json 3 --find "docker"
    """
    conv = _pick(_load(export_path), position)
    messages = extract_messages(conv)

    chat = ChatSearch()
    chat.set_messages(messages)
    chat.set_query(find_text)
    for _ in range(match_number - 1):
        chat.next()

    click.echo(click.style(conv.title or "Untitled", bold=True))
    click.echo(
        f"Created: {format_timestamp(conv.create_time)} | "
        f"Updated: {format_timestamp(conv.update_time)} | {len(messages)} messages"
    )
    if find_text.strip():
        if chat.matches:
            click.echo(f"Match {chat.active_index + 1} of {len(chat.matches)} for '{find_text.strip()}'")
        else:
            click.echo(f"No matches for '{find_text.strip()}'")
    click.echo()

    for i, msg in enumerate(messages, 1):
        ts = f" ({format_timestamp(msg.create_time)})" if msg.create_time else ""
        click.echo(click.style(f"{i}. {msg.author_role or 'other'}{ts}", fg="cyan"))
        click.echo(_styled(segment(msg.text, chat.matches_for(msg.id), chat.active_match)))
        click.echo()


@cli.command()
@click.argument("export_path", type=click.Path(exists=True))
@click.argument("position", type=int)
@click.option("-o", "--output", type=click.Path(dir_okay=False, writable=True),
              help="Write to this file instead of stdout")
def export(export_path: str, position: int, output: str | None):
    """Export one conversation as a plain-text transcript."""
    conv = _pick(_load(export_path), position)
    text = build_context_text(conv, extract_messages(conv))

    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        click.echo(f"Wrote {output}")
    else:
        click.echo(text)


async def _search_export(export_path: str, query: str, limit: int) -> list[SearchResult]:
    session = ExplorerSession(max_results=limit)
    session.load_file(export_path)
    await session.wait_for_index()
    return session.set_corpus_query(query)


@cli.command()
@click.argument("export_path", type=click.Path(exists=True))
@click.argument("query")
@click.option("--limit", default=20, show_default=True)
def search(export_path: str, query: str, limit: int):
    """Search every message of every conversation.

    Words are matched by prefix and all of them must appear.

    Example:
        chatgpt-explorer search conversations.json "async generator"
    """
    try:
        results = asyncio.run(_search_export(export_path, query, limit))
    except ExportError as exc:
        raise click.ClickException(str(exc)) from exc

    if not results:
        click.echo(f"No messages found matching '{query}'.")
        return

    click.echo(f"Found {len(results)} messages matching '{query}':\n")
    for r in results:
        record = r.record
        click.echo(
            f"{click.style(record.title, bold=True)}  "
            f"[{record.conversation_index}] {record.role}, {format_timestamp(record.create_time)}"
        )
        snippet = _styled(highlight_snippet(r.snippet, query.strip()))
        click.echo(f"  {snippet.replace(chr(10), ' ')}")
        click.echo()


@cli.command()
@click.option("--export", "export_path", type=click.Path(exists=True),
              help="Export to load when the first tool is called")
def serve(export_path: str | None):
    """Start the MCP server (stdio transport).

    This is used by Claude Desktop and other MCP clients; you usually
    don't need to run it manually.
    """
    from . import config
    from .server import mcp

    if export_path:
        config.EXPORT_PATH = Path(export_path).expanduser()

    mcp.run(transport="stdio")
