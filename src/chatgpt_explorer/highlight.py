"""Snippets and highlight segments for rendering search hits."""

from __future__ import annotations

from collections.abc import Sequence

from .config import SNIPPET_CONTEXT_CHARS, SNIPPET_FALLBACK_CHARS
from .matcher import find_spans
from .models import ChatMatch, Segment


def build_snippet(text: str, query: str) -> str:
    """Cut a context window around the first case-insensitive occurrence of ``query``.

    Without an occurrence the leading characters are returned as-is. An
    ellipsis marks each side where the window was cut.
    """
    needle = query.lower()
    found = text.lower().find(needle)
    if found == -1:
        return text[:SNIPPET_FALLBACK_CHARS]

    start = max(0, found - SNIPPET_CONTEXT_CHARS)
    end = min(len(text), found + len(needle) + SNIPPET_CONTEXT_CHARS)
    prefix = "…" if start > 0 else ""
    suffix = "…" if end < len(text) else ""
    return f"{prefix}{text[start:end]}{suffix}"


def segment(
    text: str,
    matches: Sequence[ChatMatch],
    active_match: ChatMatch | None = None,
) -> list[Segment]:
    """Split ``text`` into plain and highlighted segments.

    ``matches`` must be sorted by start and must not overlap. A match is
    active when it has the same message id and start as ``active_match``.
    With no matches the whole text comes back as one plain segment.
    """
    if not matches:
        return [Segment(text=text)]

    segments: list[Segment] = []
    cursor = 0

    for match in matches:
        if match.start > cursor:
            segments.append(Segment(text=text[cursor : match.start]))
        is_active = (
            active_match is not None
            and active_match.message_id == match.message_id
            and active_match.start == match.start
        )
        segments.append(
            Segment(text=text[match.start : match.end], is_match=True, is_active=is_active)
        )
        cursor = match.end

    if cursor < len(text):
        segments.append(Segment(text=text[cursor:]))

    return segments


def highlight_snippet(snippet: str, query: str) -> list[Segment]:
    """Segment a corpus-search snippet on every occurrence of ``query``."""
    spans = [
        ChatMatch(message_id="", start=start, end=end)
        for start, end in find_spans(snippet, query)
    ]
    return segment(snippet, spans)
