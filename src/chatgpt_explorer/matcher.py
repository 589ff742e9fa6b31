"""Substring matching and active-match navigation for in-conversation search."""

from __future__ import annotations

from collections.abc import Sequence

from .models import ChatMatch, DisplayMessage


def find_spans(text: str, query: str) -> list[tuple[int, int]]:
    """Return non-overlapping ``(start, end)`` spans of ``query`` in ``text``.

    Matching is case-insensitive. The cursor jumps to the end of each match,
    so "aa" in "aaa" yields a single span.
    """
    needle = query.strip().lower()
    if not needle:
        return []

    haystack = text.lower()
    spans: list[tuple[int, int]] = []
    cursor = 0

    while cursor < len(haystack):
        found = haystack.find(needle, cursor)
        if found == -1:
            break
        spans.append((found, found + len(needle)))
        cursor = found + len(needle)

    return spans


def find_matches(messages: Sequence[DisplayMessage], query: str) -> list[ChatMatch]:
    """Find every occurrence of ``query`` across messages, in message order."""
    if not query.strip():
        return []

    return [
        ChatMatch(message_id=message.id, start=start, end=end)
        for message in messages
        for start, end in find_spans(message.text, query)
    ]


class ChatSearch:
    """Search state for the open conversation.

    Matches are recomputed in full whenever the query or the message list
    changes, and the active match resets to the first one.
    """

    def __init__(self) -> None:
        self.query = ""
        self.messages: list[DisplayMessage] = []
        self.matches: list[ChatMatch] = []
        self.active_index = -1

    def set_query(self, query: str) -> None:
        self.query = query
        self._refresh()

    def set_messages(self, messages: Sequence[DisplayMessage]) -> None:
        self.messages = list(messages)
        self._refresh()

    def _refresh(self) -> None:
        self.matches = find_matches(self.messages, self.query)
        self.active_index = 0 if self.matches else -1

    def next(self) -> ChatMatch | None:
        if not self.matches:
            return None
        self.active_index = (self.active_index + 1) % len(self.matches)
        return self.active_match

    def prev(self) -> ChatMatch | None:
        if not self.matches:
            return None
        self.active_index = (self.active_index - 1) % len(self.matches)
        return self.active_match

    @property
    def active_match(self) -> ChatMatch | None:
        if 0 <= self.active_index < len(self.matches):
            return self.matches[self.active_index]
        return None

    def matches_for(self, message_id: str) -> list[ChatMatch]:
        return [m for m in self.matches if m.message_id == message_id]
