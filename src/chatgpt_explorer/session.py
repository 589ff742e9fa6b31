"""Explorer session: loaded export, selected conversation, and both search paths."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from .config import MAX_SEARCH_RESULTS, NO_RECORDS_MESSAGE
from .index import SearchIndex
from .matcher import ChatSearch
from .models import (
    ChatMatch,
    Conversation,
    ConversationRow,
    DisplayMessage,
    ExportStats,
    IndexStatus,
    SearchResult,
)
from .parser import (
    ExportError,
    build_rows,
    compute_stats,
    extract_messages,
    load_export,
    normalize_document,
)
from .search import query_corpus

logger = logging.getLogger(__name__)


class ExplorerSession:
    """State behind one explorer window or server process.

    Loading a document replaces every conversation and starts a background
    index build on the running event loop. Chat search follows the selected
    conversation; corpus search stays empty until the index is ready and is
    refreshed when a build publishes.
    """

    def __init__(self, max_results: int = MAX_SEARCH_RESULTS, index: SearchIndex | None = None):
        self.max_results = max_results
        self.index = index or SearchIndex()
        self.chat = ChatSearch()

        self.conversations: list[Conversation] = []
        self.rows: list[ConversationRow] = []
        self.stats = ExportStats()
        self.file_name: str | None = None
        self.error: str | None = None
        self.selected_index: int | None = None
        self.selected_messages: list[DisplayMessage] = []

        self.corpus_query = ""
        self.results: list[SearchResult] = []
        self._build_task: asyncio.Task[bool] | None = None

    # Loading

    def load_file(self, path: str | Path) -> list[Conversation]:
        """Load a conversations.json file or export ZIP from disk."""
        self.error = None
        try:
            raw = load_export(path)
        except ExportError as exc:
            self.error = str(exc)
            self._replace([], None)
            raise
        return self.load_document(raw, file_name=Path(path).name)

    def load_document(self, raw: Any, file_name: str | None = None) -> list[Conversation]:
        """Normalize an already-parsed export and make it the current document."""
        conversations = normalize_document(raw)
        logger.info("Loaded %d conversations from %s", len(conversations), file_name or "document")

        if not conversations:
            self.error = NO_RECORDS_MESSAGE
            self._replace([], None)
            raise ExportError(NO_RECORDS_MESSAGE)

        self.error = None
        self._replace(conversations, file_name)
        return conversations

    def clear(self):
        self.error = None
        self.corpus_query = ""
        self._replace([], None)

    def _replace(self, conversations: list[Conversation], file_name: str | None):
        loop = asyncio.get_running_loop()

        self.conversations = conversations
        self.file_name = file_name
        self.rows = build_rows(conversations)
        self.stats = compute_stats(self.rows)
        self.select_conversation(None)

        build = self.index.build(conversations)
        self.results = []
        self._build_task = loop.create_task(build)
        self._build_task.add_done_callback(self._on_build_done)

    def _on_build_done(self, task: asyncio.Task[bool]):
        # Runs before anyone awaiting the task resumes
        if not task.cancelled() and task.result():
            self._refresh_results()

    async def wait_for_index(self) -> IndexStatus:
        """Wait for the most recently started build to finish or be superseded."""
        while self._build_task is not None and not self._build_task.done():
            await self._build_task
        return self.index.status

    @property
    def index_status(self) -> IndexStatus:
        return self.index.status

    @property
    def total_messages(self) -> int:
        return self.stats.total_messages

    # Conversation selection and chat search

    def select_conversation(self, index: int | None):
        if index is None:
            self.selected_index = None
            self.selected_messages = []
        else:
            if not 0 <= index < len(self.conversations):
                raise IndexError(f"No conversation at position {index}")
            self.selected_index = index
            self.selected_messages = extract_messages(self.conversations[index])
        self.chat.set_messages(self.selected_messages)

    @property
    def selected_conversation(self) -> Conversation | None:
        if self.selected_index is None:
            return None
        return self.conversations[self.selected_index]

    def set_chat_query(self, text: str) -> list[ChatMatch]:
        self.chat.set_query(text)
        return self.chat.matches

    def chat_next(self) -> ChatMatch | None:
        return self.chat.next()

    def chat_prev(self) -> ChatMatch | None:
        return self.chat.prev()

    # Corpus search

    def set_corpus_query(self, text: str) -> list[SearchResult]:
        self.corpus_query = text
        self._refresh_results()
        return self.results

    def _refresh_results(self):
        if not self.corpus_query.strip():
            self.results = []
            return
        if self.index.status is not IndexStatus.READY:
            return
        self.results = query_corpus(self.index, self.corpus_query, limit=self.max_results)
