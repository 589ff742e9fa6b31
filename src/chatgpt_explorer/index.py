"""In-memory SQLite FTS5 message index, rebuilt incrementally on every load."""

from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
from collections.abc import Coroutine, Mapping, Sequence
from types import MappingProxyType
from typing import Any

from .config import INDEX_YIELD_EVERY
from .models import Conversation, IndexStatus, SearchRecord

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def _match_expression(query: str) -> str | None:
    """Build an FTS5 MATCH expression requiring a prefix match on every word."""
    tokens = _TOKEN_RE.findall(query.lower())
    if not tokens:
        return None
    return " ".join(f'"{token}"*' for token in tokens)


class MessageTable:
    """One FTS5 table mapping token streams to record ids.

    Each build fills its own table; a table is never written to after it
    has been published.
    """

    def __init__(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        self.conn.execute("""
            CREATE VIRTUAL TABLE messages_fts USING fts5(
                record_id UNINDEXED,
                body,
                tokenize='unicode61 remove_diacritics 2'
            )
        """)

    def add(self, record_id: str, body: str):
        self.conn.execute(
            "INSERT INTO messages_fts (record_id, body) VALUES (?, ?)",
            (record_id, body),
        )

    def search(self, query: str, limit: int) -> list[str]:
        expression = _match_expression(query)
        if expression is None:
            return []

        rows = self.conn.execute(
            """SELECT record_id FROM messages_fts
               WHERE messages_fts MATCH ?
               ORDER BY rank
               LIMIT ?""",
            (expression, limit),
        ).fetchall()
        return [row[0] for row in rows]

    def close(self):
        self.conn.close()


class SearchIndex:
    """Full-text index over every message of every loaded conversation.

    ``build`` bumps a generation counter and returns the coroutine that does
    the traversal. The traversal yields to the event loop every
    ``yield_every`` messages and gives up as soon as a newer build has been
    started, so only the latest build ever publishes. The table and record
    map are swapped in together on success and never patched in place.
    """

    def __init__(self, yield_every: int = INDEX_YIELD_EVERY):
        self.yield_every = yield_every
        self._generation = 0
        self._status = IndexStatus.IDLE
        self._table = MessageTable()
        self._records: dict[str, SearchRecord] = {}

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def status(self) -> IndexStatus:
        return self._status

    @property
    def records(self) -> Mapping[str, SearchRecord]:
        return MappingProxyType(self._records)

    @property
    def record_count(self) -> int:
        return len(self._records)

    def build(self, conversations: Sequence[Conversation]) -> Coroutine[Any, Any, bool]:
        """Start a new build and return the coroutine that completes it.

        The coroutine resolves to True if this build published its result
        and False if a newer build superseded it.
        """
        self._generation += 1
        generation = self._generation
        conversations = list(conversations)

        if not conversations:
            self._publish(MessageTable(), {}, IndexStatus.IDLE)
        else:
            self._status = IndexStatus.BUILDING
            logger.debug(
                "Index build %d started for %d conversations", generation, len(conversations)
            )

        return self._populate(conversations, generation)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _populate(self, conversations: list[Conversation], generation: int) -> bool:
        if not conversations:
            return self._is_current(generation)

        table = MessageTable()
        records: dict[str, SearchRecord] = {}
        count = 0

        for conv_index, conv in enumerate(conversations):
            title = conv.title if conv.title is not None else "Untitled"
            for node in conv.mapping.values():
                if node.message is None:
                    continue
                text = node.message.text
                if not text:
                    continue

                record_id = f"m-{conv_index}-{count}"
                role = node.message.author_role or "other"
                table.add(record_id, f"{text}\n{title}\n{role}")
                records[record_id] = SearchRecord(
                    id=record_id,
                    conversation_index=conv_index,
                    message_id=node.id,
                    title=title,
                    role=role,
                    text=text,
                    create_time=node.message.create_time,
                )
                count += 1

                if count % self.yield_every == 0:
                    await asyncio.sleep(0)
                    if not self._is_current(generation):
                        logger.debug("Index build %d superseded after %d messages", generation, count)
                        table.close()
                        return False

        if not self._is_current(generation):
            logger.debug("Index build %d superseded before publishing", generation)
            table.close()
            return False

        self._publish(table, records, IndexStatus.READY)
        logger.info("Index build %d ready: %d messages", generation, count)
        return True

    def _publish(self, table: MessageTable, records: dict[str, SearchRecord], status: IndexStatus):
        previous = self._table
        self._table = table
        self._records = records
        self._status = status
        previous.close()

    def lookup(self, query: str, limit: int) -> list[str]:
        """Return up to ``limit`` record ids matching ``query`` in index order."""
        if self._status is not IndexStatus.READY:
            return []
        return self._table.search(query, limit)

    def get_record(self, record_id: str) -> SearchRecord | None:
        return self._records.get(record_id)

    def close(self):
        self._table.close()
