"""Corpus-wide search over the message index."""

from __future__ import annotations

import logging

from .config import MAX_SEARCH_RESULTS
from .highlight import build_snippet
from .index import SearchIndex
from .models import IndexStatus, SearchResult

logger = logging.getLogger(__name__)


def query_corpus(
    index: SearchIndex,
    text: str,
    limit: int = MAX_SEARCH_RESULTS,
) -> list[SearchResult]:
    """Search every indexed message for ``text``.

    Returns nothing until the index is ready. Results keep the order the
    index returns them in; ids that no longer resolve to a record are
    skipped.
    """
    query = text.strip()
    if not query or index.status is not IndexStatus.READY:
        return []

    results: list[SearchResult] = []
    for record_id in index.lookup(query, limit):
        record = index.get_record(record_id)
        if record is None:
            logger.debug("Dropping unresolved record id %s", record_id)
            continue
        results.append(SearchResult(record=record, snippet=build_snippet(record.text, query)))

    return results
