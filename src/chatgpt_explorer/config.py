"""Central configuration for paths and constants."""

import os
from pathlib import Path

# Export loaded by the MCP server on first use — override with CHATGPT_EXPLORER_EXPORT
_export = os.environ.get("CHATGPT_EXPLORER_EXPORT")
EXPORT_PATH = Path(_export).expanduser() if _export else None

LOG_LEVEL = os.environ.get("CHATGPT_EXPLORER_LOG_LEVEL", "WARNING").upper()

# Index building
INDEX_YIELD_EVERY = 500  # Messages indexed between cooperative yields

# Corpus search
MAX_SEARCH_RESULTS = 200  # Candidate ids requested from the index per query
SNIPPET_CONTEXT_CHARS = 60  # Characters kept on each side of the first match
SNIPPET_FALLBACK_CHARS = 140  # Leading characters shown when the query is absent

# Keys that mark a top-level object as a conversation container
CONTAINER_KEYS = ("conversations", "items", "data")
CONVERSATION_KEYS = ("mapping", "title", "id", "conversation_id")

NO_RECORDS_MESSAGE = (
    "No conversation records found. Ensure you selected conversations.json."
)
