"""Data models for loaded conversations and search state."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class NodeMessage(_Frozen):
    author_role: str | None = None
    create_time: float | None = None
    content_parts: list[str] = []

    @property
    def text(self) -> str:
        return "\n".join(self.content_parts).strip()


class MappingNode(_Frozen):
    id: str
    message: NodeMessage | None = None


class Conversation(_Frozen):
    id: str
    title: str | None = None
    create_time: float | None = None
    update_time: float | None = None
    is_archived: bool = False
    conversation_id: str | None = None
    current_node: str | None = None
    mapping: dict[str, MappingNode] = {}


class DisplayMessage(_Frozen):
    id: str
    author_role: str | None = None
    create_time: float | None = None
    text: str


class SearchRecord(_Frozen):
    id: str
    conversation_index: int
    message_id: str
    title: str
    role: str
    text: str
    create_time: float | None = None


class SearchResult(_Frozen):
    record: SearchRecord
    snippet: str


class ChatMatch(_Frozen):
    message_id: str
    start: int
    end: int


class Segment(_Frozen):
    text: str
    is_match: bool = False
    is_active: bool = False


class IndexStatus(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    READY = "ready"


class ConversationRow(_Frozen):
    id: str
    title: str
    create_time: float | None = None
    update_time: float | None = None
    message_count: int = 0
    user_count: int = 0
    assistant_count: int = 0
    current_node: str | None = None
    is_archived: bool = False
    conversation_id: str | None = None
    source_index: int


class ExportStats(_Frozen):
    total: int = 0
    total_messages: int = 0
    archived: int = 0
    latest_update: float | None = None
