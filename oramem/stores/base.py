"""Abstract capability interfaces, shared types and errors for the store layer."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """Base class for every failure raised by the store layer."""


class ConnectionFailedError(StoreError):
    """Raised when the connection pool cannot be created or fails its ping."""


class RollbackError(StoreError):
    """Raised when a failed transaction could not be rolled back either."""

    def __init__(self, rollback_error: BaseException, original: BaseException) -> None:
        super().__init__(f"rollback failed: {rollback_error} (original error: {original})")
        self.rollback_error = rollback_error
        self.original = original


class SchemaError(StoreError):
    """Raised when schema provisioning hits a non-duplicate DDL error."""


class EmbeddingError(StoreError):
    """Raised when the embedding backend fails to produce a vector."""


class EmbeddingUnavailableError(EmbeddingError):
    """Raised when a vector operation is attempted without an embedding service."""


class MemoryNotFoundError(StoreError):
    """Raised by ``forget`` when no memory with the given id exists."""

    def __init__(self, memory_id: str) -> None:
        super().__init__(f"memory {memory_id} not found")
        self.memory_id = memory_id


# ---------------------------------------------------------------------------
# Shared types
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    type: str = "function"
    name: str = ""
    arguments: str | dict | None = None


class Message(BaseModel):
    """One role-tagged entry of a conversation history.

    Unknown fields are kept so that histories written by other producers
    survive a load/save cycle unchanged.
    """

    model_config = ConfigDict(extra="allow")

    role: str
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None


@dataclass
class Session:
    key: str
    messages: list[Message]
    summary: str = ""
    created: datetime | None = None
    updated: datetime | None = None


@dataclass
class RecallResult:
    memory_id: str
    text: str
    importance: float
    category: str
    score: float


@dataclass
class VectorSearchResult:
    id: str
    text: str
    distance: float
    score: float


@dataclass
class MemoryRecord:
    memory_id: str
    text: str
    importance: float
    category: str
    access_count: int
    created_at: datetime | None = None


@dataclass
class TranscriptEntry:
    session_key: str
    sequence_num: int
    role: str
    content: str
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Capability interfaces
# ---------------------------------------------------------------------------


class MemoryBackend(abc.ABC):
    """Plain-text memory capability consumed by the agent loop."""

    @abc.abstractmethod
    def read_long_term(self) -> str: ...

    @abc.abstractmethod
    def write_long_term(self, content: str) -> None: ...

    @abc.abstractmethod
    def read_today(self) -> str: ...

    @abc.abstractmethod
    def append_today(self, content: str) -> None: ...

    @abc.abstractmethod
    def get_recent_daily_notes(self, days: int) -> str: ...

    @abc.abstractmethod
    def get_memory_context(self) -> str: ...


class SemanticMemory(MemoryBackend):
    """Memory capability extended with embedding-backed recall."""

    @abc.abstractmethod
    def remember(self, text: str, importance: float, category: str = "") -> str:
        """Store *text* and return the generated memory id."""
        ...

    @abc.abstractmethod
    def recall(self, query: str, max_results: int = 5) -> list[RecallResult]: ...

    @abc.abstractmethod
    def forget(self, memory_id: str) -> None: ...


class SessionManager(abc.ABC):
    """Conversation-history capability."""

    @abc.abstractmethod
    def add_message(self, key: str, role: str, content: str) -> None: ...

    @abc.abstractmethod
    def add_full_message(self, key: str, message: Message) -> None: ...

    @abc.abstractmethod
    def get_history(self, key: str) -> list[Message]: ...

    @abc.abstractmethod
    def get_summary(self, key: str) -> str: ...

    @abc.abstractmethod
    def set_summary(self, key: str, summary: str) -> None: ...

    @abc.abstractmethod
    def truncate_history(self, key: str, keep_last: int) -> None: ...

    @abc.abstractmethod
    def save(self, key: str) -> None: ...


class StateManager(abc.ABC):
    """Scalar runtime-state capability."""

    @abc.abstractmethod
    def set_last_channel(self, channel: str) -> None: ...

    @abc.abstractmethod
    def get_last_channel(self) -> str: ...

    @abc.abstractmethod
    def set_last_chat_id(self, chat_id: str) -> None: ...

    @abc.abstractmethod
    def get_last_chat_id(self) -> str: ...
