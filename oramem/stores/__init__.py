"""Oracle-backed persistence for agent sessions, state, memories and prompts."""

from oramem.stores.base import (
    ConnectionFailedError,
    EmbeddingError,
    EmbeddingUnavailableError,
    MemoryBackend,
    MemoryNotFoundError,
    MemoryRecord,
    Message,
    RecallResult,
    RollbackError,
    SchemaError,
    SemanticMemory,
    Session,
    SessionManager,
    StateManager,
    StoreError,
    ToolCall,
    TranscriptEntry,
    VectorSearchResult,
)
from oramem.stores.connection import ConnectionManager, build_dsn, connect
from oramem.stores.ddl import get_schema_version, init_schema

__all__ = [
    "ConnectionFailedError",
    "ConnectionManager",
    "EmbeddingError",
    "EmbeddingUnavailableError",
    "MemoryBackend",
    "MemoryNotFoundError",
    "MemoryRecord",
    "Message",
    "RecallResult",
    "RollbackError",
    "SchemaError",
    "SemanticMemory",
    "Session",
    "SessionManager",
    "StateManager",
    "StoreError",
    "ToolCall",
    "TranscriptEntry",
    "VectorSearchResult",
    "build_dsn",
    "connect",
    "get_schema_version",
    "init_schema",
]
