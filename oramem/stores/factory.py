"""Wiring: open the pool, the embedding service and every store for one agent."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from oramem.embeddings import EmbeddingService, create_embedding_service
from oramem.stores.config_store import ConfigStore
from oramem.stores.connection import ConnectionManager, connect
from oramem.stores.ddl import init_schema
from oramem.stores.memory_store import OracleMemoryStore
from oramem.stores.prompt_store import PromptStore
from oramem.stores.session_store import OracleSessionStore
from oramem.stores.state_store import OracleStateStore
from oramem.stores.transcripts import TranscriptStore

if TYPE_CHECKING:
    import httpx

    from oramem.settings import StoreSettings


@dataclass
class AgentStores:
    """Every store of one agent, sharing a single connection pool."""

    agent_id: str
    db: ConnectionManager
    embedding: EmbeddingService | None
    memory: OracleMemoryStore
    sessions: OracleSessionStore
    state: OracleStateStore
    prompts: PromptStore
    config: ConfigStore
    transcripts: TranscriptStore


def create_agent_stores(
    db: ConnectionManager,
    settings: StoreSettings,
    embedding: EmbeddingService | None,
) -> AgentStores:
    """Build the stores on an already-open pool (sessions and state preload here)."""
    agent_id = settings.agent_id
    return AgentStores(
        agent_id=agent_id,
        db=db,
        embedding=embedding,
        memory=OracleMemoryStore(db, agent_id, embedding, settings.memory),
        sessions=OracleSessionStore(db, agent_id),
        state=OracleStateStore(db, agent_id),
        prompts=PromptStore(db, agent_id),
        config=ConfigStore(db, agent_id),
        transcripts=TranscriptStore(db, agent_id),
    )


@contextmanager
def open_stores(
    settings: StoreSettings,
    *,
    init: bool = False,
    client: httpx.Client | None = None,
) -> Iterator[AgentStores]:
    """Context manager owning the pool and the embedding client.

    With *init* the schema is provisioned before the stores are built.
    Both resources are released exactly once on exit.
    """
    db = connect(settings.database)
    embedding: EmbeddingService | None = None
    try:
        if init:
            init_schema(db)
        embedding = create_embedding_service(settings.embeddings, db, client=client)
        yield create_agent_stores(db, settings, embedding)
    finally:
        if embedding is not None:
            embedding.close()
        db.close()
