"""Long-term semantic memory and the daily journal, stored in PICO_MEMORIES / PICO_DAILY_NOTES."""

from __future__ import annotations

from datetime import date

import oracledb

from oramem._log import get_logger
from oramem.agent.schema.memory import MemoryConfig
from oramem.embeddings import EmbeddingMode, EmbeddingService
from oramem.stores._helpers import format_vector, new_id
from oramem.stores.base import (
    EmbeddingError,
    EmbeddingUnavailableError,
    MemoryNotFoundError,
    MemoryRecord,
    RecallResult,
    SemanticMemory,
    StoreError,
)
from oramem.stores.connection import ConnectionManager, Transaction
from oramem.stores.vector_search import build_vector_query, similarity

logger = get_logger("oracle")

SEPARATOR = "\n\n---\n\n"

_READ_LONG_TERM_SQL = (
    "SELECT content FROM PICO_MEMORIES WHERE agent_id = :agent_id "
    "ORDER BY importance DESC, created_at DESC"
)
_READ_TODAY_SQL = (
    "SELECT content FROM PICO_DAILY_NOTES "
    "WHERE agent_id = :agent_id AND note_date = TRUNC(SYSDATE) "
    "ORDER BY updated_at DESC FETCH FIRST 1 ROW ONLY"
)
_LOCK_NOTES_SQL = "LOCK TABLE PICO_DAILY_NOTES IN EXCLUSIVE MODE"
_RECENT_NOTES_SQL = (
    "SELECT content FROM PICO_DAILY_NOTES "
    "WHERE agent_id = :agent_id AND note_date >= TRUNC(SYSDATE) - :days "
    "ORDER BY note_date DESC"
)
_LIST_MEMORIES_SQL = (
    "SELECT memory_id, content, importance, category, access_count, created_at "
    "FROM PICO_MEMORIES WHERE agent_id = :agent_id "
    "ORDER BY created_at DESC FETCH FIRST :limit ROWS ONLY"
)
_TOUCH_SQL = (
    "UPDATE PICO_MEMORIES SET accessed_at = CURRENT_TIMESTAMP, access_count = access_count + 1 "
    "WHERE memory_id = :memory_id AND agent_id = :agent_id"
)
_FORGET_SQL = "DELETE FROM PICO_MEMORIES WHERE memory_id = :memory_id AND agent_id = :agent_id"


class OracleMemoryStore(SemanticMemory):
    """Embedding-backed memory for one agent.

    No in-process cache: every call goes to the database. With an in-database
    (ONNX) embedding service the vectors are computed inline in SQL; with an
    API service they are computed first and bound through ``TO_VECTOR``.
    """

    def __init__(
        self,
        db: ConnectionManager,
        agent_id: str,
        embedding: EmbeddingService | None = None,
        config: MemoryConfig | None = None,
    ) -> None:
        self._db = db
        self._agent_id = agent_id
        self._embedding = embedding
        self._config = config or MemoryConfig()

    @property
    def agent_id(self) -> str:
        return self._agent_id

    @property
    def embedding(self) -> EmbeddingService | None:
        return self._embedding

    def _inline_model(self) -> str | None:
        """Model name for ``VECTOR_EMBEDDING()`` when vectors are computed in SQL."""
        if self._embedding is not None and self._embedding.mode == EmbeddingMode.ONNX:
            return self._embedding.model_name or None
        return None

    def _api_vector(self, text: str) -> str | None:
        """Embed *text* through the API; on failure log and return None."""
        if self._embedding is None or self._embedding.mode != EmbeddingMode.API:
            return None
        try:
            return format_vector(self._embedding.embed_text(text))
        except EmbeddingError as exc:
            logger.warning("Embedding failed, storing without vector: %s", exc)
            return None

    # -- long-term memory --------------------------------------------------

    def read_long_term(self) -> str:
        try:
            rows = self._db.query(_READ_LONG_TERM_SQL, {"agent_id": self._agent_id})
        except oracledb.Error as exc:
            logger.warning("Failed to read long-term memories: %s", exc)
            return ""
        return SEPARATOR.join(content for (content,) in rows if content)

    def write_long_term(self, content: str) -> None:
        self.remember(content, self._config.long_term_importance, self._config.long_term_category)

    def remember(self, text: str, importance: float, category: str = "") -> str:
        memory_id = new_id()
        binds = {
            "memory_id": memory_id,
            "agent_id": self._agent_id,
            "content": text,
            "importance": importance,
            "category": category,
        }
        model = self._inline_model()
        if model:
            sql = (
                "INSERT INTO PICO_MEMORIES "
                "(memory_id, agent_id, content, embedding, importance, category) "
                f"VALUES (:memory_id, :agent_id, :content, "
                f"VECTOR_EMBEDDING({model} USING :embed_text AS DATA), :importance, :category)"
            )
            binds["embed_text"] = text
        else:
            vector = self._api_vector(text)
            if vector is not None:
                sql = (
                    "INSERT INTO PICO_MEMORIES "
                    "(memory_id, agent_id, content, embedding, importance, category) "
                    "VALUES (:memory_id, :agent_id, :content, TO_VECTOR(:embedding), "
                    ":importance, :category)"
                )
                binds["embedding"] = vector
            else:
                sql = (
                    "INSERT INTO PICO_MEMORIES (memory_id, agent_id, content, importance, category) "
                    "VALUES (:memory_id, :agent_id, :content, :importance, :category)"
                )

        try:
            self._db.execute(sql, binds)
        except oracledb.Error as exc:
            raise StoreError(f"failed to remember: {exc}") from exc

        logger.info(
            "Memory stored (id=%s, importance=%.2f, category=%s)", memory_id, importance, category
        )
        return memory_id

    def recall(self, query: str, max_results: int = 5) -> list[RecallResult]:
        """Return memories similar to *query*, best first, above ``min_score``.

        Every returned memory gets its access counter bumped.
        """
        if self._embedding is None:
            raise EmbeddingUnavailableError("embedding service not available")

        binds: dict[str, object] = {"agent_id": self._agent_id, "max_results": max_results}
        model = self._inline_model()
        if model:
            query_expr = f"VECTOR_EMBEDDING({model} USING :query AS DATA)"
            binds["query"] = query
        else:
            try:
                vector = self._embedding.embed_text(query)
            except EmbeddingError as exc:
                raise EmbeddingError(f"failed to embed query: {exc}") from exc
            query_expr = "TO_VECTOR(:query_vec)"
            binds["query_vec"] = format_vector(vector)

        sql = build_vector_query(
            "PICO_MEMORIES",
            "memory_id",
            "content",
            "embedding",
            query_expr=query_expr,
            extra_cols=("importance", "category"),
        )
        try:
            rows = self._db.query(sql, binds)
        except oracledb.Error as exc:
            raise StoreError(f"recall query failed: {exc}") from exc

        results: list[RecallResult] = []
        for memory_id, content, importance, category, distance in rows:
            score = similarity(distance)
            if score < self._config.min_score:
                continue
            results.append(
                RecallResult(
                    memory_id=memory_id,
                    text=content or "",
                    importance=float(importance) if importance is not None else 0.0,
                    category=category or "",
                    score=score,
                )
            )

        if results:
            self._touch([r.memory_id for r in results])
        return results

    def _touch(self, memory_ids: list[str]) -> None:
        for memory_id in memory_ids:
            try:
                self._db.execute(_TOUCH_SQL, {"memory_id": memory_id, "agent_id": self._agent_id})
            except oracledb.Error as exc:
                logger.warning("Failed to update access count for %s: %s", memory_id, exc)

    def forget(self, memory_id: str) -> None:
        try:
            affected = self._db.execute(
                _FORGET_SQL, {"memory_id": memory_id, "agent_id": self._agent_id}
            )
        except oracledb.Error as exc:
            raise StoreError(f"forget failed: {exc}") from exc
        if affected == 0:
            raise MemoryNotFoundError(memory_id)

    def list_memories(self, limit: int = 20) -> list[MemoryRecord]:
        try:
            rows = self._db.query(_LIST_MEMORIES_SQL, {"agent_id": self._agent_id, "limit": limit})
        except oracledb.Error as exc:
            raise StoreError(f"failed to list memories: {exc}") from exc
        return [
            MemoryRecord(
                memory_id=memory_id,
                text=content or "",
                importance=float(importance) if importance is not None else 0.0,
                category=category or "",
                access_count=int(access_count or 0),
                created_at=created_at,
            )
            for memory_id, content, importance, category, access_count, created_at in rows
        ]

    # -- daily notes -------------------------------------------------------

    def _today_note(self) -> str | None:
        try:
            row = self._db.query_one(_READ_TODAY_SQL, {"agent_id": self._agent_id})
        except oracledb.Error as exc:
            raise StoreError(f"failed to read today's note: {exc}") from exc
        if row is None:
            return None
        return row[0] or ""

    def read_today(self) -> str:
        try:
            return self._today_note() or ""
        except StoreError as exc:
            logger.warning("%s", exc)
            return ""

    def _note_write(self, existing: str | None, content: str) -> tuple[str, dict]:
        """Build the INSERT (no note yet today) or UPDATE that appends *content*."""
        model = self._inline_model()

        if existing is None:
            full = f"# {date.today().isoformat()}\n\n{content}"
            binds = {"note_id": new_id(), "agent_id": self._agent_id, "content": full}
            embedding_expr = None
            if model:
                embedding_expr = f"VECTOR_EMBEDDING({model} USING :embed_text AS DATA)"
                binds["embed_text"] = full
            else:
                vector = self._api_vector(full)
                if vector is not None:
                    embedding_expr = "TO_VECTOR(:embedding)"
                    binds["embedding"] = vector
            if embedding_expr:
                sql = (
                    "INSERT INTO PICO_DAILY_NOTES (note_id, agent_id, note_date, content, embedding) "
                    f"VALUES (:note_id, :agent_id, TRUNC(SYSDATE), :content, {embedding_expr})"
                )
            else:
                sql = (
                    "INSERT INTO PICO_DAILY_NOTES (note_id, agent_id, note_date, content) "
                    "VALUES (:note_id, :agent_id, TRUNC(SYSDATE), :content)"
                )
            return sql, binds

        full = f"{existing}\n{content}"
        binds = {"agent_id": self._agent_id, "content": full}
        embedding_set = ""
        if model:
            embedding_set = f", embedding = VECTOR_EMBEDDING({model} USING :embed_text AS DATA)"
            binds["embed_text"] = full
        else:
            vector = self._api_vector(full)
            if vector is not None:
                embedding_set = ", embedding = TO_VECTOR(:embedding)"
                binds["embedding"] = vector
        sql = (
            f"UPDATE PICO_DAILY_NOTES SET content = :content{embedding_set}, "
            "updated_at = CURRENT_TIMESTAMP "
            "WHERE agent_id = :agent_id AND note_date = TRUNC(SYSDATE)"
        )
        return sql, binds

    def append_today(self, content: str) -> None:
        """Append *content* to today's note, creating it with a dated header if needed.

        The read and the write share one transaction holding an exclusive lock
        on PICO_DAILY_NOTES, so concurrent appends neither create a second note
        for the day nor drop each other's lines.
        """

        def _append(tx: Transaction) -> None:
            tx.execute(_LOCK_NOTES_SQL)
            try:
                row = tx.query_one(_READ_TODAY_SQL, {"agent_id": self._agent_id})
            except oracledb.Error as exc:
                raise StoreError(f"failed to read today's note: {exc}") from exc
            existing = None if row is None else row[0] or ""
            sql, binds = self._note_write(existing, content)
            tx.execute(sql, binds)

        try:
            self._db.run_in_transaction(_append)
        except oracledb.Error as exc:
            raise StoreError(f"failed to write daily note: {exc}") from exc

    def get_recent_daily_notes(self, days: int) -> str:
        try:
            rows = self._db.query(_RECENT_NOTES_SQL, {"agent_id": self._agent_id, "days": days})
        except oracledb.Error as exc:
            logger.warning("Failed to read recent daily notes: %s", exc)
            return ""
        return SEPARATOR.join(content for (content,) in rows if content)

    def get_memory_context(self) -> str:
        parts: list[str] = []
        long_term = self.read_long_term()
        if long_term:
            parts.append("## Long-term Memory\n\n" + long_term)
        recent = self.get_recent_daily_notes(self._config.context_days)
        if recent:
            parts.append("## Recent Daily Notes\n\n" + recent)
        if not parts:
            return ""
        return "# Memory\n\n" + SEPARATOR.join(parts)
