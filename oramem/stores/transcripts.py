"""Append-only per-session transcript lines in PICO_TRANSCRIPTS."""

from __future__ import annotations

import oracledb

from oramem.stores.base import StoreError, TranscriptEntry
from oramem.stores.connection import ConnectionManager, Transaction

# Serializes sequence allocation across writers; released at commit or rollback.
_LOCK_SQL = "LOCK TABLE PICO_TRANSCRIPTS IN EXCLUSIVE MODE"
_NEXT_SEQ_SQL = (
    "SELECT NVL(MAX(sequence_num), 0) + 1 FROM PICO_TRANSCRIPTS "
    "WHERE session_key = :session_key AND agent_id = :agent_id"
)
_INSERT_SQL = (
    "INSERT INTO PICO_TRANSCRIPTS (session_key, agent_id, sequence_num, role, content) "
    "VALUES (:session_key, :agent_id, :sequence_num, :role, :content)"
)
_FOR_SESSION_SQL = (
    "SELECT session_key, sequence_num, role, content, created_at FROM PICO_TRANSCRIPTS "
    "WHERE session_key = :session_key AND agent_id = :agent_id ORDER BY sequence_num ASC"
)
_RECENT_SQL = (
    "SELECT session_key, sequence_num, role, content, created_at FROM PICO_TRANSCRIPTS "
    "WHERE agent_id = :agent_id ORDER BY id DESC FETCH FIRST :limit ROWS ONLY"
)


def _entry(row: tuple) -> TranscriptEntry:
    session_key, sequence_num, role, content, created_at = row
    return TranscriptEntry(
        session_key=session_key,
        sequence_num=int(sequence_num),
        role=role or "",
        content=content or "",
        created_at=created_at,
    )


class TranscriptStore:
    def __init__(self, db: ConnectionManager, agent_id: str) -> None:
        self._db = db
        self._agent_id = agent_id

    def append(self, session_key: str, role: str, content: str) -> int:
        """Append one line to *session_key* and return its sequence number."""

        def _append(tx: Transaction) -> int:
            tx.execute(_LOCK_SQL)
            scope = {"session_key": session_key, "agent_id": self._agent_id}
            row = tx.query_one(_NEXT_SEQ_SQL, scope)
            sequence_num = int(row[0]) if row else 1
            tx.execute(
                _INSERT_SQL,
                {**scope, "sequence_num": sequence_num, "role": role, "content": content},
            )
            return sequence_num

        try:
            return self._db.run_in_transaction(_append)
        except oracledb.Error as exc:
            raise StoreError(f"transcript append failed: {exc}") from exc

    def for_session(self, session_key: str) -> list[TranscriptEntry]:
        try:
            rows = self._db.query(
                _FOR_SESSION_SQL, {"session_key": session_key, "agent_id": self._agent_id}
            )
        except oracledb.Error as exc:
            raise StoreError(f"failed to read transcript: {exc}") from exc
        return [_entry(row) for row in rows]

    def recent(self, limit: int = 50) -> list[TranscriptEntry]:
        """Newest lines first, across all sessions of the agent."""
        try:
            rows = self._db.query(_RECENT_SQL, {"agent_id": self._agent_id, "limit": limit})
        except oracledb.Error as exc:
            raise StoreError(f"failed to read transcripts: {exc}") from exc
        return [_entry(row) for row in rows]
