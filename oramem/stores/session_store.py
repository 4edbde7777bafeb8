"""Conversation histories cached in process and persisted to PICO_SESSIONS on demand."""

from __future__ import annotations

import copy
from datetime import UTC, datetime

import oracledb

from oramem._log import get_logger
from oramem.stores._helpers import dump_messages, load_messages
from oramem.stores._rwlock import ReadWriteLock
from oramem.stores.base import Message, Session, SessionManager, StoreError
from oramem.stores.connection import ConnectionManager

logger = get_logger("oracle")

_LOAD_SQL = (
    "SELECT session_key, messages, summary, created_at, updated_at "
    "FROM PICO_SESSIONS WHERE agent_id = :agent_id"
)

_SAVE_SQL = """
    MERGE INTO PICO_SESSIONS s
    USING (SELECT :session_key AS session_key FROM DUAL) src
    ON (s.session_key = src.session_key)
    WHEN MATCHED THEN
        UPDATE SET messages = :messages, summary = :summary, updated_at = CURRENT_TIMESTAMP
    WHEN NOT MATCHED THEN
        INSERT (session_key, agent_id, messages, summary)
        VALUES (:session_key, :agent_id, :messages, :summary)
"""


def _now() -> datetime:
    return datetime.now(UTC)


class OracleSessionStore(SessionManager):
    """Write-through cache of message histories for one agent.

    Every session of the agent is loaded at construction. Mutations only touch
    the cache; :meth:`save` writes one session back.
    """

    def __init__(self, db: ConnectionManager, agent_id: str) -> None:
        self._db = db
        self._agent_id = agent_id
        self._sessions: dict[str, Session] = {}
        self._lock = ReadWriteLock()
        self._load_all()

    def _load_all(self) -> None:
        try:
            rows = self._db.query(_LOAD_SQL, {"agent_id": self._agent_id})
        except oracledb.Error as exc:
            logger.warning("Failed to load sessions: %s", exc)
            return

        loaded: dict[str, Session] = {}
        for key, messages, summary, created, updated in rows:
            loaded[key] = Session(
                key=key,
                messages=load_messages(messages),
                summary=summary or "",
                created=created,
                updated=updated,
            )
        with self._lock.write():
            self._sessions.update(loaded)
        logger.info("Loaded %d session(s) for agent %s", len(loaded), self._agent_id)

    def _new_session(self, key: str) -> Session:
        now = _now()
        session = Session(key=key, messages=[], created=now, updated=now)
        self._sessions[key] = session
        return session

    def get_or_create(self, key: str) -> Session:
        """Return a snapshot of session *key*, creating an empty one if needed."""
        with self._lock.write():
            session = self._sessions.get(key) or self._new_session(key)
            return copy.deepcopy(session)

    def add_message(self, key: str, role: str, content: str) -> None:
        self.add_full_message(key, Message(role=role, content=content))

    def add_full_message(self, key: str, message: Message) -> None:
        with self._lock.write():
            session = self._sessions.get(key) or self._new_session(key)
            session.messages.append(message.model_copy(deep=True))
            session.updated = _now()

    def get_history(self, key: str) -> list[Message]:
        """Return an independent copy of the history (empty for unknown keys)."""
        with self._lock.read():
            session = self._sessions.get(key)
            if session is None:
                return []
            return [m.model_copy(deep=True) for m in session.messages]

    def set_history(self, key: str, messages: list[Message]) -> None:
        """Replace the history of an existing session; unknown keys are ignored."""
        with self._lock.write():
            session = self._sessions.get(key)
            if session is None:
                return
            session.messages = [m.model_copy(deep=True) for m in messages]
            session.updated = _now()

    def get_summary(self, key: str) -> str:
        with self._lock.read():
            session = self._sessions.get(key)
            return session.summary if session else ""

    def set_summary(self, key: str, summary: str) -> None:
        with self._lock.write():
            session = self._sessions.get(key)
            if session is None:
                return
            session.summary = summary
            session.updated = _now()

    def truncate_history(self, key: str, keep_last: int) -> None:
        """Keep only the last *keep_last* messages; ``keep_last <= 0`` clears the history."""
        with self._lock.write():
            session = self._sessions.get(key)
            if session is None:
                return
            if keep_last <= 0:
                session.messages = []
            elif len(session.messages) > keep_last:
                session.messages = session.messages[-keep_last:]
            session.updated = _now()

    def keys(self) -> list[str]:
        with self._lock.read():
            return list(self._sessions)

    def save(self, key: str) -> None:
        """Upsert session *key*; a key with no cached session is a no-op.

        The snapshot is serialized under the shared lock and written after
        the lock is released.
        """
        with self._lock.read():
            session = self._sessions.get(key)
            if session is None:
                return
            try:
                messages = dump_messages(session.messages)
            except (TypeError, ValueError) as exc:
                raise StoreError(f"failed to marshal messages: {exc}") from exc
            summary = session.summary

        binds = {
            "session_key": key,
            "agent_id": self._agent_id,
            "messages": messages,
            "summary": summary,
        }
        try:
            self._db.execute(_SAVE_SQL, binds)
        except oracledb.Error as exc:
            raise StoreError(f"session save failed: {exc}") from exc
