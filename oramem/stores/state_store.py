"""Scalar agent state in PICO_STATE behind a read-through, write-through cache."""

from __future__ import annotations

from datetime import datetime

import oracledb

from oramem._log import get_logger
from oramem.stores._rwlock import ReadWriteLock
from oramem.stores.base import StateManager, StoreError
from oramem.stores.connection import ConnectionManager

logger = get_logger("oracle")

LAST_CHANNEL_KEY = "last_channel"
LAST_CHAT_ID_KEY = "last_chat_id"

_SET_SQL = """
    MERGE INTO PICO_STATE s
    USING (SELECT :state_key AS state_key, :agent_id AS agent_id FROM DUAL) src
    ON (s.state_key = src.state_key AND s.agent_id = src.agent_id)
    WHEN MATCHED THEN
        UPDATE SET state_value = :state_value, updated_at = CURRENT_TIMESTAMP
    WHEN NOT MATCHED THEN
        INSERT (state_key, agent_id, state_value) VALUES (:state_key, :agent_id, :state_value)
"""
_GET_SQL = "SELECT state_value FROM PICO_STATE WHERE state_key = :state_key AND agent_id = :agent_id"
_TIMESTAMP_SQL = "SELECT MAX(updated_at) FROM PICO_STATE WHERE agent_id = :agent_id"
_LOAD_SQL = "SELECT state_key, state_value FROM PICO_STATE WHERE agent_id = :agent_id"


class OracleStateStore(StateManager):
    def __init__(self, db: ConnectionManager, agent_id: str) -> None:
        self._db = db
        self._agent_id = agent_id
        self._cache: dict[str, str] = {}
        self._lock = ReadWriteLock()
        self._load_all()

    def _load_all(self) -> None:
        try:
            rows = self._db.query(_LOAD_SQL, {"agent_id": self._agent_id})
        except oracledb.Error as exc:
            logger.warning("Failed to preload state: %s", exc)
            return
        with self._lock.write():
            for key, value in rows:
                if value is not None:
                    self._cache[key] = value

    def set(self, key: str, value: str) -> None:
        """Upsert *key*; the cache is only updated once the write succeeded."""
        binds = {"state_key": key, "agent_id": self._agent_id, "state_value": value}
        with self._lock.write():
            try:
                self._db.execute(_SET_SQL, binds)
            except oracledb.Error as exc:
                raise StoreError(f"state set failed: {exc}") from exc
            self._cache[key] = value

    def get(self, key: str) -> str:
        """Return the value for *key*, or ``""`` when it was never set."""
        with self._lock.read():
            if key in self._cache:
                return self._cache[key]

        try:
            row = self._db.query_one(_GET_SQL, {"state_key": key, "agent_id": self._agent_id})
        except oracledb.Error as exc:
            logger.warning("Failed to read state %s: %s", key, exc)
            return ""
        if row is None or row[0] is None:
            return ""

        value = row[0]
        with self._lock.write():
            self._cache[key] = value
        return value

    def set_last_channel(self, channel: str) -> None:
        self.set(LAST_CHANNEL_KEY, channel)

    def get_last_channel(self) -> str:
        return self.get(LAST_CHANNEL_KEY)

    def set_last_chat_id(self, chat_id: str) -> None:
        self.set(LAST_CHAT_ID_KEY, chat_id)

    def get_last_chat_id(self) -> str:
        return self.get(LAST_CHAT_ID_KEY)

    def get_timestamp(self) -> datetime | None:
        """Most recent update time across the agent's state, or None if there is none."""
        try:
            row = self._db.query_one(_TIMESTAMP_SQL, {"agent_id": self._agent_id})
        except oracledb.Error as exc:
            logger.warning("Failed to read state timestamp: %s", exc)
            return None
        return row[0] if row else None
