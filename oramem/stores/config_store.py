"""Serialized configuration blobs in PICO_CONFIG."""

from __future__ import annotations

import oracledb

from oramem.stores.base import StoreError
from oramem.stores.connection import ConnectionManager

FULL_CONFIG_KEY = "full_config"

_GET_SQL = (
    "SELECT config_value FROM PICO_CONFIG WHERE config_key = :config_key AND agent_id = :agent_id"
)
# config_key alone is the primary key
_SET_SQL = """
    MERGE INTO PICO_CONFIG c
    USING (SELECT :config_key AS config_key FROM DUAL) src
    ON (c.config_key = src.config_key)
    WHEN MATCHED THEN
        UPDATE SET config_value = :config_value, updated_at = CURRENT_TIMESTAMP
    WHEN NOT MATCHED THEN
        INSERT (config_key, agent_id, config_value) VALUES (:config_key, :agent_id, :config_value)
"""


class ConfigStore:
    def __init__(self, db: ConnectionManager, agent_id: str) -> None:
        self._db = db
        self._agent_id = agent_id

    def get_config_value(self, key: str) -> str:
        try:
            row = self._db.query_one(_GET_SQL, {"config_key": key, "agent_id": self._agent_id})
        except oracledb.Error as exc:
            raise StoreError(f"config get failed: {exc}") from exc
        if row is None or row[0] is None:
            return ""
        return row[0]

    def set_config_value(self, key: str, value: str) -> None:
        binds = {"config_key": key, "agent_id": self._agent_id, "config_value": value}
        try:
            self._db.execute(_SET_SQL, binds)
        except oracledb.Error as exc:
            raise StoreError(f"config set failed: {exc}") from exc

    def load_config(self) -> str:
        return self.get_config_value(FULL_CONFIG_KEY)

    def save_config(self, config_json: str) -> None:
        self.set_config_value(FULL_CONFIG_KEY, config_json)
