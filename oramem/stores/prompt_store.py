"""Named system prompts in PICO_PROMPTS."""

from __future__ import annotations

from pathlib import Path

import oracledb

from oramem._log import get_logger
from oramem.stores.base import StoreError
from oramem.stores.connection import ConnectionManager

logger = get_logger("oracle")

BOOTSTRAP_FILES = ("IDENTITY.md", "SOUL.md", "USER.md", "AGENT.md", "AGENTS.md")

_LOAD_SQL = "SELECT content FROM PICO_PROMPTS WHERE prompt_name = :prompt_name AND agent_id = :agent_id"
_LOAD_ALL_SQL = "SELECT prompt_name, content FROM PICO_PROMPTS WHERE agent_id = :agent_id"
_SAVE_SQL = """
    MERGE INTO PICO_PROMPTS p
    USING (SELECT :prompt_name AS prompt_name, :agent_id AS agent_id FROM DUAL) src
    ON (p.prompt_name = src.prompt_name AND p.agent_id = src.agent_id)
    WHEN MATCHED THEN
        UPDATE SET content = :content, updated_at = CURRENT_TIMESTAMP
    WHEN NOT MATCHED THEN
        INSERT (prompt_name, agent_id, content) VALUES (:prompt_name, :agent_id, :content)
"""


class PromptStore:
    def __init__(self, db: ConnectionManager, agent_id: str) -> None:
        self._db = db
        self._agent_id = agent_id

    def load_prompt(self, name: str) -> str:
        """Return prompt *name*, or ``""`` when it does not exist."""
        try:
            row = self._db.query_one(_LOAD_SQL, {"prompt_name": name, "agent_id": self._agent_id})
        except oracledb.Error as exc:
            raise StoreError(f"failed to load prompt {name}: {exc}") from exc
        if row is None or row[0] is None:
            return ""
        return row[0]

    def save_prompt(self, name: str, content: str) -> None:
        binds = {"prompt_name": name, "agent_id": self._agent_id, "content": content}
        try:
            self._db.execute(_SAVE_SQL, binds)
        except oracledb.Error as exc:
            raise StoreError(f"failed to save prompt {name}: {exc}") from exc

    def load_bootstrap_files(self) -> dict[str, str]:
        """Return every prompt of the agent as ``{name: content}``."""
        try:
            rows = self._db.query(_LOAD_ALL_SQL, {"agent_id": self._agent_id})
        except oracledb.Error as exc:
            logger.warning("Failed to load prompts: %s", exc)
            return {}
        return {name: content for name, content in rows if content is not None}

    def seed_from_workspace(self, workspace: Path) -> int:
        """Store the well-known workspace markdown files as prompts.

        Missing files are skipped; a file that fails to save is logged and
        skipped. Returns the number of prompts seeded.
        """
        seeded = 0
        for filename in BOOTSTRAP_FILES:
            path = workspace / filename
            try:
                content = path.read_text(encoding="utf-8")
            except OSError:
                continue
            try:
                self.save_prompt(path.stem, content)
            except StoreError as exc:
                logger.warning("Failed to seed prompt from %s: %s", filename, exc)
                continue
            seeded += 1

        if seeded:
            logger.info("Seeded %d prompt(s) from workspace %s", seeded, workspace)
        return seeded
