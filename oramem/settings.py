"""Root settings model and YAML loader."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from oramem.agent.schema.database import DatabaseConfig
from oramem.agent.schema.embeddings import EmbeddingConfig
from oramem.agent.schema.memory import MemoryConfig


class SettingsError(Exception):
    """Raised when a settings file cannot be read or validated."""


class StoreSettings(BaseModel):
    agent_id: str = "default"
    database: DatabaseConfig = DatabaseConfig()
    embeddings: EmbeddingConfig = EmbeddingConfig()
    memory: MemoryConfig = MemoryConfig()
    workspace: str | None = None  # default: <home>/workspace

    def workspace_path(self) -> Path:
        if self.workspace:
            return Path(self.workspace).expanduser()
        from oramem.config import get_workspace_dir

        return get_workspace_dir()


def load_settings(path: Path | None = None) -> StoreSettings:
    """Load settings from *path* (default ``<home>/settings.yaml``).

    An empty file yields the defaults. Every failure is a :class:`SettingsError`.
    """
    if path is None:
        from oramem.config import get_settings_path

        path = get_settings_path()

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SettingsError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SettingsError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return StoreSettings.model_validate(data)
    except ValidationError as e:
        raise SettingsError(f"Validation failed for {path}:\n{e}") from e
