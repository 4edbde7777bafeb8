"""Filesystem locations: the settings file and the prompt workspace."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=1)
def get_home_dir() -> Path:
    """Directory holding ``settings.yaml`` and ``workspace/``.

    ``$ORAMEM_HOME`` wins; otherwise ``$XDG_DATA_HOME/oramem`` when XDG is
    configured, else ``~/.oramem``. Cached; tests clear it via ``cache_clear``.
    """
    if home := os.environ.get("ORAMEM_HOME"):
        return Path(home)
    if data_home := os.environ.get("XDG_DATA_HOME"):
        return Path(data_home) / "oramem"
    return Path.home() / ".oramem"


def get_settings_path() -> Path:
    return get_home_dir() / "settings.yaml"


def get_workspace_dir() -> Path:
    """Markdown prompt files seeded into PICO_PROMPTS live here."""
    return get_home_dir() / "workspace"
