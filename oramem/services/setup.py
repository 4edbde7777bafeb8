"""One-shot database provisioning: schema, embedding model, smoke test, prompt seeding."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from oramem._log import get_logger
from oramem.embeddings import (
    DEFAULT_ONNX_DIR,
    DEFAULT_ONNX_FILE,
    EmbeddingMode,
    EmbeddingService,
    create_embedding_service,
)
from oramem.stores.base import EmbeddingError
from oramem.stores.connection import ConnectionManager, connect
from oramem.stores.ddl import SCHEMA_VERSION, TABLE_ORDER, get_schema_version, init_schema
from oramem.stores.prompt_store import PromptStore

if TYPE_CHECKING:
    import httpx

    from oramem.settings import StoreSettings

logger = get_logger("setup")


@dataclass
class SetupReport:
    tables: int = len(TABLE_ORDER)
    schema_version: str | None = None
    embedding_mode: str = "none"
    embedding_model: str = ""
    onnx_loaded: bool | None = None  # None when not applicable (api / none)
    embedding_ok: bool | None = None
    prompts_seeded: int = 0
    warnings: list[str] = field(default_factory=list)


def setup_database(
    settings: StoreSettings,
    *,
    onnx_dir: str = DEFAULT_ONNX_DIR,
    onnx_file: str = DEFAULT_ONNX_FILE,
    workspace: Path | None = None,
    db: ConnectionManager | None = None,
    client: httpx.Client | None = None,
) -> SetupReport:
    """Provision the database for ``settings.agent_id``.

    Connection and schema failures propagate. Problems with the ONNX model,
    the embedding smoke test or prompt seeding are recorded in the report's
    ``warnings`` instead.

    When *db* is given it is used as-is and left open; otherwise a pool is
    opened from ``settings.database`` and closed before returning.
    """
    owns_db = db is None
    if db is None:
        db = connect(settings.database)
    try:
        return _provision(settings, db, onnx_dir, onnx_file, workspace, client)
    finally:
        if owns_db:
            db.close()


def _provision(
    settings: StoreSettings,
    db: ConnectionManager,
    onnx_dir: str,
    onnx_file: str,
    workspace: Path | None,
    client: httpx.Client | None,
) -> SetupReport:
    report = SetupReport()

    init_schema(db)
    report.schema_version = get_schema_version(db) or SCHEMA_VERSION

    embedding = create_embedding_service(settings.embeddings, db, client=client)
    if embedding is not None:
        try:
            report.embedding_mode = str(embedding.mode)
            report.embedding_model = embedding.model_name
            if embedding.mode == EmbeddingMode.ONNX:
                _ensure_onnx_model(embedding, onnx_dir, onnx_file, report)
            report.embedding_ok = embedding.test_embedding()
            if not report.embedding_ok:
                report.warnings.append(f"embedding test failed (mode: {embedding.mode})")
        finally:
            embedding.close()

    prompts = PromptStore(db, settings.agent_id)
    report.prompts_seeded = prompts.seed_from_workspace(workspace or settings.workspace_path())

    logger.info(
        "Setup complete (schema %s, embedding %s, %d prompt(s) seeded)",
        report.schema_version,
        report.embedding_mode,
        report.prompts_seeded,
    )
    return report


def _ensure_onnx_model(
    embedding: EmbeddingService, onnx_dir: str, onnx_file: str, report: SetupReport
) -> None:
    try:
        loaded = embedding.check_onnx_loaded()
    except EmbeddingError as exc:
        report.warnings.append(f"could not check ONNX model status: {exc}")
        loaded = False

    if not loaded:
        try:
            embedding.load_onnx_model(onnx_dir, onnx_file)
            loaded = True
        except EmbeddingError as exc:
            logger.warning("ONNX model load failed: %s", exc)
            report.warnings.append(f"ONNX model load failed: {exc}")
    report.onnx_loaded = loaded
