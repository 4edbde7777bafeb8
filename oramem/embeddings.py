"""Text-to-vector embedding: in-database ONNX model or an OpenAI-compatible HTTP API."""

from __future__ import annotations

import threading
from enum import StrEnum
from typing import TYPE_CHECKING

import httpx
import oracledb
from pydantic import BaseModel, ValidationError

from oramem._log import get_logger
from oramem.agent.schema.embeddings import EmbeddingConfig, EmbeddingProvider
from oramem.stores._helpers import safe_identifier
from oramem.stores.base import EmbeddingError

if TYPE_CHECKING:
    from oramem.stores.connection import ConnectionManager

logger = get_logger("embedding")

DEFAULT_DIMENSIONS = 384  # ALL_MINILM_L12_V2
DEFAULT_MAX_INPUT_CHARS = 512
DEFAULT_ONNX_DIR = "PICO_ONNX_DIR"
DEFAULT_ONNX_FILE = "all_MiniLM_L12_v2.onnx"
PROBE_TEXT = "test"

_CHECK_MODEL_SQL = "SELECT COUNT(*) FROM USER_MINING_MODELS WHERE MODEL_NAME = :model_name"

_LOAD_MODEL_SQL = """BEGIN
    DBMS_VECTOR.LOAD_ONNX_MODEL(
        directory  => :directory,
        file_name  => :file_name,
        model_name => :model_name
    );
END;"""


class EmbeddingMode(StrEnum):
    ONNX = "onnx"
    API = "api"


class _EmbeddingItem(BaseModel):
    embedding: list[float]
    index: int = 0


class _Usage(BaseModel):
    prompt_tokens: int = 0
    total_tokens: int = 0


class EmbeddingAPIResponse(BaseModel):
    data: list[_EmbeddingItem] = []
    model: str = ""
    usage: _Usage = _Usage()


class EmbeddingService:
    """Produce fixed-length vectors for text, whichever backend computes them.

    Use :meth:`onnx` or :meth:`api` (or :func:`create_embedding_service`)
    rather than calling the constructor directly.
    """

    def __init__(
        self,
        db: ConnectionManager | None,
        mode: EmbeddingMode,
        *,
        onnx_model: str = "",
        api_base: str = "",
        api_key: str = "",
        api_model: str = "",
        client: httpx.Client | None = None,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
    ) -> None:
        self._db = db
        self._mode = mode
        self._onnx_model = safe_identifier(onnx_model) if mode == EmbeddingMode.ONNX else onnx_model
        self._api_base = api_base.rstrip("/")
        self._api_key = api_key
        self._api_model = api_model
        self._client = client
        self._max_input_chars = max_input_chars
        self._dims = DEFAULT_DIMENSIONS if mode == EmbeddingMode.ONNX else 0
        self._dims_lock = threading.Lock()

    @classmethod
    def onnx(
        cls,
        db: ConnectionManager,
        model_name: str,
        *,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
    ) -> EmbeddingService:
        return cls(db, EmbeddingMode.ONNX, onnx_model=model_name, max_input_chars=max_input_chars)

    @classmethod
    def api(
        cls,
        api_base: str,
        api_key: str,
        api_model: str,
        *,
        db: ConnectionManager | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
    ) -> EmbeddingService:
        return cls(
            db,
            EmbeddingMode.API,
            api_base=api_base,
            api_key=api_key,
            api_model=api_model,
            client=client or httpx.Client(timeout=timeout),
            max_input_chars=max_input_chars,
        )

    # -- diagnostics -------------------------------------------------------

    @property
    def mode(self) -> EmbeddingMode:
        return self._mode

    @property
    def model_name(self) -> str:
        return self._api_model if self._mode == EmbeddingMode.API else self._onnx_model

    @property
    def dimensions(self) -> int:
        """Vector length; 0 in API mode until the first successful call."""
        return self._dims

    # -- embedding ---------------------------------------------------------

    def embed_text(self, text: str) -> list[float]:
        if not text:
            return [0.0] * (self._dims or DEFAULT_DIMENSIONS)
        text = text[: self._max_input_chars]
        if self._mode == EmbeddingMode.API:
            return self._embed_via_api(text)
        return self._embed_via_onnx(text)

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed each text in order, stopping at the first failure."""
        return [self.embed_text(text) for text in texts]

    def _require_db(self) -> ConnectionManager:
        if self._db is None:
            raise EmbeddingError("in-database embedding requires a database connection")
        return self._db

    def _embed_via_onnx(self, text: str) -> list[float]:
        sql = f"SELECT VECTOR_EMBEDDING({self._onnx_model} USING :text AS DATA) FROM DUAL"
        try:
            row = self._require_db().query_one(sql, {"text": text})
        except oracledb.Error as exc:
            raise EmbeddingError(f"VECTOR_EMBEDDING failed: {exc}") from exc
        if row is None or row[0] is None:
            raise EmbeddingError("VECTOR_EMBEDDING returned no vector")
        return [float(v) for v in row[0]]

    def _embed_via_api(self, text: str) -> list[float]:
        if self._client is None:
            raise EmbeddingError("embedding HTTP client is closed")
        try:
            response = self._client.post(
                f"{self._api_base}/embeddings",
                json={"model": self._api_model, "input": text},
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._api_key}",
                },
            )
        except httpx.HTTPError as exc:
            raise EmbeddingError(f"embedding API call failed: {exc}") from exc

        if response.status_code != 200:
            raise EmbeddingError(f"embedding API returned {response.status_code}: {response.text}")

        try:
            parsed = EmbeddingAPIResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise EmbeddingError(f"failed to parse embedding response: {exc}") from exc

        if not parsed.data or not parsed.data[0].embedding:
            raise EmbeddingError("embedding API returned empty result")

        embedding = parsed.data[0].embedding
        with self._dims_lock:
            if self._dims == 0:
                self._dims = len(embedding)
                logger.info(
                    "Embedding dimensions detected: %d (model %s)", self._dims, self._api_model
                )
            elif len(embedding) != self._dims:
                raise EmbeddingError(
                    f"embedding API returned {len(embedding)} dimensions, expected {self._dims}"
                )
        return embedding

    # -- ONNX model lifecycle ---------------------------------------------

    def check_onnx_loaded(self) -> bool:
        """Return True when the ONNX model is present in the database (always True in API mode)."""
        if self._mode == EmbeddingMode.API:
            return True
        try:
            row = self._require_db().query_one(_CHECK_MODEL_SQL, {"model_name": self._onnx_model})
        except oracledb.Error as exc:
            raise EmbeddingError(f"failed to check ONNX model: {exc}") from exc
        return bool(row and row[0])

    def load_onnx_model(
        self, directory: str = DEFAULT_ONNX_DIR, file_name: str = DEFAULT_ONNX_FILE
    ) -> None:
        """Load the ONNX model via ``DBMS_VECTOR.LOAD_ONNX_MODEL``; no-op in API mode."""
        if self._mode == EmbeddingMode.API:
            return
        binds = {"directory": directory, "file_name": file_name, "model_name": self._onnx_model}
        try:
            self._require_db().execute(_LOAD_MODEL_SQL, binds)
        except oracledb.Error as exc:
            raise EmbeddingError(f"failed to load ONNX model: {exc}") from exc
        logger.info("ONNX model %s loaded from %s/%s", self._onnx_model, directory, file_name)

    def test_embedding(self) -> bool:
        try:
            self.embed_text(PROBE_TEXT)
        except EmbeddingError as exc:
            logger.warning("Embedding smoke test failed: %s", exc)
            return False
        return True

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


def create_embedding_service(
    config: EmbeddingConfig,
    db: ConnectionManager | None,
    *,
    client: httpx.Client | None = None,
) -> EmbeddingService | None:
    """Build the service for ``config.provider``; ``none`` yields ``None``."""
    if config.provider == EmbeddingProvider.NONE:
        return None
    if config.provider == EmbeddingProvider.API:
        return EmbeddingService.api(
            config.api_base,
            config.resolve_api_key(),
            config.api_model,
            db=db,
            timeout=config.timeout_seconds,
            client=client,
            max_input_chars=config.max_input_chars,
        )
    if db is None:
        raise ValueError("the onnx embedding provider requires a database connection")
    return EmbeddingService.onnx(db, config.onnx_model, max_input_chars=config.max_input_chars)
