"""Embedding backend configuration."""

from __future__ import annotations

import os
import re
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

_IDENTIFIER = re.compile(r"^[A-Za-z][A-Za-z0-9_$#]{0,127}$")


class EmbeddingProvider(StrEnum):
    ONNX = "onnx"  # in-database VECTOR_EMBEDDING() with a loaded model
    API = "api"  # external OpenAI-compatible /embeddings endpoint
    NONE = "none"  # no embeddings; memories are stored without vectors


class EmbeddingConfig(BaseModel):
    provider: EmbeddingProvider = EmbeddingProvider.ONNX
    onnx_model: str = "ALL_MINILM_L12_V2"
    api_base: str = "https://api.openai.com/v1"
    api_model: str = "text-embedding-3-small"
    api_key: str = ""
    api_key_env: str = "OPENAI_API_KEY"
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_input_chars: int = Field(default=512, ge=1)

    @model_validator(mode="after")
    def _validate_provider(self) -> EmbeddingConfig:
        if self.provider == EmbeddingProvider.ONNX and not _IDENTIFIER.match(self.onnx_model):
            raise ValueError(f"onnx_model must be a plain SQL identifier, got {self.onnx_model!r}")
        if self.provider == EmbeddingProvider.API:
            if not self.api_base:
                raise ValueError("api_base is required when provider is 'api'")
            if not self.api_model:
                raise ValueError("api_model is required when provider is 'api'")
        return self

    def resolve_api_key(self) -> str:
        """Return the API key, reading ``api_key_env`` when no inline key is set.

        Raises a ``ValueError`` naming the variable to set when neither is available.
        """
        if self.api_key:
            return self.api_key
        value = os.environ.get(self.api_key_env) if self.api_key_env else None
        if value:
            return value
        raise ValueError(
            "Embedding API key not found: set embeddings.api_key or the "
            f"{self.api_key_env or 'api_key_env'} environment variable."
        )
