"""Validated argument models for the agent-facing memory tools."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

DEFAULT_IMPORTANCE = 0.7
DEFAULT_MAX_RESULTS = 5


def _require_text(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field} parameter is required")
    return value


class RememberRequest(BaseModel):
    text: str
    importance: float = DEFAULT_IMPORTANCE
    category: str = ""

    @field_validator("text")
    @classmethod
    def _text_required(cls, v: str) -> str:
        return _require_text(v, "text")

    @field_validator("importance", mode="before")
    @classmethod
    def _importance_in_range(cls, v: object) -> float:
        # out-of-range or non-numeric importance falls back to the default
        if isinstance(v, bool) or not isinstance(v, int | float):
            return DEFAULT_IMPORTANCE
        if not 0.0 <= v <= 1.0:
            return DEFAULT_IMPORTANCE
        return float(v)

    @field_validator("category", mode="before")
    @classmethod
    def _category_str(cls, v: object) -> str:
        return v if isinstance(v, str) else ""


class RecallRequest(BaseModel):
    query: str
    max_results: int = DEFAULT_MAX_RESULTS

    @field_validator("query")
    @classmethod
    def _query_required(cls, v: str) -> str:
        return _require_text(v, "query")

    @field_validator("max_results", mode="before")
    @classmethod
    def _positive_max_results(cls, v: object) -> int:
        if isinstance(v, bool) or not isinstance(v, int | float) or v <= 0:
            return DEFAULT_MAX_RESULTS
        return int(v)


class DailyNoteRequest(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def _content_required(cls, v: str) -> str:
        return _require_text(v, "content")
