"""Long-term memory configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field


class MemoryConfig(BaseModel):
    min_score: float = Field(default=0.3, ge=-1.0, le=1.0)  # recall similarity cutoff
    context_days: int = Field(default=3, ge=0)  # daily notes included in the memory context
    long_term_importance: float = Field(default=0.7, ge=0.0, le=1.0)
    long_term_category: str = "long_term"
