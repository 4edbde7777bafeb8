"""Memory tools: remember, recall, write_daily_note."""

from __future__ import annotations

from pydantic import ValidationError
from pydantic_ai.toolsets.function import FunctionToolset

from oramem._log import get_logger
from oramem.agent.schema.tools import (
    DEFAULT_IMPORTANCE,
    DEFAULT_MAX_RESULTS,
    DailyNoteRequest,
    RecallRequest,
    RememberRequest,
)
from oramem.stores._helpers import truncate
from oramem.stores.base import SemanticMemory, StoreError

logger = get_logger("tools")

_PREVIEW_CHARS = 100


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    cause = err.get("ctx", {}).get("error")
    return str(cause) if cause else err["msg"]


def build_memory_toolset(store: SemanticMemory) -> FunctionToolset:
    """Build the long-term memory tools over *store*."""
    toolset = FunctionToolset()

    @toolset.tool
    def remember(text: str, importance: float = DEFAULT_IMPORTANCE, category: str = "") -> str:
        """Store a piece of information in long-term memory with vector embedding for later
        semantic recall. Use this to remember facts, preferences, or important context.

        Args:
            text: The text content to remember.
            importance: Importance score from 0.0 to 1.0 (default: 0.7).
            category: Optional category for organizing memories (e.g. 'preference', 'fact').
        """
        try:
            req = RememberRequest(text=text, importance=importance, category=category)
        except ValidationError as exc:
            return f"Error: {_validation_message(exc)}"
        try:
            memory_id = store.remember(req.text, req.importance, req.category)
        except StoreError as exc:
            logger.warning("remember failed: %s", exc)
            return f"Failed to remember: {exc}"
        return (
            f"Remembered (ID: {memory_id}, importance: {req.importance:.1f}, "
            f"category: {req.category}): {truncate(req.text, _PREVIEW_CHARS)}"
        )

    @toolset.tool
    def recall(query: str, max_results: int = DEFAULT_MAX_RESULTS) -> str:
        """Search long-term memory using semantic similarity. Use this to find previously
        remembered information by describing what you're looking for.

        Args:
            query: Search query describing what to recall.
            max_results: Maximum number of results to return (default: 5).
        """
        try:
            req = RecallRequest(query=query, max_results=max_results)
        except ValidationError as exc:
            return f"Error: {_validation_message(exc)}"
        try:
            results = store.recall(req.query, req.max_results)
        except StoreError as exc:
            logger.warning("recall failed: %s", exc)
            return f"Recall failed: {exc}"

        if not results:
            return f"No matching memories found for: {req.query}"

        lines = [f"Found {len(results)} matching memories:\n\n"]
        for i, r in enumerate(results, 1):
            head = f"{i}. [{r.score * 100:.0f}% match] (ID: {r.memory_id}"
            if r.category:
                head += f", category: {r.category}"
            lines.append(f"{head}, importance: {r.importance:.1f})\n   {r.text}\n\n")
        return "".join(lines)

    @toolset.tool
    def write_daily_note(content: str) -> str:
        """Append a note to today's daily journal. Use this to record events, tasks completed,
        observations, or anything worth noting for today. Notes are stored persistently and
        included in future context.

        Args:
            content: The note content to append to today's daily journal.
        """
        try:
            req = DailyNoteRequest(content=content)
        except ValidationError as exc:
            return f"Error: {_validation_message(exc)}"
        try:
            store.append_today(req.content)
        except StoreError as exc:
            logger.warning("write_daily_note failed: %s", exc)
            return f"Failed to write daily note: {exc}"
        return f"Daily note written: {truncate(req.content, _PREVIEW_CHARS)}"

    return toolset
