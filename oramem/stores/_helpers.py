"""Small helpers shared by the Oracle-backed stores."""

from __future__ import annotations

import re
import uuid
from collections.abc import Sequence

from pydantic import TypeAdapter, ValidationError

from oramem.stores.base import Message

_IDENTIFIER = re.compile(r"^[A-Za-z][A-Za-z0-9_$#]{0,127}$")

MESSAGES_ADAPTER: TypeAdapter[list[Message]] = TypeAdapter(list[Message])

# memory and note ids; echoed back in tool output
ID_LENGTH = 8


def new_id() -> str:
    return uuid.uuid4().hex[:ID_LENGTH]


def format_vector(values: Sequence[float]) -> str:
    """Serialize a vector into the ``[0.1,0.2,...]`` literal accepted by ``TO_VECTOR``."""
    return "[" + ",".join(repr(float(v)) for v in values) + "]"


def safe_identifier(name: str) -> str:
    """Return *name* if it is a plain SQL identifier, else raise ``ValueError``.

    Identifiers cannot be bound, so anything interpolated into SQL goes through here.
    """
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def dump_messages(messages: list[Message]) -> str:
    return MESSAGES_ADAPTER.dump_json(messages, exclude_none=True).decode()


def load_messages(raw: str | None) -> list[Message]:
    """Parse a stored history; unparsable or empty input yields an empty list."""
    if not raw:
        return []
    try:
        return MESSAGES_ADAPTER.validate_json(raw)
    except ValidationError:
        return []


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
